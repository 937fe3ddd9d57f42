# scqbf_ts/scqbf/evaluator.py

from typing import List

import numpy as np

from scqbf_ts.core.evaluator import Evaluator
from scqbf_ts.core.solution import Solution
from .instance import ScqbfInstance


class ScqbfEvaluator(Evaluator[int]):
    """
    Evaluates solutions of the Set-Covering QBF: f(x) = x^T A x, subject to the
    selected sets covering every universe element.

    Values are returned in the problem's native sense. Moves that would leave the
    solution infeasible are reported with INFEASIBLE (-inf), the worst value for a
    maximization objective. Use ScqbfInverseEvaluator to minimize with the Tabu Search.
    """

    SIGN = 1.0
    INFEASIBLE = float('-inf')

    def __init__(self, instance: ScqbfInstance):
        self.instance = instance
        self.size = instance.n
        self.A = instance.A
        self.S = instance.S

        # A[i][j] + A[j][i]; the effective pairwise interaction.
        self._A_sym = self.A + self.A.T

        # Scratch indicator vector, rebuilt at every entry point.
        self.variables = np.zeros(self.size, dtype=float)

    def get_domain_size(self) -> int:
        return self.size

    #region Indicator vector
    def _set_variables(self, solution: Solution[int]):
        self._reset_variables()
        if len(solution):
            self.variables[solution.elements] = 1.0

    def _reset_variables(self):
        self.variables.fill(0.0)
    #endregion

    #region Objective function and deltas
    def evaluate(self, solution: Solution[int]) -> float:
        self._set_variables(solution)
        solution.cost = self.SIGN * self._evaluate_qbf()
        return solution.cost

    def evaluate_insertion_cost(self, solution: Solution[int], element: int) -> float:
        self._set_variables(solution)
        return self.SIGN * self._insertion_qbf(element)

    def evaluate_removal_cost(self, solution: Solution[int], element: int) -> float:
        self._set_variables(solution)
        return self.SIGN * self._removal_qbf(element, solution)

    def evaluate_exchange_cost(self, solution: Solution[int], elem_in: int, elem_out: int) -> float:
        self._set_variables(solution)
        return self.SIGN * self._exchange_qbf(elem_in, elem_out, solution)

    def evaluate_double_exchange_cost(self, solution: Solution[int], elem_in1: int, elem_in2: int, elem_out: int) -> float:
        self._set_variables(solution)
        return self.SIGN * self._double_exchange_qbf(elem_in1, elem_in2, elem_out, solution)

    def _evaluate_qbf(self) -> float:
        x = self.variables
        return float(x @ self.A @ x)

    def _contribution_qbf(self, i: int) -> float:
        """
        Contribution of element i given the current indicator vector:
        sum over j != i of x_j * (A[i][j] + A[j][i]), plus A[i][i].
        """
        row = self._A_sym[i]
        return float(self.variables @ row - self.variables[i] * row[i] + self.A[i, i])

    def _insertion_qbf(self, i: int) -> float:
        if self.variables[i] == 1:
            return 0.0
        return self._contribution_qbf(i)

    def _removal_qbf(self, i: int, solution: Solution[int]) -> float:
        if self.variables[i] == 0:
            return 0.0

        if not self._is_feasible_elements([e for e in solution if e != i]):
            return self.INFEASIBLE

        return -self._contribution_qbf(i)

    def _exchange_qbf(self, elem_in: int, elem_out: int, solution: Solution[int]) -> float:
        if elem_in == elem_out:
            return 0.0
        if self.variables[elem_in] == 1:
            return self._removal_qbf(elem_out, solution)
        if self.variables[elem_out] == 0:
            return self._insertion_qbf(elem_in)

        remaining = [e for e in solution if e != elem_out]
        remaining.append(elem_in)
        if not self._is_feasible_elements(remaining):
            return self.INFEASIBLE

        delta = self._contribution_qbf(elem_in)
        delta -= self._contribution_qbf(elem_out)
        delta -= self._A_sym[elem_in, elem_out]
        return float(delta)

    def _double_exchange_qbf(self, in1: int, in2: int, out: int, solution: Solution[int]) -> float:
        if in1 == out or in2 == out or in1 == in2:
            return self.INFEASIBLE
        if self.variables[in1] == 1 or self.variables[in2] == 1:
            return self.INFEASIBLE
        if self.variables[out] == 0:
            return self.INFEASIBLE

        remaining = [e for e in solution if e != out]
        remaining.extend((in1, in2))
        if not self._is_feasible_elements(remaining):
            return self.INFEASIBLE

        delta = self._contribution_qbf(in1)
        delta += self._contribution_qbf(in2)
        delta -= self._contribution_qbf(out)

        # Pairwise corrections among the three touched elements
        delta -= self._A_sym[in1, out]
        delta += self._A_sym[in1, in2]
        delta -= self._A_sym[in2, out]
        return float(delta)
    #endregion

    #region Coverage
    def is_feasible(self, solution: Solution[int]) -> bool:
        return self._is_feasible_elements(solution.elements)

    def _is_feasible_elements(self, elements: List[int]) -> bool:
        return bool(self._covered_mask(elements).all())

    def _covered_mask(self, elements: List[int]) -> np.ndarray:
        if not elements:
            return np.zeros(self.size, dtype=bool)
        return self.S[elements].any(axis=0)

    def uncovered_elements(self, solution: Solution[int]) -> np.ndarray:
        """Universe elements not covered by any set in the solution."""
        return np.flatnonzero(~self._covered_mask(solution.elements))

    def candidates(self, solution: Solution[int]) -> List[int]:
        """
        If the solution is feasible, every set not in it. Otherwise only the sets that
        cover at least one currently uncovered element.
        """
        uncovered = self.uncovered_elements(solution)

        if uncovered.size == 0:
            return [i for i in range(self.size) if i not in solution]

        useful = self.S[:, uncovered].any(axis=1)
        return [int(i) for i in np.flatnonzero(useful) if int(i) not in solution]
    #endregion


class ScqbfInverseEvaluator(ScqbfEvaluator):
    """
    Negated SCQBF evaluator. Turns the maximization of x^T A x into the minimization
    the Tabu Search expects; infeasible moves become +inf.
    """

    SIGN = -1.0
