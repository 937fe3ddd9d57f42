import math
from collections import deque
from typing import Optional

import numpy as np

from scqbf_ts.core.abc_solver import TerminationCriteria, DebugOptions
from scqbf_ts.core.abstract_ts import AbstractTabuSearch, TSStrategy
from scqbf_ts.core.evaluator import Evaluator
from scqbf_ts.core.solution import Solution


class TabuSearchScqbf(AbstractTabuSearch[int]):
    """
    Tabu Search over insertion, removal and exchange moves for subset problems
    such as the SCQBF. Works with any Evaluator[int]; the engine assumes the
    evaluator minimizes (use ScqbfInverseEvaluator for the maximization SCQBF).

    The tabu list holds 2 * tenure entries: every move pushes the removed element
    and the inserted element (or None when one side is empty).
    """

    def __init__(self, evaluator: Evaluator[int], tenure: int, strategy: TSStrategy = None,
                 termination_criteria: TerminationCriteria = None,
                 debug_options: DebugOptions = None, random_seed: int = 0):
        super().__init__(evaluator, tenure, strategy, termination_criteria, debug_options, random_seed)
        self.var_frequency = np.zeros(evaluator.get_domain_size(), dtype=int)

    def _get_fake_element(self) -> None:
        """Tabu entry meaning "nothing was moved"."""
        return None

    def make_tabu_list(self) -> deque:
        size = 2 * self.tenure
        return deque([self._get_fake_element()] * size, maxlen=size)

    def create_empty_solution(self) -> Solution[int]:
        return Solution()

    def update_candidate_list(self):
        self.CL = self.evaluator.candidates(self._current_solution)

    def update_var_frequency(self):
        if self.strategy.diversification:
            for element in self._current_solution:
                self.var_frequency[element] += 1

    def _is_admissible(self, delta: float, *elements: int) -> bool:
        """A move is admissible if finite and either no element is tabu or it beats the best solution."""
        if not math.isfinite(delta):
            return False
        if not any(self.is_tabu(e) for e in elements):
            return True
        return self.aspiration_criteria(delta)

    #region Neighborhood moves
    def neighborhood_move(self):
        if self.strategy.search_strategy == 'first':
            self._neighborhood_move_first_improving()
        elif self.strategy.search_strategy == 'best':
            self._neighborhood_move_best_improving()
        else:
            raise ValueError(f"Unknown search strategy: {self.strategy.search_strategy}")

    def _neighborhood_move_first_improving(self):
        self.update_candidate_list()
        sol = self._current_solution

        best_delta = float('inf')
        best_in, best_out = None, None

        # Insertions
        for cand_in in self.CL:
            delta = self.evaluator.evaluate_insertion_cost(sol, cand_in)
            if self._is_admissible(delta, cand_in):
                if delta < 0:
                    self._apply_move(cand_in, None)
                    return
                if delta < best_delta:
                    best_delta, best_in, best_out = delta, cand_in, None

        # Removals
        for cand_out in sol.elements:
            delta = self.evaluator.evaluate_removal_cost(sol, cand_out)
            if self._is_admissible(delta, cand_out):
                if delta < 0:
                    self._apply_move(None, cand_out)
                    return
                if delta < best_delta:
                    best_delta, best_in, best_out = delta, None, cand_out

        # Exchanges
        for cand_in in self.CL:
            for cand_out in sol.elements:
                delta = self.evaluator.evaluate_exchange_cost(sol, cand_in, cand_out)
                if self._is_admissible(delta, cand_in, cand_out):
                    if delta < 0:
                        self._apply_move(cand_in, cand_out)
                        return
                    if delta < best_delta:
                        best_delta, best_in, best_out = delta, cand_in, cand_out

        # Local optimum: accept the least worsening move
        self._apply_move(best_in, best_out)

    def _neighborhood_move_best_improving(self):
        self.update_candidate_list()
        sol = self._current_solution

        best_delta = float('inf')
        best_in, best_out = None, None

        for cand_in in self.CL:
            delta = self.evaluator.evaluate_insertion_cost(sol, cand_in)
            if self._is_admissible(delta, cand_in) and delta < best_delta:
                best_delta, best_in, best_out = delta, cand_in, None

        for cand_out in sol.elements:
            delta = self.evaluator.evaluate_removal_cost(sol, cand_out)
            if self._is_admissible(delta, cand_out) and delta < best_delta:
                best_delta, best_in, best_out = delta, None, cand_out

        for cand_in in self.CL:
            for cand_out in sol.elements:
                delta = self.evaluator.evaluate_exchange_cost(sol, cand_in, cand_out)
                if self._is_admissible(delta, cand_in, cand_out) and delta < best_delta:
                    best_delta, best_in, best_out = delta, cand_in, cand_out

        self._apply_move(best_in, best_out)

    def _apply_move(self, cand_in: Optional[int], cand_out: Optional[int]):
        """Applies an add/drop/swap move, updates the tabu list and re-evaluates the solution."""
        if cand_out is not None:
            self._current_solution.remove(cand_out)
            self.CL.append(cand_out)
        self.add_to_tabu_list(cand_out)

        if cand_in is not None:
            self._current_solution.add(cand_in)
            self.CL.remove(cand_in)
        self.add_to_tabu_list(cand_in)

        self.evaluator.evaluate(self._current_solution)
    #endregion

    #region Intensification and diversification
    def intensify(self) -> Optional[Solution[int]]:
        """
        Exhaustive double exchange (two insertions, one removal). Applies the most
        improving triple, if any.
        """
        self.update_candidate_list()
        sol = self._current_solution

        min_delta = 0.0
        best_move = None

        for in1 in self.CL:
            for in2 in self.CL:
                for out in sol.elements:
                    delta = self.evaluator.evaluate_double_exchange_cost(sol, in1, in2, out)
                    if math.isfinite(delta) and delta < min_delta:
                        min_delta = delta
                        best_move = (in1, in2, out)

        if best_move is None:
            return None

        in1, in2, out = best_move
        self._current_solution.remove(out)
        self.add_to_tabu_list(out)
        for elem_in in (in1, in2):
            self._current_solution.add(elem_in)
            self.CL.remove(elem_in)
            self.add_to_tabu_list(elem_in)
        self.CL.append(out)

        self.evaluator.evaluate(self._current_solution)
        return self._current_solution

    def diversify_by_restart(self, fraction: float):
        """
        Restarts from the best solution and adds the k least frequently used elements,
        k = ceil(domain_size * fraction).
        """
        self._current_solution = self.best_solution.copy()

        domain_size = self.evaluator.get_domain_size()
        k = min(math.ceil(domain_size * fraction), domain_size)

        least_used = np.argsort(self.var_frequency, kind='stable')[:k]
        for element in least_used:
            self._current_solution.add(int(element))

        self.evaluator.evaluate(self._current_solution)
    #endregion
