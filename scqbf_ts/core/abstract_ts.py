# scqbf_ts/core/abstract_ts.py

import random
from abc import abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Generic, List, Literal, Optional, Sequence, TypeVar

from .abc_solver import Solver, TerminationCriteria, DebugOptions
from .evaluator import Evaluator
from .solution import Solution

E = TypeVar('E')


class ConstructionError(RuntimeError):
    """Raised when the constructive heuristic runs out of candidates before reaching feasibility."""


@dataclass
class TSStrategy:
    """
    Configuration data class for the Tabu Search algorithm.
    """

    search_strategy: Literal['first', 'best'] = 'first'
    diversification: bool = False
    intensification: bool = False

    # Iterations without improvement that trigger the n-th restart, and the
    # fraction of the domain added to the best solution at that restart.
    diversify_at: Sequence[int] = (50, 150, 500)
    diversify_fractions: Sequence[float] = (0.05, 0.05, 0.1)

    def __post_init__(self):
        if self.search_strategy not in ('first', 'best'):
            raise ValueError(f"Unknown search strategy: {self.search_strategy}")
        if len(self.diversify_at) != len(self.diversify_fractions):
            raise ValueError("Diversification thresholds and fractions must have the same length.")
        if any(not (0 < fraction <= 1) for fraction in self.diversify_fractions):
            raise ValueError("Diversification fractions must be in the range (0, 1].")


class AbstractTabuSearch(Solver, Generic[E]):
    """
    Abstract base class for the Tabu Search algorithm (minimization).
    It defines the general structure that can be specialized for different problems:
    a semi-greedy constructive heuristic followed by a time-bounded local search
    with optional intensification and diversification.
    """

    def __init__(self, evaluator: Evaluator[E], tenure: int, strategy: TSStrategy = None,
                 termination_criteria: TerminationCriteria = None,
                 debug_options: DebugOptions = None, random_seed: int = 0):
        """
        Initializes the Tabu Search solver.

        Args:
            evaluator (Evaluator): The problem-specific objective function.
            tenure (int): The tabu tenure. Subclasses decide how it sizes the tabu list.
            strategy (TSStrategy): Move selection and diversification/intensification switches.
            termination_criteria (TerminationCriteria): Time and/or iteration budget.
            debug_options (DebugOptions): Verbosity and history logging.
            random_seed (int): Seed for this solver's random number generator.
        """
        if tenure < 1:
            raise ValueError("Tenure must be a positive integer.")
        if termination_criteria is None:
            termination_criteria = TerminationCriteria(max_time_secs=1800)

        super().__init__(evaluator, termination_criteria, debug_options)

        self.tenure = tenure
        self.strategy = strategy if strategy is not None else TSStrategy()
        self.rng = random.Random(random_seed)

        self.CL: List[E] = []
        self.RCL: List[E] = []
        self.tabu_list: Optional[deque] = None

        self.initial_solution: Optional[Solution[E]] = None
        self.diversification_count = 0
        self.last_improvement_iteration = 0

    @abstractmethod
    def make_tabu_list(self) -> deque:
        """Creates and initializes the tabu list."""
        pass

    @abstractmethod
    def create_empty_solution(self) -> Solution[E]:
        pass

    @abstractmethod
    def update_candidate_list(self):
        """Recomputes self.CL for the current solution."""
        pass

    @abstractmethod
    def neighborhood_move(self):
        """Explores the neighborhood of the current solution and applies one move."""
        pass

    @abstractmethod
    def update_var_frequency(self):
        pass

    @abstractmethod
    def diversify_by_restart(self, fraction: float):
        pass

    @abstractmethod
    def intensify(self) -> Optional[Solution[E]]:
        """Runs a deeper search around the current solution. Returns None when nothing improves."""
        pass

    def constructive_heuristic(self) -> Solution[E]:
        """
        Builds a feasible solution by repeatedly inserting a random element among
        the candidates tied for the lowest insertion cost (the RCL).
        """
        self._current_solution = self.create_empty_solution()
        self.evaluator.evaluate(self._current_solution)

        while not self.evaluator.is_feasible(self._current_solution):
            self.update_candidate_list()
            if not self.CL:
                raise ConstructionError(
                    "Candidate list is empty but the solution is still infeasible; "
                    "the instance admits no feasible cover."
                )

            deltas = [self.evaluator.evaluate_insertion_cost(self._current_solution, c) for c in self.CL]
            min_cost = min(deltas)
            self.RCL = [c for c, delta in zip(self.CL, deltas) if delta <= min_cost]

            chosen = self.RCL[self.rng.randrange(len(self.RCL))]
            self._current_solution.add(chosen)
            self.evaluator.evaluate(self._current_solution)
            self.RCL = []

        return self._current_solution

    def solve(self) -> Solution[E]:
        """
        Main method of the Tabu Search algorithm.
        """
        self._reset_execution_state()
        self.diversification_count = 0
        self.last_improvement_iteration = 0

        self.constructive_heuristic()
        self.update_var_frequency()
        self.initial_solution = self._current_solution.copy()

        self._log("Solution from CH:")
        self._log(f"t={self._elapsed_secs():.2f} {self.initial_solution}")
        self._log("Solutions from TS:")

        self.best_solution = self._current_solution.copy()
        self.tabu_list = self.make_tabu_list()

        while not self._check_termination():
            iteration = self._iters + 1

            self.neighborhood_move()
            self.update_var_frequency()

            if self._current_solution.cost < self.best_solution.cost:
                self.best_solution = self._current_solution.copy()
                self._log(f"it={iteration} t={self._elapsed_secs():.2f} "
                          f"cost={self.best_solution.cost:.2f} size={len(self.best_solution)}")

                if self.strategy.intensification and iteration - self.last_improvement_iteration > 1:
                    intensified = self.intensify()
                    if intensified is not None and intensified.cost < self.best_solution.cost:
                        self.best_solution = intensified.copy()
                        self._log(f"it={iteration} t={self._elapsed_secs():.2f} improved after intensification: "
                                  f"cost={self.best_solution.cost:.2f} size={len(self.best_solution)}")

                self.last_improvement_iteration = iteration

            if self.strategy.diversification:
                if self._check_diversification_trigger(iteration - self.last_improvement_iteration):
                    self.diversification_count += 1

            self._perform_debug_actions()
            self._iters += 1

        self.execution_time = self._elapsed_secs()
        return self.best_solution

    def _check_diversification_trigger(self, iters_since_improvement: int) -> bool:
        if self.diversification_count >= len(self.strategy.diversify_at):
            return False

        threshold = self.strategy.diversify_at[self.diversification_count]
        if iters_since_improvement >= threshold:
            self._log(f"{iters_since_improvement} iterations without improvement, diversifying...")
            self.diversify_by_restart(self.strategy.diversify_fractions[self.diversification_count])
            return True
        return False

    def is_tabu(self, element: E) -> bool:
        """Checks if a given move attribute is in the tabu list."""
        return self.tabu_list is not None and element is not None and element in self.tabu_list

    def aspiration_criteria(self, delta_cost: float) -> bool:
        """
        Checks if a tabu move can be accepted.
        Accepts if the move results in a better solution than the best-so-far.
        """
        if self._current_solution is None or self.best_solution is None:
            return False
        return (self._current_solution.cost + delta_cost) < self.best_solution.cost

    def add_to_tabu_list(self, element: Optional[E]):
        """Adds a move attribute (or the None sentinel) to the tabu list."""
        if self.tabu_list is not None:
            self.tabu_list.append(element)
