from abc import ABC, abstractmethod
from dataclasses import dataclass
import time

from typing import Any, Dict, List, Literal, Optional

from .evaluator import Evaluator
from .solution import Solution


@dataclass
class TerminationCriteria:
    max_iterations: int = None
    max_time_secs: float = None

    def __post_init__(self):
        if self.max_iterations is None and self.max_time_secs is None:
            raise ValueError("At least one termination criterion must be set.")
        if self.max_iterations is not None and self.max_iterations < 0:
            raise ValueError("Maximum number of iterations must be non-negative.")
        if self.max_time_secs is not None and self.max_time_secs < 0:
            raise ValueError("Maximum time must be non-negative.")


@dataclass
class DebugOptions:
    verbose: bool = False
    log_history: bool = False


class Solver(ABC):
    def __init__(self, evaluator: Evaluator, termination_criteria: TerminationCriteria, debug_options: DebugOptions = None):
        self.evaluator = evaluator

        self.termination_criteria = termination_criteria
        self.debug_options = debug_options if debug_options is not None else DebugOptions()

        # Execution state properties
        self._iters = 0
        self._start_time = None
        self.execution_time = 0
        self.stop_reason: Literal["max_iterations", "max_time_secs"] = None
        self.history: List[Dict[str, Any]] = []

        self._current_solution: Optional[Solution] = None
        self.best_solution: Optional[Solution] = None

    @abstractmethod
    def solve(self) -> Solution:
        pass

    def _reset_execution_state(self):
        self._iters = 0
        self._start_time = time.time()
        self.execution_time = 0
        self.stop_reason = None
        self.history = []
        self._current_solution = None
        self.best_solution = None

    def _elapsed_secs(self) -> float:
        return time.time() - self._start_time

    def _check_termination(self) -> bool:
        """Check if any termination criteria is met."""

        if self.termination_criteria.max_iterations is not None and self._iters >= self.termination_criteria.max_iterations:
            self.stop_reason = "max_iterations"
            return True
        if self.termination_criteria.max_time_secs is not None and self._elapsed_secs() >= self.termination_criteria.max_time_secs:
            self.stop_reason = "max_time_secs"
            return True
        return False

    def _perform_debug_actions(self):
        """Record the current state when history logging is enabled."""
        if self.debug_options.log_history:
            self.history.append({
                'Iteration': self._iters,
                'Time (s)': self._elapsed_secs(),
                'Best_Cost': self.best_solution.cost if self.best_solution else None,
                'Current_Cost': self._current_solution.cost if self._current_solution else None,
                'Current_Size': len(self._current_solution) if self._current_solution else 0,
            })

    def _log(self, message: str):
        if self.debug_options.verbose:
            print(message)
