from abc import ABC, abstractmethod
from typing import Generic, List, TypeVar

from .solution import Solution

E = TypeVar('E')


class Evaluator(ABC, Generic[E]):
    """
    Interface (Abstract Base Class) for all problem evaluators.
    It defines the contract that a concrete evaluator class MUST implement
    to be compatible with the Tabu Search framework.

    Deltas follow the minimization convention of the search: a negative value
    is an improvement. Moves that would break feasibility return a non-finite
    value, which the search treats as "never apply".
    """

    @abstractmethod
    def get_domain_size(self) -> int:
        """Number of ground-set elements."""
        pass

    @abstractmethod
    def evaluate(self, solution: Solution[E]) -> float:
        """Calculates the total cost of a solution and stores it in solution.cost."""
        pass

    @abstractmethod
    def evaluate_insertion_cost(self, solution: Solution[E], element: E) -> float:
        """Calculates the cost delta of adding an element to the solution."""
        pass

    @abstractmethod
    def evaluate_removal_cost(self, solution: Solution[E], element: E) -> float:
        """Calculates the cost delta of removing an element from the solution."""
        pass

    @abstractmethod
    def evaluate_exchange_cost(self, solution: Solution[E], elem_in: E, elem_out: E) -> float:
        """Calculates the cost delta of swapping elem_out for elem_in."""
        pass

    @abstractmethod
    def evaluate_double_exchange_cost(self, solution: Solution[E], elem_in1: E, elem_in2: E, elem_out: E) -> float:
        """Calculates the cost delta of adding elem_in1 and elem_in2 while removing elem_out."""
        pass

    @abstractmethod
    def is_feasible(self, solution: Solution[E]) -> bool:
        pass

    @abstractmethod
    def candidates(self, solution: Solution[E]) -> List[E]:
        """Elements eligible to enter the solution."""
        pass
