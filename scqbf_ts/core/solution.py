from typing import Generic, Iterator, List, TypeVar

E = TypeVar('E')


class StaleCostError(RuntimeError):
    """Raised when a solution's cost is read after a mutation and before re-evaluation."""


class Solution(Generic[E]):
    """
    Generic solution for subset-selection problems: an ordered collection of
    selected ground-set elements (no duplicates) plus a cached cost.

    The cost is only written by an Evaluator. Any add/remove invalidates it
    until the next evaluation call.
    """

    def __init__(self, elements: List[E] = None):
        self._elements: List[E] = []
        self._members = set()
        self._cost: float = float('inf')
        self._cost_valid: bool = False

        for element in elements or []:
            self.add(element)

    @property
    def cost(self) -> float:
        if not self._cost_valid:
            raise StaleCostError("Solution was modified after its last evaluation.")
        return self._cost

    @cost.setter
    def cost(self, value: float):
        self._cost = value
        self._cost_valid = True

    @property
    def is_cost_valid(self) -> bool:
        return self._cost_valid

    @property
    def elements(self) -> List[E]:
        return list(self._elements)

    def add(self, element: E):
        if element in self._members:
            return
        self._elements.append(element)
        self._members.add(element)
        self._cost_valid = False

    def remove(self, element: E):
        if element not in self._members:
            raise ValueError(f"Element {element} is not in the solution.")
        self._elements.remove(element)
        self._members.discard(element)
        self._cost_valid = False

    def copy(self) -> 'Solution[E]':
        new_solution = self.__class__(self._elements)
        new_solution._cost = self._cost
        new_solution._cost_valid = self._cost_valid
        return new_solution

    def __contains__(self, element) -> bool:
        return element in self._members

    def __iter__(self) -> Iterator[E]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    def __repr__(self) -> str:
        cost_str = f"{self._cost:.2f}" if self._cost_valid else "stale"
        return f"Solution(cost={cost_str}, size={len(self)}, elements={self._elements})"
