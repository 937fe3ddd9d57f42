from pathlib import Path
from typing import Iterator, List, Union

import numpy as np


class InstanceFormatError(ValueError):
    """Raised when an instance token stream does not match the SCQBF format."""


class _TokenReader:
    """Sequential reader over whitespace-delimited tokens, reporting positions on errors."""

    def __init__(self, tokens: List[str]):
        self._tokens = tokens
        self._pos = 0

    def _next(self, what: str) -> str:
        if self._pos >= len(self._tokens):
            raise InstanceFormatError(f"Unexpected end of input at token {self._pos + 1}: expected {what}.")
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def next_int(self, what: str) -> int:
        token = self._next(what)
        try:
            # integers may be written as doubles, e.g. "3.0"
            value = float(token)
        except ValueError:
            value = None
        if value is None or not value.is_integer():
            raise InstanceFormatError(f"Token {self._pos} ('{token}'): expected integer {what}.")
        return int(value)

    def next_float(self, what: str) -> float:
        token = self._next(what)
        try:
            return float(token)
        except ValueError:
            raise InstanceFormatError(f"Token {self._pos} ('{token}'): expected number {what}.") from None

    def remaining(self) -> int:
        return len(self._tokens) - self._pos


class ScqbfInstance:
    """
    A Set-Covering QBF instance.

    n: number of sets (ground-set elements), equal to the number of universe elements.
    S: n x n boolean coverage matrix, S[i][j] is True when set i covers universe element j.
    A: n x n coefficient matrix; only the upper triangle (diagonal included) is populated.
    """

    def __init__(self, A: np.ndarray, S: np.ndarray, name: str = ""):
        A = np.asarray(A, dtype=float)
        S = np.asarray(S, dtype=bool)

        if A.ndim != 2 or A.shape[0] != A.shape[1]:
            raise ValueError(f"Coefficient matrix must be square, got shape {A.shape}.")
        if S.shape != A.shape:
            raise ValueError(f"Coverage matrix shape {S.shape} does not match coefficient matrix shape {A.shape}.")

        self.name = name
        self.n = A.shape[0]
        self.A = A
        self.S = S

    @classmethod
    def from_file(cls, filepath: Union[str, Path]) -> 'ScqbfInstance':
        """Loads a UTF-8 instance file. Raises OSError or InstanceFormatError."""
        filepath = Path(filepath)
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                text = f.read()
        except UnicodeDecodeError as e:
            raise InstanceFormatError(f"{filepath} is not a UTF-8 text file: {e}") from e
        return cls.from_string(text, name=filepath.stem)

    @classmethod
    def from_string(cls, text: str, name: str = "") -> 'ScqbfInstance':
        reader = _TokenReader(text.split())

        n = reader.next_int("domain size")
        if n < 1:
            raise InstanceFormatError(f"Domain size must be positive, got {n}.")

        set_sizes = []
        for i in range(n):
            size = reader.next_int(f"size of set {i}")
            if size < 0 or size > n:
                raise InstanceFormatError(f"Size of set {i} must be in [0, {n}], got {size}.")
            set_sizes.append(size)

        S = np.zeros((n, n), dtype=bool)
        for i, size in enumerate(set_sizes):
            for _ in range(size):
                var_idx = reader.next_int(f"element covered by set {i}")
                if not (1 <= var_idx <= n):
                    raise InstanceFormatError(
                        f"Set {i} covers element {var_idx}, outside the 1-based range [1, {n}]."
                    )
                S[i, var_idx - 1] = True

        A = np.zeros((n, n), dtype=float)
        for i in range(n):
            for j in range(i, n):
                A[i, j] = reader.next_float(f"coefficient A[{i}][{j}]")

        if reader.remaining():
            raise InstanceFormatError(f"{reader.remaining()} unexpected trailing tokens after the coefficient matrix.")

        return cls(A, S, name=name)

    def to_lines(self) -> Iterator[str]:
        """Lines of the instance file format for this instance."""
        yield str(self.n)
        yield " ".join(str(int(size)) for size in self.S.sum(axis=1))
        for i in range(self.n):
            yield " ".join(str(j + 1) for j in np.flatnonzero(self.S[i]))
        for i in range(self.n):
            yield " ".join(repr(float(value)) if not float(value).is_integer() else str(int(value))
                           for value in self.A[i, i:])

    def __repr__(self) -> str:
        return f"ScqbfInstance(name='{self.name}', n={self.n}, coverage_density={self.S.mean():.3f})"
