"""
Dense real matrices and linear-system solving.

Matrices are immutable value objects; every operation returns a new Matrix.
Determinants, inverses and solves go through numpy.linalg (LU factorization
with partial pivoting). Cramer's rule is available as an alternative solve.
A system (or an inverse) is treated as singular when ``|det| < epsilon``;
``epsilon`` defaults to the SINGULAR_EPSILON setting.
"""

from __future__ import annotations

from typing import Any, Iterable, Literal, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict

from ..core.config import get_settings
from ..core.errors import ErrorKind, LinearAlgebraError, dimension_mismatch
from ..core.logging import get_context_logger

logger = get_context_logger(__name__, component="linalg")

SolveMethod = Literal["gaussian", "cramer"]


def _singular(detail: str) -> LinearAlgebraError:
    return LinearAlgebraError(ErrorKind.SINGULAR, detail=detail)


def _epsilon(epsilon: float | None) -> float:
    return get_settings().SINGULAR_EPSILON if epsilon is None else epsilon


class Matrix(BaseModel):
    """
    Rectangular matrix of floats.

    Construction rejects empty and ragged input with DimensionMismatch.

    Examples:
        >>> Matrix([[2, 0], [0, 3]]).determinant()
        6.0
        >>> (Matrix([[1, 2], [3, 4]]) @ Matrix.identity(2)).to_list()
        [[1.0, 2.0], [3.0, 4.0]]
    """

    model_config = ConfigDict(frozen=True)

    rows: list[list[float]]

    def __init__(self, rows: Iterable[Iterable[Any]] | np.ndarray | "Matrix", **kwargs: Any) -> None:
        """Initialize a Matrix ensuring rectangular structure."""
        super().__init__(rows=self._coerce_rows(rows), **kwargs)

    @staticmethod
    def _coerce_rows(raw_rows: Any) -> list[list[float]]:
        """Convert raw row iterables into rows of floats."""
        if isinstance(raw_rows, Matrix):
            return [list(row) for row in raw_rows.rows]

        if isinstance(raw_rows, np.ndarray):
            if raw_rows.ndim != 2:
                raise dimension_mismatch(f"Expected a 2-D array, got {raw_rows.ndim}-D")
            raw_rows = raw_rows.tolist()

        if not isinstance(raw_rows, Iterable) or isinstance(raw_rows, (str, bytes)):
            raise dimension_mismatch("Matrix rows must be sequences of numbers")

        normalized: list[list[float]] = []
        for row in raw_rows:
            if not isinstance(row, Iterable) or isinstance(row, (str, bytes)):
                raise dimension_mismatch("Matrix rows must be sequences of numbers")
            normalized.append([float(cell) for cell in row])

        if not normalized or not normalized[0]:
            raise dimension_mismatch("Matrix must have at least one row and one column")

        row_len = len(normalized[0])
        for index, row in enumerate(normalized):
            if len(row) != row_len:
                raise dimension_mismatch(
                    f"Row {index} has {len(row)} entries, expected {row_len}"
                )
        return normalized

    @classmethod
    def identity(cls, n: int) -> Matrix:
        """Return the n x n identity matrix."""
        if n < 1:
            raise dimension_mismatch(f"Identity size must be positive, got {n}")
        return cls([[1.0 if i == j else 0.0 for j in range(n)] for i in range(n)])

    @classmethod
    def from_numpy(cls, array: np.ndarray) -> Matrix:
        return cls(array)

    @property
    def shape(self) -> tuple[int, int]:
        """Get matrix dimensions (rows, cols)."""
        return (len(self.rows), len(self.rows[0]))

    @property
    def is_square(self) -> bool:
        rows, cols = self.shape
        return rows == cols

    def to_list(self) -> list[list[float]]:
        """Convert to a nested Python list (a copy)."""
        return [list(row) for row in self.rows]

    def to_numpy(self) -> np.ndarray:
        """Convert to a NumPy array."""
        return np.array(self.rows, dtype=float)

    def __getitem__(self, index: tuple[int, int] | int) -> Any:
        """Get element by (row, col) or a row by index."""
        if isinstance(index, tuple):
            row, col = index
            return self.rows[row][col]
        return list(self.rows[index])

    def __str__(self) -> str:
        return "[" + ", ".join("[" + ", ".join(f"{v:g}" for v in row) + "]" for row in self.rows) + "]"

    # Arithmetic

    def transpose(self) -> Matrix:
        """Return the transpose of the matrix."""
        return Matrix([list(col) for col in zip(*self.rows)])

    def add(self, other: Matrix) -> Matrix:
        """Element-wise sum; shapes must match."""
        if self.shape != other.shape:
            raise dimension_mismatch(f"Cannot add {self.shape} and {other.shape} matrices")
        return Matrix(self.to_numpy() + other.to_numpy())

    def subtract(self, other: Matrix) -> Matrix:
        """Element-wise difference; shapes must match."""
        if self.shape != other.shape:
            raise dimension_mismatch(f"Cannot subtract {other.shape} from {self.shape} matrix")
        return Matrix(self.to_numpy() - other.to_numpy())

    def multiply(self, other: Matrix | float | int) -> Matrix:
        """Matrix product, or scalar multiplication for a number."""
        if isinstance(other, Matrix):
            if self.shape[1] != other.shape[0]:
                raise dimension_mismatch(f"Cannot multiply {self.shape} by {other.shape} matrices")
            return Matrix(self.to_numpy() @ other.to_numpy())
        return Matrix(self.to_numpy() * float(other))

    def __add__(self, other: Any) -> Matrix:
        if isinstance(other, Matrix):
            return self.add(other)
        return NotImplemented

    def __sub__(self, other: Any) -> Matrix:
        if isinstance(other, Matrix):
            return self.subtract(other)
        return NotImplemented

    def __mul__(self, other: Any) -> Matrix:
        if isinstance(other, (Matrix, int, float)):
            return self.multiply(other)
        return NotImplemented

    def __rmul__(self, other: Any) -> Matrix:
        if isinstance(other, (int, float)):
            return self.multiply(other)
        return NotImplemented

    def __matmul__(self, other: Any) -> Matrix:
        if isinstance(other, Matrix):
            return self.multiply(other)
        return NotImplemented

    # Linear algebra

    def _require_square(self, operation: str) -> int:
        rows, cols = self.shape
        if rows != cols:
            raise dimension_mismatch(f"{operation} requires a square matrix, got {rows}x{cols}")
        return rows

    def determinant(self) -> float:
        """
        Determinant from the LU factorization (partial pivoting).

        Raises:
            LinearAlgebraError: DimensionMismatch for non-square matrices
        """
        self._require_square("Determinant")
        return float(np.linalg.det(self.to_numpy()))

    def _check_invertible(self, epsilon: float | None, operation: str) -> float:
        det = self.determinant()
        if abs(det) < _epsilon(epsilon):
            logger.warning(
                "Singular matrix",
                extra_data={"operation": operation, "shape": self.shape, "determinant": det},
            )
            raise _singular(f"Determinant is {det:g}; no unique {operation} exists")
        return det

    def inverse(self, epsilon: float | None = None) -> Matrix:
        """
        Calculate the matrix inverse.

        Raises:
            LinearAlgebraError: DimensionMismatch if not square, Singular if |det| < epsilon
        """
        self._require_square("Inverse")
        self._check_invertible(epsilon, "inverse")

        try:
            return Matrix(np.linalg.inv(self.to_numpy()))
        except np.linalg.LinAlgError:
            raise _singular("Matrix is singular (not invertible)") from None

    def solve(
        self,
        b: Sequence[float] | Matrix,
        method: SolveMethod = "gaussian",
        epsilon: float | None = None,
    ) -> list[float]:
        """
        Solve ``self @ x = b`` for x.

        Args:
            b: Right-hand side, a sequence or a single-column Matrix
            method: "gaussian" (LU elimination) or "cramer"
            epsilon: Singularity threshold on |det|

        Raises:
            LinearAlgebraError: DimensionMismatch or Singular
        """
        n = self._require_square("Solve")
        rhs = _column(b)
        if len(rhs) != n:
            raise dimension_mismatch(f"Right-hand side has {len(rhs)} entries, expected {n}")

        if method not in ("gaussian", "cramer"):
            raise ValueError(f"Unknown solve method: {method}")

        det = self._check_invertible(epsilon, "solution")
        a = self.to_numpy()
        b_vec = np.array(rhs, dtype=float)

        if method == "cramer":
            solution = []
            for i in range(n):
                replaced = a.copy()
                replaced[:, i] = b_vec
                solution.append(float(np.linalg.det(replaced)) / det)
        else:
            try:
                solution = np.linalg.solve(a, b_vec).tolist()
            except np.linalg.LinAlgError:
                raise _singular("Matrix is singular (no unique solution)") from None

        logger.debug("Solved linear system", extra_data={"size": n, "method": method})
        return solution


def _column(b: Sequence[float] | Matrix) -> list[float]:
    if isinstance(b, Matrix):
        rows, cols = b.shape
        if cols != 1:
            raise dimension_mismatch(f"Right-hand side must be a single column, got {rows}x{cols}")
        return [row[0] for row in b.rows]
    return [float(v) for v in b]


def solve_linear_system(
    coefficients: Sequence[Sequence[float]] | Matrix,
    constants: Sequence[float],
    method: SolveMethod = "gaussian",
    epsilon: float | None = None,
) -> list[float]:
    """
    Solve a square linear system.

    Example:
        2x + 3y = 7, x - y = 1

        >>> solve_linear_system([[2, 3], [1, -1]], [7, 1])
        [2.0, 1.0]
    """
    return Matrix(coefficients).solve(constants, method=method, epsilon=epsilon)
