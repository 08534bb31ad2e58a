"""
Grid sampling of two-variable expressions for surface plots.

A failing point (division by zero, domain error, ...) becomes ``None`` in
the grid and is counted; it never aborts the rest of the grid.
"""

from typing import Mapping, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict

from ..core.config import get_settings
from ..core.errors import MathKitError
from ..core.logging import get_context_logger
from ..parser.ast import ASTNode
from ..parser.context import Context
from ..parser.visitors import EvalVisitor

logger = get_context_logger(__name__, component="surface")


class SurfaceGrid(BaseModel):
    """Sampled surface; ``zs[i][j]`` is the value at ``(xs[j], ys[i])``"""

    model_config = ConfigDict(frozen=True)

    xs: list[float]
    ys: list[float]
    zs: list[list[Optional[float]]]
    failures: int = 0

    @property
    def shape(self) -> tuple[int, int]:
        return (len(self.ys), len(self.xs))

    def to_numpy(self) -> np.ndarray:
        """Values as a float array with NaN where a point failed."""
        return np.array(
            [[np.nan if z is None else z for z in row] for row in self.zs],
            dtype=float,
        )


def sample_surface(
    ast: ASTNode,
    x_range: tuple[float, float],
    y_range: tuple[float, float],
    resolution: int = 50,
    x_name: str = "x",
    y_name: str = "y",
    scope: Mapping[str, float] | None = None,
    context: Context | None = None,
) -> SurfaceGrid:
    """
    Evaluate ``ast`` on a ``resolution`` x ``resolution`` grid.

    Args:
        ast: Expression tree in two variables
        x_range: (start, stop) for the first variable, inclusive
        y_range: (start, stop) for the second variable, inclusive
        resolution: Points per axis (2..MAX_SURFACE_RESOLUTION)
        x_name: Name of the first variable
        y_name: Name of the second variable
        scope: Values for any other variables
        context: Mathematical context

    Raises:
        ValueError: If the resolution is out of bounds
    """
    limit = get_settings().MAX_SURFACE_RESOLUTION
    if not 2 <= resolution <= limit:
        raise ValueError(f"Resolution must be between 2 and {limit}, got {resolution}")

    xs = np.linspace(x_range[0], x_range[1], resolution)
    ys = np.linspace(y_range[0], y_range[1], resolution)

    base = {name.lower(): value for name, value in (scope or {}).items()}
    zs: list[list[Optional[float]]] = []
    failures = 0

    for y in ys:
        row: list[Optional[float]] = []
        for x in xs:
            # Fresh scope per point
            point = {**base, x_name.lower(): float(x), y_name.lower(): float(y)}
            try:
                row.append(ast.accept(EvalVisitor(point, context)))
            except MathKitError:
                row.append(None)
                failures += 1
        zs.append(row)

    if failures:
        logger.debug(
            "Surface points failed",
            extra_data={"failures": failures, "points": resolution * resolution},
        )

    return SurfaceGrid(xs=xs.tolist(), ys=ys.tolist(), zs=zs, failures=failures)
