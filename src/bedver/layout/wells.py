"""Positional indexing of wells on a plate.

A well is addressed by its name (``A1`` .. ``H12``) or by zero-indexed
``(row, column)`` co-ordinates. The indexers map a well onto its position in a
given enumeration order; ``scale`` groups ``scale x scale`` blocks of wells
(e.g. ``2`` for quadrant stamps of a 384-well plate onto 96-well plates).
"""

from __future__ import annotations

import re
from collections.abc import Callable

_WELL_PATTERN = re.compile(r"^([A-Z]{1,2})0*([1-9][0-9]*)$")

PositionIndexer = Callable[[int, int, int, int, int], int]


def parse_well(name: str) -> tuple[int, int]:
    """Return zero-indexed ``(row, column)`` for a well name such as ``B3``."""
    match = _WELL_PATTERN.match(name.strip().upper())
    if match is None:
        raise ValueError(f"Invalid well name: {name!r}")
    letters, number = match.groups()
    row = 0
    for letter in letters:
        row = row * 26 + (ord(letter) - ord("A") + 1)
    return row - 1, int(number) - 1


def validate_geometry(height: int, width: int, scale: int) -> None:
    """Reject plate dimensions the indexers cannot work with."""
    if height < 1 or width < 1:
        raise ValueError(f"Plate dimensions must be positive (rows={height}, columns={width})")
    if scale < 1:
        raise ValueError(f"Scale must be at least 1 (scale={scale})")
    if height % scale or width % scale:
        raise ValueError(
            f"Plate of {height}x{width} wells cannot be divided into blocks of scale {scale}"
        )


def column_index(row: int, column: int, scale: int, height: int, width: int) -> int:
    """Forward column-major order: A1, B1, .. H1, A2 .."""
    _check_bounds(row, column, height, width)
    return (column // scale) * (height // scale) + (row // scale)


def quadrant_index(row: int, column: int, scale: int, height: int, width: int) -> int:
    """Quadrant first, then column-major order inside the quadrant."""
    _check_bounds(row, column, height, width)
    quadrant = (column % scale) * scale + (row % scale)
    per_quadrant = (height // scale) * (width // scale)
    return quadrant * per_quadrant + column_index(row, column, scale, height, width)


def inverse_rows_index(row: int, column: int, scale: int, height: int, width: int) -> int:
    """Tag index for layouts laid out in inverse rows (H12 -> A1)."""
    _check_bounds(row, column, height, width)
    tag_column = column // scale
    tag_row = row // scale
    return (height // scale) * (width // scale) - (tag_column + (width // scale) * tag_row) - 1


WELL_ORDERS: dict[str, PositionIndexer] = {
    "column": column_index,
    "quadrant": quadrant_index,
    "inverse_rows": inverse_rows_index,
}


def position_index(well: str, order: str, *, scale: int = 1, height: int = 8, width: int = 12) -> int:
    """Index of ``well`` under the named enumeration ``order``."""
    try:
        indexer = WELL_ORDERS[order]
    except KeyError as exc:
        raise ValueError(f"Unknown well order '{order}'") from exc
    row, column = parse_well(well)
    return indexer(row, column, scale, height, width)


def _check_bounds(row: int, column: int, height: int, width: int) -> None:
    if not (0 <= row < height and 0 <= column < width):
        raise ValueError(f"Well ({row}, {column}) is outside a {height}x{width} plate")
