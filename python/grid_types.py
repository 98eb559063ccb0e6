"""
Shared type definitions for the gridwalk system.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Iterator, TypeVar

T = TypeVar("T")


# =============================================================================
# Coordinates and Headings
# =============================================================================


@dataclass(frozen=True, order=True)
class Coordinate:
    """A (row, col) lattice position. Components are never negative."""

    row: int
    col: int

    def __post_init__(self) -> None:
        if self.row < 0 or self.col < 0:
            raise ValueError(f"Coordinate components must be non-negative, got ({self.row}, {self.col})")

    def offset(self, d_row: int, d_col: int) -> Coordinate | None:
        """
        Translate by a signed delta.

        Returns None when either resulting component would be negative.
        Upper bounds are not checked here; that is the grid's job.
        """
        row = self.row + d_row
        col = self.col + d_col
        if row < 0 or col < 0:
            return None
        return Coordinate(row, col)

    def step(self, heading: Heading) -> Coordinate | None:
        """Move one cell along a heading."""
        d_row, d_col = heading.delta
        return self.offset(d_row, d_col)

    def manhattan_distance(self, other: Coordinate) -> int:
        return abs(self.row - other.row) + abs(self.col - other.col)

    def __str__(self) -> str:
        return f"({self.row}, {self.col})"


class Heading(Enum):
    """Cardinal direction an agent faces."""

    N = "N"  # Up (decreasing row)
    E = "E"  # Right (increasing col)
    S = "S"  # Down (increasing row)
    W = "W"  # Left (decreasing col)

    @property
    def delta(self) -> tuple[int, int]:
        """(row_delta, col_delta) for one step."""
        return _DELTAS[self]

    def turn_right(self) -> Heading:
        """Rotate 90 degrees clockwise."""
        return _CLOCKWISE[(_CLOCKWISE.index(self) + 1) % 4]

    def turn_left(self) -> Heading:
        """Rotate 90 degrees counter-clockwise."""
        return _CLOCKWISE[(_CLOCKWISE.index(self) - 1) % 4]

    def reverse(self) -> Heading:
        return _CLOCKWISE[(_CLOCKWISE.index(self) + 2) % 4]

    @classmethod
    def from_delta(cls, d_row: int, d_col: int) -> Heading:
        for heading, delta in _DELTAS.items():
            if delta == (d_row, d_col):
                return heading
        raise ValueError(f"Not a unit delta: ({d_row}, {d_col})")


_DELTAS: dict[Heading, tuple[int, int]] = {
    Heading.N: (-1, 0),
    Heading.E: (0, 1),
    Heading.S: (1, 0),
    Heading.W: (0, -1),
}

_CLOCKWISE: tuple[Heading, ...] = (Heading.N, Heading.E, Heading.S, Heading.W)

# Enumeration order matters: corner counting and tie-breaking rely on it.
ORTHOGONAL_OFFSETS: tuple[tuple[int, int], ...] = (
    (-1, 0),  # N
    (1, 0),  # S
    (0, -1),  # W
    (0, 1),  # E
)

DIAGONAL_OFFSETS: tuple[tuple[int, int], ...] = (
    (-1, -1),  # NW
    (-1, 1),  # NE
    (1, -1),  # SW
    (1, 1),  # SE
)


# =============================================================================
# Grid Definition
# =============================================================================


@dataclass(eq=True)
class Grid(Generic[T]):
    """
    A dense 2D table of cells addressed by Coordinate.

    Rows must all have the same length; a ragged table is rejected at
    construction. Indexing outside the grid raises IndexError, so callers
    bounds-check with in_bounds/checked_get or the neighbor helpers first.
    """

    cells: list[list[T]]

    def __post_init__(self) -> None:
        if self.cells:
            cols = len(self.cells[0])
            mismatched = [(i, len(row)) for i, row in enumerate(self.cells) if len(row) != cols]
            if mismatched:
                error_msg = (
                    f"Inconsistent row lengths in grid\n"
                    f"  Expected: {cols} columns (from row 0)\n"
                    f"  Mismatched rows:\n"
                )
                for row_idx, actual_cols in mismatched:
                    error_msg += f"    Row {row_idx}: {actual_cols} columns\n"
                error_msg += "  All rows must have the same number of cells"
                raise ValueError(error_msg)

    @classmethod
    def filled(cls, rows: int, cols: int, value: T) -> Grid[T]:
        """Build a rows x cols grid with every cell set to value."""
        if rows < 0 or cols < 0:
            raise ValueError(f"Grid dimensions must be non-negative, got {rows}x{cols}")
        return cls([[value] * cols for _ in range(rows)])

    @property
    def rows(self) -> int:
        return len(self.cells)

    @property
    def cols(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    def dimensions(self) -> tuple[int, int]:
        return (self.rows, self.cols)

    def in_bounds(self, coordinate: Coordinate) -> bool:
        return coordinate.row < self.rows and coordinate.col < self.cols

    def get(self, coordinate: Coordinate) -> T:
        if not self.in_bounds(coordinate):
            raise IndexError(f"{coordinate} is outside {self.rows}x{self.cols} grid")
        return self.cells[coordinate.row][coordinate.col]

    def set(self, coordinate: Coordinate, value: T) -> None:
        if not self.in_bounds(coordinate):
            raise IndexError(f"{coordinate} is outside {self.rows}x{self.cols} grid")
        self.cells[coordinate.row][coordinate.col] = value

    def __getitem__(self, coordinate: Coordinate) -> T:
        return self.get(coordinate)

    def __setitem__(self, coordinate: Coordinate, value: T) -> None:
        self.set(coordinate, value)

    def checked_get(self, coordinate: Coordinate | None) -> T | None:
        """Bounds-checked read; None for an absent or out-of-range coordinate."""
        if coordinate is None or not self.in_bounds(coordinate):
            return None
        return self.cells[coordinate.row][coordinate.col]

    def coordinates(self) -> Iterator[Coordinate]:
        """All coordinates in row-major order."""
        for r in range(self.rows):
            for c in range(self.cols):
                yield Coordinate(r, c)

    def indexed(self) -> Iterator[tuple[Coordinate, T]]:
        """(Coordinate, cell) pairs in row-major order. Each call starts afresh."""
        for r, row in enumerate(self.cells):
            for c, cell in enumerate(row):
                yield Coordinate(r, c), cell

    def find(self, predicate: Callable[[T], bool]) -> Coordinate | None:
        """First coordinate (row-major) whose cell satisfies predicate."""
        for coordinate, cell in self.indexed():
            if predicate(cell):
                return coordinate
        return None

    def find_all(self, predicate: Callable[[T], bool]) -> list[Coordinate]:
        return [coordinate for coordinate, cell in self.indexed() if predicate(cell)]

    def copy(self) -> Grid[T]:
        """Independent clone; cells themselves are shared, rows are not."""
        return Grid([list(row) for row in self.cells])

    def with_cell(self, coordinate: Coordinate, value: T) -> Grid[T]:
        """Clone with a single cell replaced."""
        out = self.copy()
        out[coordinate] = value
        return out
