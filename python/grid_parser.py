"""
Grid parsing utilities for gridwalk.

Provides two layouts of the same character format:
1. Multi-line text, one grid row per line
2. Compact single-line text with rows separated by |
"""

from __future__ import annotations

import textwrap
from typing import Callable, TypeVar

from grid_types import Coordinate, Grid

__all__ = ["parse_char_grid", "parse_digit_grid", "extract_markers"]

T = TypeVar("T")

# Height-map cells that are not digits (impassable in published examples)
IMPASSABLE_HEIGHT = -1


def _split_rows(text: str) -> list[str]:
    """
    Split a definition into row strings, accepting either layout.

    Spaces are cells like any other character; only line endings are
    removed from each row.
    """
    stripped = textwrap.dedent(text).strip("\r\n")
    if "\n" not in stripped and "|" in stripped:
        return stripped.split("|")
    return [line.rstrip("\r") for line in stripped.split("\n")]


def parse_char_grid(text: str, cell_fn: Callable[[str], T] | None = None) -> Grid[T]:
    """
    Parse a rectangular character grid.

    Format:
    - One row per line, or a single line with rows separated by |
    - Each character is one cell
    - Common indentation and surrounding blank lines are ignored

    Example:
        "#.#|..." or
        \"\"\"
        #.#
        ...
        \"\"\"
        Creates a 2x3 grid [['#', '.', '#'], ['.', '.', '.']]

    Args:
        text: The grid definition
        cell_fn: Optional converter applied to every character

    Returns:
        Grid of converted cells (characters when cell_fn is None)

    Raises:
        ValueError: If the rows have inconsistent lengths or a character
            is rejected by cell_fn
    """
    row_strings = _split_rows(text)
    rows: list[list[T]] = []

    for row_idx, row_str in enumerate(row_strings):
        cells: list[T] = []
        for col_idx, char in enumerate(row_str):
            if cell_fn is None:
                cells.append(char)  # type: ignore[arg-type]
                continue
            try:
                cells.append(cell_fn(char))
            except (KeyError, ValueError) as e:
                raise ValueError(
                    f"Invalid cell character '{char}'\n"
                    f"  Row {row_idx}: \"{row_str}\"\n"
                    f"  Position: column {col_idx}"
                ) from e
        rows.append(cells)

    if rows:
        cols = len(rows[0])
        mismatched = [(i, len(row)) for i, row in enumerate(rows) if len(row) != cols]
        if mismatched:
            error_msg = (
                f"Inconsistent row lengths\n"
                f"  Expected: {cols} columns (from row 0)\n"
                f"  Mismatched rows:\n"
            )
            for row_idx, actual_cols in mismatched:
                error_msg += f"    Row {row_idx}: {actual_cols} columns - \"{row_strings[row_idx]}\"\n"
            error_msg += "  All rows must have the same number of cells"
            raise ValueError(error_msg)

    return Grid(rows)


def _height(char: str) -> int:
    if char.isdigit():
        return int(char)
    if char == ".":
        return IMPASSABLE_HEIGHT
    raise ValueError(f"not a height: {char!r}")


def parse_digit_grid(text: str) -> Grid[int]:
    """Parse a height map of single digits; '.' becomes IMPASSABLE_HEIGHT."""
    return parse_char_grid(text, _height)


def extract_markers(grid: Grid[str], markers: str, replacement: str = ".") -> dict[str, Coordinate]:
    """
    Locate single-occurrence marker characters and blank them out.

    The grid is modified in place: each marker cell is overwritten with
    replacement so that the remaining grid holds only terrain.

    Args:
        grid: Character grid to scan
        markers: The marker characters to find, e.g. "SE"
        replacement: Character written over each marker

    Returns:
        Dict mapping each marker character to its coordinate

    Raises:
        ValueError: If a marker is missing or appears more than once
    """
    found: dict[str, list[Coordinate]] = {marker: [] for marker in markers}
    for coordinate, cell in grid.indexed():
        if cell in found:
            found[cell].append(coordinate)

    result: dict[str, Coordinate] = {}
    for marker, coordinates in found.items():
        if not coordinates:
            raise ValueError(f"Marker '{marker}' not found in {grid.rows}x{grid.cols} grid")
        if len(coordinates) > 1:
            raise ValueError(
                f"Marker '{marker}' appears {len(coordinates)} times\n"
                f"  At: {', '.join(str(c) for c in coordinates)}\n"
                f"  Markers must be unique"
            )
        result[marker] = coordinates[0]
        grid[coordinates[0]] = replacement

    return result
