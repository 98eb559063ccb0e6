"""
ASCII rendering for gridwalk grids.

Provides two rendering approaches:
1. Plain rendering - one character per cell, optional overlay marks
2. Colored rendering - highlighted coordinates and per-region colors via chalk
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, TypeVar

import simple_chalk as chalk  # type: ignore[import-untyped]

from grid_types import Coordinate, Grid, Heading
from gridwalk import Region

logger = logging.getLogger(__name__)

T = TypeVar("T")

HEADING_CHARS: dict[Heading, str] = {
    Heading.N: "^",
    Heading.E: ">",
    Heading.S: "v",
    Heading.W: "<",
}


def _cell_char(cell: object, char_fn: Callable[[T], str] | None) -> str:
    text = char_fn(cell) if char_fn is not None else str(cell)  # type: ignore[arg-type]
    # Always single character
    return text[0] if text else "?"


def render_plain(
    grid: Grid[T],
    char_fn: Callable[[T], str] | None = None,
    marks: dict[Coordinate, str] | None = None,
) -> str:
    """
    Render a grid as uncolored text, one line per row.

    Args:
        grid: The grid to render
        char_fn: Converts a cell to its display character (default str)
        marks: Characters drawn over specific coordinates

    Returns:
        Rendered text without trailing newline
    """
    marks = marks or {}
    lines = []
    for r, row in enumerate(grid.cells):
        line = []
        for c, cell in enumerate(row):
            coordinate = Coordinate(r, c)
            line.append(marks[coordinate] if coordinate in marks else _cell_char(cell, char_fn))
        lines.append("".join(line))
    return "\n".join(lines)


def render_grid(
    grid: Grid[T],
    char_fn: Callable[[T], str] | None = None,
    highlight: Iterable[Coordinate] = (),
    marks: dict[Coordinate, str] | None = None,
    highlight_fn: Callable[[str], str] | None = None,
) -> str:
    """
    Render a grid with highlighted coordinates.

    Highlighted cells (typically a path or the cells a walk visited) are
    drawn with highlight_fn (default black on white); everything else is
    drawn white.
    """
    marks = marks or {}
    highlighted = set(highlight)
    lines = []
    for r, row in enumerate(grid.cells):
        line_parts = []
        for c, cell in enumerate(row):
            coordinate = Coordinate(r, c)
            char = marks[coordinate] if coordinate in marks else _cell_char(cell, char_fn)
            if coordinate in highlighted:
                line_parts.append(highlight_fn(char) if highlight_fn else chalk.bgWhite.black(char))
            else:
                line_parts.append(chalk.white(char))
        lines.append("".join(line_parts))

    logger.debug("render_grid: %dx%d, %d highlighted", grid.rows, grid.cols, len(highlighted))
    return "\n".join(lines)


def render_regions(
    grid: Grid[T],
    regions: list[Region],
    char_fn: Callable[[T], str] | None = None,
) -> str:
    """Render each region in its own palette color, cycling the palette."""
    # Build color palette for regions
    palette: list[Callable[[str], str]] = [
        chalk.red,
        chalk.green,
        chalk.yellow,
        chalk.blue,
        chalk.magenta,
        chalk.cyan,
        chalk.redBright,
        chalk.greenBright,
        chalk.yellowBright,
        chalk.blueBright,
    ]

    colors: dict[Coordinate, Callable[[str], str]] = {}
    for i, region in enumerate(regions):
        colorize = palette[i % len(palette)]
        for coordinate in region.cells:
            colors[coordinate] = colorize

    lines = []
    for r, row in enumerate(grid.cells):
        line_parts = []
        for c, cell in enumerate(row):
            colorize = colors.get(Coordinate(r, c), lambda s: s)
            line_parts.append(colorize(_cell_char(cell, char_fn)))
        lines.append("".join(line_parts))
    return "\n".join(lines)
