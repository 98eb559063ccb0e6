"""
Demonstration drivers for the gridwalk toolkit.

Each puzzle parses its published sample input, runs it through the grid
and search core, and reports two answers as `part1: <n>` / `part2: <n>`.
"""

from __future__ import annotations

import argparse
import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Iterator

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ascii_render import render_grid, render_regions
from grid_parser import extract_markers, parse_char_grid, parse_digit_grid
from grid_types import Coordinate, Grid, Heading
from gridwalk import (
    MazeRules,
    SearchResult,
    astar,
    astar_bag,
    bfs_distances,
    cells_at_distance,
    count_loop_placements,
    count_paths,
    dijkstra,
    find_chains,
    find_regions,
    grid_successors,
    heading_successors,
    manhattan_heuristic,
    open_neighbors,
    orthogonal_neighbors,
    parallel_count,
    simulate_walk,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Sample Inputs
# =============================================================================


GUARD_MAP = """
....#.....
.........#
..........
..#.......
.......#..
..........
.#..^.....
........#.
#.........
......#...
"""

ANTENNA_MAP = """
............
........0...
.....0......
.......0....
....0.......
......A.....
............
............
........A...
.........A..
............
............
"""

TRAIL_MAP = """
89010123
78121874
87430965
96549874
45678903
32019012
01329801
10456732
"""

GARDEN_MAP = """
RRRRIICCFF
RRRRIICCCF
VVRRRCCFFF
VVRCCCJFFF
VVVVCJJCFE
VVIVCCJJEE
VVIIICJJEE
MIIIIIJJEE
MIIISIJEEE
MMMISSJEEE
"""

REINDEER_MAZE = """
###############
#.......#....E#
#.#.###.#.###.#
#.....#.#...#.#
#.###.#####.#.#
#.#.#.......#.#
#.#.#####.###.#
#...........#.#
###.#.#####.#.#
#...#.....#.#.#
#.#.#.###.#.#.#
#.....#...#.#.#
#.###.#.#.#.#.#
#S..#.....#...#
###############
"""

FALLING_BYTES = """
5,4
4,2
4,5
3,0
2,1
6,3
2,4
1,5
0,6
3,3
2,6
5,1
1,2
5,5
2,5
6,5
1,4
0,4
6,4
1,1
6,1
1,0
0,5
1,6
2,0
"""

RACE_TRACK = """
###############
#...#...#.....#
#.#.#.#.#.###.#
#S#...#.#.#...#
#######.#.#.###
#######.#.#...#
#######.#.###.#
###..E#...#...#
###.#######.###
#...###...#...#
#.#####.#.###.#
#.#...#.#.#...#
#.#.#.#.#.#.###
#...#...#...###
###############
"""


def is_wall(cell: str) -> bool:
    return cell == "#"


def is_open(cell: str) -> bool:
    return cell != "#"


@dataclass(frozen=True)
class Answers:
    part1: int | str
    part2: int | str
    picture: str | None = None


# =============================================================================
# Guard Walk
# =============================================================================


def guard_walk(text: str = GUARD_MAP, max_workers: int | None = None) -> Answers:
    """Distinct cells the guard patrols; single obstacles that trap it in a loop."""
    grid = parse_char_grid(text)
    start = extract_markers(grid, "^")["^"]
    summary = simulate_walk(grid, start, Heading.N, is_wall)
    loops = count_loop_placements(grid, start, Heading.N, is_wall, "#", max_workers=max_workers)
    picture = render_grid(grid, highlight=summary.visited, marks={start: "^"})
    return Answers(len(summary.visited), loops, picture)


# =============================================================================
# Antenna Antinodes
# =============================================================================


def _ray(grid: Grid[str], origin: Coordinate, d_row: int, d_col: int) -> Iterator[Coordinate]:
    """Successive in-bounds offsets from origin, origin excluded."""
    current = origin.offset(d_row, d_col)
    while current is not None and grid.in_bounds(current):
        yield current
        current = current.offset(d_row, d_col)


def antenna_antinodes(text: str = ANTENNA_MAP) -> Answers:
    """
    Antinodes of same-frequency antenna pairs.

    Part 1 counts the single point beyond each antenna at the pair's
    spacing. Part 2 counts every in-line point, antennas included.
    """
    grid = parse_char_grid(text)
    antennas: dict[str, list[Coordinate]] = {}
    for coordinate, cell in grid.indexed():
        if cell != ".":
            antennas.setdefault(cell, []).append(coordinate)

    near: set[Coordinate] = set()
    in_line: set[Coordinate] = set()
    for positions in antennas.values():
        for a, b in itertools.combinations(positions, 2):
            d_row, d_col = a.row - b.row, a.col - b.col
            for origin, sign in ((a, 1), (b, -1)):
                ray = list(_ray(grid, origin, sign * d_row, sign * d_col))
                near.update(ray[:1])
                in_line.update(ray)
            in_line.update((a, b))

    return Answers(len(near), len(in_line), render_grid(grid, highlight=in_line))


# =============================================================================
# Trailheads
# =============================================================================


def _climbs(cell: int, next_cell: int) -> bool:
    return next_cell - cell == 1


def trailheads(text: str = TRAIL_MAP) -> Answers:
    """Summed trailhead scores (distinct peaks) and ratings (distinct trails)."""
    grid = parse_digit_grid(text)
    starts = grid.find_all(lambda h: h == 0)

    score = 0
    for start in starts:
        chains = find_chains(grid, start, _climbs, 10)
        score += len({chain[-1] for chain in chains})

    def uphill(coordinate: Coordinate) -> list[Coordinate]:
        return [n for n in orthogonal_neighbors(grid, coordinate) if _climbs(grid[coordinate], grid[n])]

    memo: dict[Coordinate, int] = {}
    rating = sum(count_paths(start, uphill, lambda c: grid[c] == 9, memo) for start in starts)
    return Answers(score, rating)


# =============================================================================
# Garden Regions
# =============================================================================


def garden_fences(text: str = GARDEN_MAP) -> Answers:
    """Fence price by perimeter, then by number of sides."""
    grid = parse_char_grid(text)
    regions = find_regions(grid)
    part1 = sum(region.fence_price(grid) for region in regions)
    part2 = sum(region.bulk_fence_price(grid) for region in regions)
    return Answers(part1, part2, render_regions(grid, regions))


# =============================================================================
# Reindeer Maze
# =============================================================================


def reindeer_maze(text: str = REINDEER_MAZE, rules: MazeRules = MazeRules()) -> Answers:
    """Lowest score through the maze; tiles on any best route."""
    grid = parse_char_grid(text)
    markers = extract_markers(grid, "SE")
    start, end = markers["S"], markers["E"]
    successors = heading_successors(grid, is_open, rules)

    best = dijkstra((start, Heading.E), successors, lambda s: s[0] == end)
    to_end = manhattan_heuristic(end)
    bag = astar_bag((start, Heading.E), successors, lambda s: to_end(s[0]), lambda s: s[0] == end)
    if best is None or bag is None:
        return Answers("no path", "no path")
    if best.cost != bag.cost:
        raise RuntimeError(f"search disagreement: {best.cost} != {bag.cost}")

    tiles = {position for position, _ in bag.states()}
    return Answers(best.cost, len(tiles), render_grid(grid, highlight=tiles))


# =============================================================================
# Falling Bytes
# =============================================================================


def _parse_bytes(text: str) -> list[Coordinate]:
    coordinates = []
    for line in text.strip().splitlines():
        x, y = (int(part) for part in line.split(",")[:2])
        coordinates.append(Coordinate(y, x))
    return coordinates


def falling_bytes(text: str = FALLING_BYTES, size: int = 7, fallen: int = 12) -> Answers:
    """Steps to the exit after `fallen` bytes; first byte that cuts the exit off."""
    drops = _parse_bytes(text)
    grid = Grid.filled(size, size, ".")
    for drop in drops[:fallen]:
        grid[drop] = "#"

    goal = Coordinate(size - 1, size - 1)
    heuristic = manhattan_heuristic(goal)

    def search(g: Grid[str]) -> SearchResult[Coordinate] | None:
        return astar(Coordinate(0, 0), grid_successors(g, is_open), heuristic, lambda c: c == goal)

    first = search(grid)
    part1: int | str = first.cost if first is not None else "no path"

    part2: int | str = "never blocked"
    for drop in drops[fallen:]:
        grid[drop] = "#"
        if search(grid) is None:
            part2 = f"{drop.col},{drop.row}"
            break
    return Answers(part1, part2)


# =============================================================================
# Race Track Cheats
# =============================================================================


def count_cheats(grid: Grid[str], start: Coordinate, max_radius: int, min_saving: int) -> int:
    """
    Shortcuts through walls of length 2..max_radius saving at least min_saving.

    A cheat jumps from one track cell to another at Manhattan distance r,
    saving (distance gained along the track) - r steps.
    """
    distances = bfs_distances(start, open_neighbors(grid, is_open))
    count = 0
    for position, from_start in distances.items():
        for radius in range(2, max_radius + 1):
            for landing in cells_at_distance(grid, position, radius):
                to_landing = distances.get(landing)
                if to_landing is not None and to_landing - from_start - radius >= min_saving:
                    count += 1
    return count


@dataclass(frozen=True)
class _WallRemovalCheck:
    """Whether removing one wall shortens the track enough. Picklable."""

    grid: Grid[str]
    start: Coordinate
    end: Coordinate
    limit: int

    def __call__(self, wall: Coordinate) -> bool:
        opened = self.grid.with_cell(wall, ".")
        result = astar(
            self.start, grid_successors(opened, is_open), manhattan_heuristic(self.end), lambda c: c == self.end
        )
        return result is not None and result.cost <= self.limit


def count_wall_removals(
    grid: Grid[str], start: Coordinate, end: Coordinate, min_saving: int, max_workers: int | None = None
) -> int:
    """Single walls whose removal saves at least min_saving steps, one search per wall."""
    original = astar(start, grid_successors(grid, is_open), manhattan_heuristic(end), lambda c: c == end)
    if original is None:
        raise ValueError(f"no route from {start} to {end}")
    candidates = [
        coordinate
        for coordinate, cell in grid.indexed()
        if is_wall(cell)
        and sum(1 for n in open_neighbors(grid, is_open)(coordinate)) >= 2
    ]
    check = _WallRemovalCheck(grid, start, end, original.cost - min_saving)
    return parallel_count(check, candidates, max_workers=max_workers)


def race_cheats(
    text: str = RACE_TRACK,
    min_saving: int = 20,
    long_min_saving: int = 50,
    by_removal: bool = False,
    max_workers: int | None = None,
) -> Answers:
    """Two-step cheats and up-to-twenty-step cheats meeting the saving thresholds.

    With by_removal, part 1 re-runs the search once per removable wall
    instead of reading the distance map.
    """
    grid = parse_char_grid(text)
    markers = extract_markers(grid, "SE")
    start, end = markers["S"], markers["E"]
    if by_removal:
        part1 = count_wall_removals(grid, start, end, min_saving, max_workers=max_workers)
    else:
        part1 = count_cheats(grid, start, 2, min_saving)
    return Answers(part1, count_cheats(grid, start, 20, long_min_saving))


PUZZLES: dict[str, Callable[[], Answers]] = {
    "guard": guard_walk,
    "antennas": antenna_antinodes,
    "trails": trailheads,
    "garden": garden_fences,
    "reindeer": reindeer_maze,
    "bytes": falling_bytes,
    "cheats": race_cheats,
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the sample grid puzzles")
    parser.add_argument("puzzles", nargs="*", help=f"Puzzles to run: {', '.join(PUZZLES)} (default: all)")
    parser.add_argument("--render", action="store_true", help="Show the grid picture where available")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log search statistics")
    args = parser.parse_args(argv)
    unknown = [name for name in args.puzzles if name not in PUZZLES]
    if unknown:
        parser.error(f"unknown puzzle(s): {', '.join(unknown)}")
    return args


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s: %(message)s")

    console = Console()
    for name in args.puzzles or list(PUZZLES):
        answers = PUZZLES[name]()
        body = Text()
        body.append(f"part1: {answers.part1}\n")
        body.append(f"part2: {answers.part2}")
        if args.render and answers.picture is not None:
            body.append("\n\n")
            body.append(Text.from_ansi(answers.picture))
        console.print(Panel(body, title=name, border_style="green"))


if __name__ == "__main__":
    main()
