"""
Grid traversal and shortest-path search.
Neighbor generation, region flood-fill, stateful walks with loop detection,
and best-first search (Dijkstra / A* / all shortest paths) over caller-defined states.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import operator
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Hashable, Iterable, Iterator, Literal, TypeVar

from grid_types import DIAGONAL_OFFSETS, ORTHOGONAL_OFFSETS, Coordinate, Grid, Heading

logger = logging.getLogger(__name__)

T = TypeVar("T")
S = TypeVar("S", bound=Hashable)
R = TypeVar("R")

TURN_PENALTY = 1000


@dataclass(frozen=True)
class WalkRules:
    """Rules governing how a walking agent reacts to obstacles."""

    turn: Literal["right", "left"] = "right"


@dataclass(frozen=True)
class MazeRules:
    """Costs for heading-sensitive maze search."""

    step_cost: int = 1
    turn_penalty: int = TURN_PENALTY


# =============================================================================
# Neighbor Generation
# =============================================================================


def _apply_offsets(
    grid: Grid[T], coordinate: Coordinate, offsets: Iterable[tuple[int, int]]
) -> list[Coordinate]:
    result = []
    for d_row, d_col in offsets:
        candidate = coordinate.offset(d_row, d_col)
        if candidate is not None and grid.in_bounds(candidate):
            result.append(candidate)
    return result


def orthogonal_neighbors(grid: Grid[T], coordinate: Coordinate) -> list[Coordinate]:
    """
    In-bounds orthogonal neighbors of a coordinate.

    Order is fixed: N, S, W, E. Cells on the grid edge simply have fewer
    neighbors.
    """
    return _apply_offsets(grid, coordinate, ORTHOGONAL_OFFSETS)


def all_neighbors(grid: Grid[T], coordinate: Coordinate) -> list[Coordinate]:
    """In-bounds 8-directional neighbors: N, S, W, E, then NW, NE, SW, SE."""
    return _apply_offsets(grid, coordinate, ORTHOGONAL_OFFSETS + DIAGONAL_OFFSETS)


def cells_at_distance(grid: Grid[T], coordinate: Coordinate, radius: int) -> list[Coordinate]:
    """
    In-bounds coordinates at exactly the given Manhattan distance.

    Row-major order, no duplicates. Radius 0 yields the coordinate itself.
    """
    if radius < 0:
        raise ValueError(f"radius must be non-negative, got {radius}")
    result: set[Coordinate] = set()
    for d_row in range(-radius, radius + 1):
        d_col = radius - abs(d_row)
        for signed_col in {d_col, -d_col}:
            candidate = coordinate.offset(d_row, signed_col)
            if candidate is not None and grid.in_bounds(candidate):
                result.add(candidate)
    return sorted(result)


def manhattan_heuristic(goal: Coordinate) -> Callable[[Coordinate], int]:
    """Admissible heuristic for unit-cost orthogonal movement."""

    def heuristic(coordinate: Coordinate) -> int:
        return coordinate.manhattan_distance(goal)

    return heuristic


# =============================================================================
# Region Flood-Fill
# =============================================================================


@dataclass(frozen=True)
class Region:
    """A maximal set of connected coordinates sharing a predicate."""

    cells: frozenset[Coordinate]
    label: object = None  # Cell value at the first coordinate discovered

    def contains(self, coordinate: Coordinate | None) -> bool:
        return coordinate is not None and coordinate in self.cells

    def area(self) -> int:
        return len(self.cells)

    def perimeter(self, grid: Grid[T]) -> int:
        """Count of member edges not shared with another member."""
        total = 0
        for cell in self.cells:
            inside = sum(1 for n in orthogonal_neighbors(grid, cell) if n in self.cells)
            total += 4 - inside
        return total

    def corner_count(self, grid: Grid[T]) -> int:
        """
        Count boundary corners, which equals the number of straight sides.

        Each member is tested for four convex corners (both orthogonal
        neighbors on that corner are outside) and four concave corners
        (both orthogonal neighbors inside, the diagonal between them
        outside). Neighbors off the grid count as outside.
        """
        corners = 0
        for cell in self.cells:

            def member(d_row: int, d_col: int) -> bool:
                neighbor = cell.offset(d_row, d_col)
                return neighbor is not None and grid.in_bounds(neighbor) and neighbor in self.cells

            n, s, w, e = member(-1, 0), member(1, 0), member(0, -1), member(0, 1)
            nw, ne, sw, se = member(-1, -1), member(-1, 1), member(1, -1), member(1, 1)

            # convex
            corners += (not n and not w) + (not s and not w) + (not s and not e) + (not n and not e)
            # concave
            corners += (n and w and not nw) + (s and w and not sw) + (s and e and not se) + (n and e and not ne)
        return corners

    def fence_price(self, grid: Grid[T]) -> int:
        return self.area() * self.perimeter(grid)

    def bulk_fence_price(self, grid: Grid[T]) -> int:
        return self.area() * self.corner_count(grid)


def flood_fill(
    grid: Grid[T],
    start: Coordinate,
    same_region: Callable[[T, T], bool] = operator.eq,
) -> Region:
    """
    Collect every coordinate connected to start under same_region.

    Uses an explicit worklist, so region size is not limited by the call
    stack. same_region(current_cell, neighbor_cell) decides whether the
    fill may cross from a member into a neighbor.
    """
    seen: set[Coordinate] = {start}
    worklist = [start]
    while worklist:
        current = worklist.pop()
        current_cell = grid[current]
        for neighbor in orthogonal_neighbors(grid, current):
            if neighbor not in seen and same_region(current_cell, grid[neighbor]):
                seen.add(neighbor)
                worklist.append(neighbor)
    return Region(frozenset(seen), grid[start])


def find_regions(
    grid: Grid[T],
    same_region: Callable[[T, T], bool] = operator.eq,
) -> list[Region]:
    """
    Partition the grid into regions.

    Coordinates are visited in row-major order; each unassigned coordinate
    seeds a flood fill. Every coordinate ends up in exactly one region.
    """
    assigned: set[Coordinate] = set()
    regions: list[Region] = []
    for coordinate in grid.coordinates():
        if coordinate in assigned:
            continue
        region = flood_fill(grid, coordinate, same_region)
        overlap = assigned & region.cells
        if overlap:
            # Only possible when same_region is not symmetric
            region = Region(region.cells - overlap, region.label)
        assigned |= region.cells
        regions.append(region)

    logger.info("find_regions: %d regions over %dx%d grid", len(regions), grid.rows, grid.cols)
    return regions


# =============================================================================
# Chains and Path Counting
# =============================================================================


def find_chains(
    grid: Grid[T],
    start: Coordinate,
    step_ok: Callable[[T, T], bool],
    length: int,
) -> list[list[Coordinate]]:
    """
    Enumerate every chain of exactly `length` coordinates from start.

    Consecutive coordinates are orthogonal neighbors and satisfy
    step_ok(cell, next_cell). Partial chains are kept on an explicit
    worklist; the result is in depth-first N, S, W, E order.
    """
    if length < 1:
        return []
    complete: list[list[Coordinate]] = []
    worklist: list[list[Coordinate]] = [[start]]
    while worklist:
        chain = worklist.pop()
        if len(chain) == length:
            complete.append(chain)
            continue
        tail = chain[-1]
        extensions = [
            [*chain, n]
            for n in orthogonal_neighbors(grid, tail)
            if n not in chain and step_ok(grid[tail], grid[n])
        ]
        worklist.extend(reversed(extensions))
    return complete


def count_paths(
    start: S,
    successors: Callable[[S], Iterable[S]],
    is_goal: Callable[[S], bool],
    memo: dict[S, int] | None = None,
) -> int:
    """
    Number of distinct paths from start to any goal state.

    The successor graph must be acyclic. Goal states end a path. Results
    per state are stored in memo, which the caller may share between calls
    over the same graph.
    """
    if memo is None:
        memo = {}

    # Iterative post-order: a state is resolved once all successors are.
    stack: list[tuple[S, bool]] = [(start, False)]
    while stack:
        state, expanded = stack.pop()
        if state in memo:
            continue
        if is_goal(state):
            memo[state] = 1
            continue
        nexts = list(successors(state))
        if expanded:
            memo[state] = sum(memo[n] for n in nexts)
            continue
        stack.append((state, True))
        for n in nexts:
            if n not in memo:
                stack.append((n, False))
    return memo[start]


# =============================================================================
# Stateful Walk / Cycle Detection
# =============================================================================


class TerminationReason(Enum):
    """Reason why a walk terminated."""

    EXITED = "exited"  # Stepped off the grid
    LOOP_DETECTED = "loop_detected"  # Revisited a (position, heading) pair
    ENCLOSED = "enclosed"  # Blocked in all four headings


WalkState = tuple[Coordinate, Heading]


class WalkResult:
    """
    Iterator wrapper for walk() that tracks termination reason.

    Usage:
        result = walk(grid, start, Heading.N, is_blocked)
        for position, heading in result:
            print(position)
        print(result.termination_reason)  # Why the walk ended
    """

    def __init__(self, generator: Iterator[WalkState]):
        self._iterator = generator
        self.termination_reason: TerminationReason | None = None

    def __iter__(self) -> Iterator[WalkState]:
        return self

    def __next__(self) -> WalkState:
        return next(self._iterator)


def walk(
    grid: Grid[T],
    start: Coordinate,
    heading: Heading,
    is_blocked: Callable[[T], bool],
    rules: WalkRules = WalkRules(),
) -> WalkResult:
    """
    Walk an agent forward, turning whenever the cell ahead is blocked.

    Yields each arrival state (position, heading), beginning with the
    start. Stops when:
    - the next step leaves the grid (EXITED)
    - an arrival state repeats (LOOP_DETECTED; the repeat is not yielded)
    - every heading is blocked (ENCLOSED)

    Args:
        grid: The grid to walk on
        start: Starting position (must be in bounds)
        heading: Initial heading
        is_blocked: True for cells the agent cannot enter
        rules: Turn direction on obstacles

    Returns:
        WalkResult iterator that yields states and tracks termination reason
    """
    if not grid.in_bounds(start):
        raise IndexError(f"start {start} is outside {grid.rows}x{grid.cols} grid")
    result = WalkResult.__new__(WalkResult)
    result.termination_reason = None
    result._iterator = _walk_generator(grid, start, heading, is_blocked, rules, result)
    return result


def _walk_generator(
    grid: Grid[T],
    start: Coordinate,
    heading: Heading,
    is_blocked: Callable[[T], bool],
    rules: WalkRules,
    result: WalkResult,
) -> Iterator[WalkState]:
    """Internal generator for walk(). Do not call directly."""
    turn = Heading.turn_right if rules.turn == "right" else Heading.turn_left
    visited: set[WalkState] = set()
    position = start

    while True:
        state = (position, heading)
        if state in visited:
            result.termination_reason = TerminationReason.LOOP_DETECTED
            return
        visited.add(state)
        yield state

        for _ in range(4):
            ahead = position.step(heading)
            if ahead is None or not grid.in_bounds(ahead):
                result.termination_reason = TerminationReason.EXITED
                return
            if not is_blocked(grid[ahead]):
                position = ahead
                break
            heading = turn(heading)
        else:
            result.termination_reason = TerminationReason.ENCLOSED
            return


@dataclass(frozen=True)
class WalkSummary:
    """Outcome of a complete walk."""

    visited: frozenset[Coordinate]
    loop_found: bool
    steps: int
    termination_reason: TerminationReason


def simulate_walk(
    grid: Grid[T],
    start: Coordinate,
    heading: Heading,
    is_blocked: Callable[[T], bool],
    rules: WalkRules = WalkRules(),
) -> WalkSummary:
    """Run a walk to completion and summarize the distinct cells visited."""
    result = walk(grid, start, heading, is_blocked, rules)
    visited: set[Coordinate] = set()
    steps = -1
    for position, _ in result:
        visited.add(position)
        steps += 1
    reason = result.termination_reason
    if reason is None:
        raise RuntimeError("walk ended without recording a termination reason")
    logger.debug(
        "simulate_walk: %s after %d steps, %d distinct cells",
        reason.value,
        steps,
        len(visited),
    )
    return WalkSummary(
        visited=frozenset(visited),
        loop_found=reason == TerminationReason.LOOP_DETECTED,
        steps=steps,
        termination_reason=reason,
    )


def creates_loop(
    grid: Grid[T],
    start: Coordinate,
    heading: Heading,
    is_blocked: Callable[[T], bool],
    blocker: T,
    obstacle: Coordinate,
    rules: WalkRules = WalkRules(),
) -> bool:
    """Whether placing blocker at obstacle traps the agent in a loop."""
    candidate = grid.with_cell(obstacle, blocker)
    return simulate_walk(candidate, start, heading, is_blocked, rules).loop_found


def count_loop_placements(
    grid: Grid[T],
    start: Coordinate,
    heading: Heading,
    is_blocked: Callable[[T], bool],
    blocker: T,
    rules: WalkRules = WalkRules(),
    max_workers: int | None = None,
    use_threads: bool = False,
) -> int:
    """
    Count single-obstacle placements that make the agent loop forever.

    Only cells on the unmodified route can change the outcome, so those
    (minus the start) are the candidates. Each candidate is an independent
    walk on its own copy of the grid. With processes, is_blocked must be
    picklable (a module-level function, not a lambda).
    """
    route = simulate_walk(grid, start, heading, is_blocked, rules).visited
    candidates = sorted(route - {start})
    check = _LoopCheck(grid, start, heading, is_blocked, blocker, rules)
    return parallel_count(check, candidates, max_workers=max_workers, use_threads=use_threads)


@dataclass(frozen=True)
class _LoopCheck(Generic[T]):
    """Picklable creates_loop bound to everything but the obstacle."""

    grid: Grid[T]
    start: Coordinate
    heading: Heading
    is_blocked: Callable[[T], bool]
    blocker: T
    rules: WalkRules

    def __call__(self, obstacle: Coordinate) -> bool:
        return creates_loop(
            self.grid, self.start, self.heading, self.is_blocked, self.blocker, obstacle, self.rules
        )


# =============================================================================
# Weighted Shortest-Path Search
# =============================================================================


@dataclass(frozen=True)
class SearchResult(Generic[S]):
    """One minimum-cost path, start to goal inclusive."""

    path: list[S]
    cost: int


@dataclass(frozen=True)
class PathBag(Generic[S]):
    """Every minimum-cost path, start to goal inclusive."""

    paths: list[list[S]]
    cost: int

    def states(self) -> set[S]:
        """Union of states on any of the paths."""
        return {state for path in self.paths for state in path}


Successors = Callable[[S], Iterable[tuple[S, int]]]


def _zero(_state: object) -> int:
    return 0


def _reconstruct(parents: dict[S, S | None], goal: S) -> list[S]:
    path = [goal]
    parent = parents[goal]
    while parent is not None:
        path.append(parent)
        parent = parents[parent]
    path.reverse()
    return path


def astar(
    start: S,
    successors: Successors[S],
    heuristic: Callable[[S], int],
    is_goal: Callable[[S], bool],
) -> SearchResult[S] | None:
    """
    A* search for one minimum-cost path.

    The frontier is ordered by (cost + heuristic, insertion order), so
    states need only be hashable and ties resolve deterministically.
    Step costs must be non-negative and the heuristic must not
    overestimate.

    Args:
        start: Initial state
        successors: (next_state, step_cost) pairs for a state
        heuristic: Lower bound on remaining cost
        is_goal: Goal predicate

    Returns:
        SearchResult with path and total cost, or None if no goal is reachable
    """
    counter = itertools.count()
    frontier: list[tuple[int, int, int, S]] = [(heuristic(start), next(counter), 0, start)]
    best: dict[S, int] = {start: 0}
    parents: dict[S, S | None] = {start: None}
    expanded = 0

    while frontier:
        _f, _tie, cost, state = heapq.heappop(frontier)
        if cost > best[state]:
            continue  # Stale entry
        if is_goal(state):
            logger.debug("astar: goal at cost %d after %d expansions", cost, expanded)
            return SearchResult(_reconstruct(parents, state), cost)
        expanded += 1
        for nxt, step in successors(state):
            new_cost = cost + step
            if nxt not in best or new_cost < best[nxt]:
                best[nxt] = new_cost
                parents[nxt] = state
                heapq.heappush(frontier, (new_cost + heuristic(nxt), next(counter), new_cost, nxt))

    logger.debug("astar: no path after %d expansions", expanded)
    return None


def dijkstra(
    start: S,
    successors: Successors[S],
    is_goal: Callable[[S], bool],
) -> SearchResult[S] | None:
    """Dijkstra's algorithm: A* with a zero heuristic."""
    return astar(start, successors, _zero, is_goal)


def astar_bag(
    start: S,
    successors: Successors[S],
    heuristic: Callable[[S], int],
    is_goal: Callable[[S], bool],
) -> PathBag[S] | None:
    """
    A* search for all minimum-cost paths.

    Every predecessor reaching a state at its best known cost is kept.
    The search continues until the frontier's estimate exceeds the best
    goal cost, then all paths are rebuilt backward from each goal state
    reached at that cost. A state whose cost improves after it was
    expanded is expanded again, so any admissible heuristic works, not
    only consistent ones. Step costs must be positive where cycles exist,
    otherwise zero-cost cycles are skipped during reconstruction.

    Returns:
        PathBag of every optimal path, or None if no goal is reachable
    """
    counter = itertools.count()
    frontier: list[tuple[int, int, int, S]] = [(heuristic(start), next(counter), 0, start)]
    best: dict[S, int] = {start: 0}
    parents: dict[S, list[S]] = {start: []}
    goals: list[S] = []
    min_cost: int | None = None
    expanded = 0

    while frontier:
        f, _tie, cost, state = heapq.heappop(frontier)
        if cost > best[state]:
            continue  # Stale entry
        if min_cost is not None and f > min_cost:
            break
        if is_goal(state):
            if min_cost is None or cost < min_cost:
                min_cost = cost
                goals = [state]
            elif state not in goals:
                goals.append(state)
            continue
        expanded += 1
        for nxt, step in successors(state):
            new_cost = cost + step
            known = best.get(nxt)
            if known is None or new_cost < known:
                best[nxt] = new_cost
                parents[nxt] = [state]
                heapq.heappush(frontier, (new_cost + heuristic(nxt), next(counter), new_cost, nxt))
            elif new_cost == known and state not in parents[nxt]:
                parents[nxt].append(state)

    if min_cost is None:
        logger.debug("astar_bag: no path after %d expansions", expanded)
        return None

    paths = _reconstruct_all(parents, goals)
    logger.debug(
        "astar_bag: %d paths at cost %d after %d expansions", len(paths), min_cost, expanded
    )
    return PathBag(paths, min_cost)


def _reconstruct_all(parents: dict[S, list[S]], goals: list[S]) -> list[list[S]]:
    """Every start-to-goal path through the parent lists, without recursion."""
    paths: list[list[S]] = []
    # Each entry is a reversed partial path: goal first
    stack: list[list[S]] = [[goal] for goal in reversed(goals)]
    while stack:
        partial = stack.pop()
        head = partial[-1]
        preds = parents[head]
        if not preds:
            paths.append(partial[::-1])
            continue
        for pred in reversed(preds):
            if pred not in partial:
                stack.append([*partial, pred])
    return paths


def dijkstra_bag(
    start: S,
    successors: Successors[S],
    is_goal: Callable[[S], bool],
) -> PathBag[S] | None:
    """All minimum-cost paths with a zero heuristic."""
    return astar_bag(start, successors, _zero, is_goal)


def bfs_distances(start: S, successors: Callable[[S], Iterable[S]]) -> dict[S, int]:
    """Unit-cost distance from start to every reachable state."""
    distances: dict[S, int] = {start: 0}
    frontier = [start]
    while frontier:
        next_frontier = []
        for state in frontier:
            for nxt in successors(state):
                if nxt not in distances:
                    distances[nxt] = distances[state] + 1
                    next_frontier.append(nxt)
        frontier = next_frontier
    return distances


# =============================================================================
# Grid Successor Functions
# =============================================================================


def grid_successors(
    grid: Grid[T], is_open: Callable[[T], bool]
) -> Callable[[Coordinate], list[tuple[Coordinate, int]]]:
    """Unit-cost moves to open orthogonal neighbors."""

    def successors(coordinate: Coordinate) -> list[tuple[Coordinate, int]]:
        return [(n, 1) for n in orthogonal_neighbors(grid, coordinate) if is_open(grid[n])]

    return successors


def open_neighbors(grid: Grid[T], is_open: Callable[[T], bool]) -> Callable[[Coordinate], list[Coordinate]]:
    """Open orthogonal neighbors, for bfs_distances and count_paths."""

    def successors(coordinate: Coordinate) -> list[Coordinate]:
        return [n for n in orthogonal_neighbors(grid, coordinate) if is_open(grid[n])]

    return successors


def heading_successors(
    grid: Grid[T],
    is_open: Callable[[T], bool],
    rules: MazeRules = MazeRules(),
) -> Callable[[WalkState], list[tuple[WalkState, int]]]:
    """
    Moves over (position, heading) states with a penalty for turning.

    Continuing straight costs step_cost. Any other step turns to face the
    neighbor, reversal included, and costs step_cost + turn_penalty.
    """

    def successors(state: WalkState) -> list[tuple[WalkState, int]]:
        position, heading = state
        result: list[tuple[WalkState, int]] = []
        for neighbor in orthogonal_neighbors(grid, position):
            if not is_open(grid[neighbor]):
                continue
            moved = Heading.from_delta(neighbor.row - position.row, neighbor.col - position.col)
            cost = rules.step_cost if moved == heading else rules.step_cost + rules.turn_penalty
            result.append(((neighbor, moved), cost))
        return result

    return successors


# =============================================================================
# Parallel Candidate Evaluation
# =============================================================================


def parallel_map(
    fn: Callable[[T], R],
    candidates: Iterable[T],
    max_workers: int | None = None,
    use_threads: bool = False,
) -> list[R]:
    """
    Apply fn to every candidate independently, results in candidate order.

    max_workers=1 runs in-process. Otherwise a process pool is used (fn and
    candidates must be picklable), or a thread pool with use_threads.
    """
    items = list(candidates)
    if max_workers == 1 or len(items) <= 1:
        return [fn(item) for item in items]
    executor_cls = ThreadPoolExecutor if use_threads else ProcessPoolExecutor
    with executor_cls(max_workers=max_workers) as ex:
        results = list(ex.map(fn, items))
    logger.debug("parallel_map: %d candidates via %s", len(items), executor_cls.__name__)
    return results


def parallel_count(
    predicate: Callable[[T], bool],
    candidates: Iterable[T],
    max_workers: int | None = None,
    use_threads: bool = False,
) -> int:
    """Number of candidates satisfying predicate, evaluated independently."""
    count = sum(1 for ok in parallel_map(predicate, candidates, max_workers, use_threads) if ok)
    logger.info("parallel_count: %d matching candidates", count)
    return count
