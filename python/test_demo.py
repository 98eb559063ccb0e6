"""
Tests for the sample puzzle drivers and grid rendering.
"""

import pytest
from rich.text import Text

from ascii_render import HEADING_CHARS, render_grid, render_plain, render_regions
from demo import (
    GUARD_MAP,
    RACE_TRACK,
    antenna_antinodes,
    count_cheats,
    count_wall_removals,
    falling_bytes,
    garden_fences,
    guard_walk,
    main,
    parse_args,
    race_cheats,
    reindeer_maze,
    trailheads,
)
from grid_parser import extract_markers, parse_char_grid
from grid_types import Coordinate, Heading
from gridwalk import MazeRules, find_regions
from interactive_demo import WalkStepper


def strip_ansi(text: str) -> str:
    return Text.from_ansi(text).plain


# =============================================================================
# Test Puzzle Answers
# =============================================================================


class TestPuzzleAnswers:
    """Each driver reproduces the published sample answers."""

    def test_guard_walk(self) -> None:
        answers = guard_walk(max_workers=1)
        assert answers.part1 == 41
        assert answers.part2 == 6

    def test_antenna_antinodes(self) -> None:
        answers = antenna_antinodes()
        assert answers.part1 == 14
        assert answers.part2 == 34

    def test_antinodes_clipped_at_grid_edge(self) -> None:
        """Only antinodes inside the grid count; offsets below zero are dropped."""
        answers = antenna_antinodes("a.a..")
        assert answers.part1 == 1
        assert answers.part2 == 3

    def test_trailheads(self) -> None:
        answers = trailheads()
        assert answers.part1 == 36
        assert answers.part2 == 81

    def test_garden_fences(self) -> None:
        answers = garden_fences()
        assert answers.part1 == 1930
        assert answers.part2 == 1206

    def test_reindeer_maze(self) -> None:
        answers = reindeer_maze()
        assert answers.part1 == 7036
        assert answers.part2 == 45

    def test_reindeer_maze_without_turn_penalty(self) -> None:
        """With free turns the best score is the plain step count."""
        answers = reindeer_maze(rules=MazeRules(turn_penalty=0))
        assert isinstance(answers.part1, int)
        assert answers.part1 < 7036

    def test_falling_bytes(self) -> None:
        answers = falling_bytes()
        assert answers.part1 == 22
        assert answers.part2 == "6,1"

    def test_race_cheats(self) -> None:
        answers = race_cheats()
        assert answers.part1 == 5
        assert answers.part2 == 285


class TestRaceCheats:
    """Tests for the two cheat-counting strategies."""

    def setup_track(self) -> tuple:
        grid = parse_char_grid(RACE_TRACK)
        markers = extract_markers(grid, "SE")
        return grid, markers["S"], markers["E"]

    def test_short_cheats_by_threshold(self) -> None:
        grid, start, _end = self.setup_track()
        assert count_cheats(grid, start, 2, 64) == 1
        assert count_cheats(grid, start, 2, 20) == 5

    def test_long_cheats_by_threshold(self) -> None:
        grid, start, _end = self.setup_track()
        assert count_cheats(grid, start, 20, 76) == 3
        assert count_cheats(grid, start, 20, 50) == 285

    def test_wall_removal_agrees_with_distance_map(self) -> None:
        grid, start, end = self.setup_track()
        assert count_wall_removals(grid, start, end, 64, max_workers=1) == 1

    def test_wall_removal_in_processes(self) -> None:
        grid, start, end = self.setup_track()
        assert count_wall_removals(grid, start, end, 64, max_workers=2) == 1


# =============================================================================
# Test Command Line
# =============================================================================


class TestCommandLine:
    """Tests for demo argument handling."""

    def test_defaults(self) -> None:
        args = parse_args([])
        assert args.puzzles == []
        assert not args.render
        assert not args.verbose

    def test_unknown_puzzle_rejected(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["nonsense"])

    def test_main_prints_answers(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["trails"])
        out = capsys.readouterr().out
        assert "part1: 36" in out
        assert "part2: 81" in out


# =============================================================================
# Test Rendering
# =============================================================================


class TestRenderPlain:
    """Tests for uncolored rendering."""

    def test_cells_and_marks(self) -> None:
        grid = parse_char_grid("#..|.#.")
        text = render_plain(grid, marks={Coordinate(1, 2): HEADING_CHARS[Heading.E]})
        assert text == "#..\n.#>"

    def test_char_fn_takes_first_character(self) -> None:
        grid = parse_char_grid("12|34", int)
        assert render_plain(grid, char_fn=lambda n: str(n * 11)) == "12\n34"

    def test_empty_display_becomes_placeholder(self) -> None:
        grid = parse_char_grid("ab")
        assert render_plain(grid, char_fn=lambda _: "") == "??"


class TestRenderColored:
    """Tests for chalk-colored rendering."""

    def test_render_grid_keeps_layout(self) -> None:
        grid = parse_char_grid(GUARD_MAP)
        start = extract_markers(grid, "^")["^"]
        text = render_grid(grid, highlight={start, Coordinate(0, 0)}, marks={start: "^"})

        lines = strip_ansi(text).split("\n")
        assert len(lines) == grid.rows
        assert lines[6] == ".#..^....."

    def test_custom_highlight(self) -> None:
        grid = parse_char_grid("..")
        text = render_grid(grid, highlight={Coordinate(0, 1)}, highlight_fn=lambda s: f"[{s}]")
        assert strip_ansi(text) == ".[.]"

    def test_render_regions_keeps_layout(self) -> None:
        grid = parse_char_grid("AAB|ACC")
        text = render_regions(grid, find_regions(grid))
        assert strip_ansi(text) == "AAB\nACC"


# =============================================================================
# Test Interactive Stepper
# =============================================================================


class TestWalkStepper:
    """Tests for the step-through viewer, without the live keyboard loop."""

    def make_stepper(self) -> WalkStepper:
        grid = parse_char_grid(GUARD_MAP)
        return WalkStepper(grid, extract_markers(grid, "^")["^"])

    def test_starts_at_start(self) -> None:
        stepper = self.make_stepper()
        assert stepper.agent == (Coordinate(6, 4), Heading.N)

    def test_step_advances(self) -> None:
        stepper = self.make_stepper()
        assert stepper.step()
        assert stepper.agent == (Coordinate(5, 4), Heading.N)

    def test_run_to_end_reports_exit(self) -> None:
        stepper = self.make_stepper()
        stepper.run_to_end()
        assert len({p for p, _ in stepper.trail}) == 41
        assert stepper.status_message == "Walk ended: exited"

    def test_obstacle_and_reset(self) -> None:
        stepper = self.make_stepper()
        stepper.place_obstacle()
        assert stepper.grid[Coordinate(5, 4)] == "#"
        assert len(stepper.trail) == 1

        stepper.reset_grid()
        assert stepper.grid[Coordinate(5, 4)] == "."

    def test_display_is_panel(self) -> None:
        stepper = self.make_stepper()
        assert stepper.generate_display().title == "Gridwalk Interactive Walk Demo"
