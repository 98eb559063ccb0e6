"""
Interactive demo for gridwalk walks.
Display a grid and step the agent through it with keyboard commands.
"""

import logging
import sys

import readchar
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ascii_render import HEADING_CHARS, render_grid
from demo import GUARD_MAP, is_wall
from grid_parser import extract_markers, parse_char_grid
from grid_types import Coordinate, Grid, Heading
from gridwalk import WalkResult, WalkState, walk


class WalkStepper:
    """Step-through viewer for a walking agent."""

    def __init__(self, grid: Grid[str], start: Coordinate, heading: Heading = Heading.N) -> None:
        self.original_grid = grid
        self.grid = grid.copy()
        self.start = start
        self.heading = heading
        self.console = Console()
        self.status_message = "Ready"
        self.restart()

    def restart(self) -> None:
        """Begin a fresh walk on the current grid."""
        self.result: WalkResult = walk(self.grid, self.start, self.heading, is_wall)
        self.trail: list[WalkState] = [next(self.result)]

    @property
    def agent(self) -> WalkState:
        return self.trail[-1]

    def generate_display(self) -> Panel:
        """Generate the current display with grid and status."""
        position, heading = self.agent
        visited = {p for p, _ in self.trail}
        grid_text = render_grid(self.grid, highlight=visited, marks={position: HEADING_CHARS[heading]})

        status = Text()
        status.append("Agent: ", style="bold")
        status.append(f"{position} facing {heading.value}\n")
        status.append("Visited: ", style="bold")
        status.append(f"{len(visited)} cells in {len(self.trail) - 1} steps\n\n")

        status.append(Text.from_ansi(grid_text))
        status.append("\n\n")
        status.append("Keys:\n", style="bold cyan")
        status.append("  Space - Step\n")
        status.append("  F - Run to the end\n")
        status.append("  O - Place obstacle ahead and restart\n")
        status.append("  R - Reset to original grid\n")
        status.append("  Q - Quit\n\n")

        status.append("─" * 40 + "\n", style="dim")
        status.append("Status: ", style="bold")
        status.append(self.status_message)

        return Panel(status, title="Gridwalk Interactive Walk Demo", border_style="green", width=80)

    def step(self) -> bool:
        """Advance one state. Returns False once the walk has ended."""
        try:
            self.trail.append(next(self.result))
        except StopIteration:
            reason = self.result.termination_reason
            self.status_message = f"Walk ended: {reason.value if reason else 'unknown'}"
            return False
        self.status_message = "Stepped"
        return True

    def run_to_end(self) -> None:
        while self.step():
            pass

    def place_obstacle(self) -> None:
        """Drop an obstacle in front of the agent, then walk again from the start."""
        position, heading = self.agent
        ahead = position.step(heading)
        if ahead is None or not self.grid.in_bounds(ahead) or ahead == self.start:
            self.status_message = "Cannot place an obstacle there"
            return
        self.grid[ahead] = "#"
        self.restart()
        self.status_message = f"Obstacle placed at {ahead}; walk restarted"

    def reset_grid(self) -> None:
        """Reset the grid to its original state."""
        self.grid = self.original_grid.copy()
        self.restart()
        self.status_message = "Grid reset to original state"

    def run(self) -> None:
        """Run the interactive demo."""
        with Live(self.generate_display(), console=self.console, refresh_per_second=4) as live:
            try:
                while True:
                    live.update(self.generate_display())

                    key = readchar.readkey()

                    if key.lower() == 'q':
                        self.status_message = "Quitting..."
                        live.update(self.generate_display())
                        break
                    elif key == ' ':
                        self.step()
                    elif key.lower() == 'f':
                        self.run_to_end()
                    elif key.lower() == 'o':
                        self.place_obstacle()
                    elif key.lower() == 'r':
                        self.reset_grid()
                    else:
                        self.status_message = f"Unknown key: {repr(key)}"

            except KeyboardInterrupt:
                self.status_message = "Interrupted by user"
                live.update(self.generate_display())


def main(text: str = GUARD_MAP) -> None:
    """Run interactive demo on a guard map with a '^' start marker."""
    grid = parse_char_grid(text)
    start = extract_markers(grid, "^")["^"]
    WalkStepper(grid, start).run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == 'plain':
        # Running from IDE - just run to the end and print the final state
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s: %(message)s')
        grid = parse_char_grid(GUARD_MAP)
        stepper = WalkStepper(grid, extract_markers(grid, "^")["^"])
        stepper.run_to_end()
        stepper.console.print(stepper.generate_display())
    else:
        main()
