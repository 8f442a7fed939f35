"""
Arena — Performance Map Renderer

Loads an arena, drives the regeneration controller until the outcome map is
published, prints a summary table and saves the color-coded map as a PNG.
Optionally replays one live launch and marks it on the map.

Usage:
    python arena/render_map.py
    python arena/render_map.py --config arena/configs/default_arena.yaml --output map.png
    python arena/render_map.py --angles 36 --speeds 10 --gravity 7.5
    python arena/render_map.py --launch 0 -12   # replay a kick of (vx, vy) and mark it
"""

import argparse
import logging
import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")  # Non-interactive backend for saving plots
import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress
from rich.table import Table

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from gravity_engine.classifier import OutcomeKind, classify_outcome
from gravity_engine.colormap import grid_to_rgb, hit_boundary_segments, outcome_to_css
from gravity_engine.config import SimConfig, load_arena
from gravity_engine.controller import RegenerationController
from gravity_engine.errors import ConfigurationError
from gravity_engine.live import LiveLaunch
from gravity_engine.registry import AttractorRegistry
from gravity_engine.sampler import OutcomeGrid, SessionStatus, StatusKind

console = Console()

CONFIGS_DIR = Path(__file__).resolve().parent / "configs"
PLOTS_DIR = Path(__file__).resolve().parent / "plots"


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def build_controller(config_path: Path, overrides: dict = None) -> RegenerationController:
    """Registry + controller for an arena file, with CLI overrides applied."""
    config, attractors = load_arena(config_path)
    if overrides:
        config = config.with_overrides(**overrides)
    registry = AttractorRegistry.from_config(config, attractors)
    return RegenerationController(registry, config)


def generate_map(controller: RegenerationController) -> OutcomeGrid:
    """Regenerate and pump the controller to publication, with a progress bar."""
    with Progress(console=console, transient=True) as progress:
        task = progress.add_task("Generating map...", total=100)

        def on_status(status: SessionStatus) -> None:
            if status.kind == StatusKind.GENERATING:
                progress.update(task, completed=status.progress)
            elif status.kind == StatusKind.PUBLISHED:
                progress.update(task, completed=100)

        controller.add_listener(on_status)
        controller.regenerate("Initial generation...")
        return controller.run_until_idle()


def replay_launch(controller: RegenerationController, velocity) -> LiveLaunch:
    """Fly one live launch against the current layout and record its kick."""
    launch = LiveLaunch(controller.registry.snapshot(), controller.config)
    launch.launch(velocity)
    launch.run()
    controller.record_kick(*launch.kick)
    return launch


def summarize(grid: OutcomeGrid, config: SimConfig) -> Table:
    kinds = [classify_outcome(v, config.success_threshold) for v in grid.values.ravel()]
    total = len(kinds)

    table = Table(title="Performance Map")
    table.add_column("Outcome", style="cyan")
    table.add_column("Cells", justify="right")
    table.add_column("Share", justify="right")
    for kind, style in ((OutcomeKind.SUCCESS, "green"), (OutcomeKind.MISS, "yellow"), (OutcomeKind.FAILURE, "red")):
        count = sum(1 for k in kinds if k == kind)
        table.add_row(f"[{style}]{kind.value}[/{style}]", str(count), f"{count / total:.1%}")

    lo = "n/a" if grid.min_finite is None else f"{grid.min_finite:.2f}"
    hi = "n/a" if grid.max_finite is None else f"{grid.max_finite:.2f}"
    table.caption = f"{grid.shape[0]} speeds x {grid.shape[1]} angles | min finite {lo} | max finite {hi}"
    return table


def plot_outcome_grid(grid: OutcomeGrid, config: SimConfig, output_path: Path, marker=None) -> Path:
    """Save the color-coded map with hit boundaries and an optional launch marker."""
    rows, cols = grid.shape
    y0, y1 = config.min_speed, config.max_speed
    if y1 <= y0:
        y0, y1 = y0 - 0.5, y0 + 0.5
    sx = 360.0 / cols
    sy = (y1 - y0) / rows

    fig, ax = plt.subplots(figsize=(14, 3))
    image = grid_to_rgb(grid.values, config.max_dist_color, config.success_threshold)
    ax.imshow(image, origin="lower", aspect="auto", extent=[0.0, 360.0, y0, y1], interpolation="nearest")

    segments = [
        [(i0 * sx, y0 + j0 * sy), (i1 * sx, y0 + j1 * sy)]
        for (i0, j0), (i1, j1) in hit_boundary_segments(grid.values)
    ]
    if segments:
        ax.add_collection(LineCollection(segments, colors="#FFFFFF", linewidths=1.5))

    if marker is not None:
        u, v = marker
        ax.plot(u * 360.0, y0 + v * (y1 - y0), "o", color="#000000", markeredgecolor="#FFFFFF", markersize=6)

    ax.set_xlabel("Kick Angle (0° to 360°)")
    ax.set_ylabel(f"Kick Velocity ({config.min_speed:.1f} to {config.max_speed:.1f} px/step)")
    ax.set_xlim(0.0, 360.0)
    ax.set_ylim(y0, y1)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(output_path, dpi=100)
    plt.close(fig)
    return output_path


def render(args: argparse.Namespace) -> int:
    overrides = {}
    if args.angles is not None:
        overrides["angle_steps"] = args.angles
    if args.speeds is not None:
        overrides["speed_steps"] = args.speeds
    if args.gravity is not None:
        overrides["gravity_constant"] = args.gravity
    if args.steps is not None:
        overrides["sim_steps"] = args.steps

    try:
        controller = build_controller(Path(args.config), overrides)
        console.print("\n[bold cyan]═══ Performance Map ═══[/bold cyan]\n")
        console.print(controller.registry.describe(controller.config.gravity_constant))
        grid = generate_map(controller)
        launch = replay_launch(controller, args.launch) if args.launch else None
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        return 1

    console.print(controller.status.describe())
    console.print(summarize(grid, controller.config))

    if launch is not None:
        angle, speed = launch.kick
        predicted = grid.outcome_at(angle, speed)
        outcome = launch.event.message if launch.event is not None else "No terminal event"
        console.print(
            f"  Launch angle={angle:.1f}°, speed={speed:.2f}: {outcome} "
            f"(map cell: {outcome_to_css(predicted, controller.config.max_dist_color)})"
        )

    path = plot_outcome_grid(grid, controller.config, Path(args.output), marker=controller.marker())
    console.print(f"  📊 Map saved: {path}")
    return 0


# ---------- CLI ----------
def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Render the launch outcome map")
    parser.add_argument("--config", type=str, default=str(CONFIGS_DIR / "default_arena.yaml"),
                        help="Arena YAML file")
    parser.add_argument("--output", type=str, default=str(PLOTS_DIR / "performance_map.png"),
                        help="Output PNG path")
    parser.add_argument("--angles", type=int, default=None,
                        help="Number of angle samples")
    parser.add_argument("--speeds", type=int, default=None,
                        help="Number of speed samples")
    parser.add_argument("--gravity", type=float, default=None,
                        help="Gravity constant override")
    parser.add_argument("--steps", type=int, default=None,
                        help="Per-trial step budget")
    parser.add_argument("--launch", type=float, nargs=2, metavar=("VX", "VY"), default=None,
                        help="Replay one live launch and mark it on the map")
    parser.add_argument("--verbose", action="store_true",
                        help="Debug logging")
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    return render(args)


if __name__ == "__main__":
    sys.exit(main())
