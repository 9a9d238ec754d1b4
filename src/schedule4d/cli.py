"""CLI for schedule4d."""

from datetime import datetime
from pathlib import Path
from typing import Annotated, Literal

import structlog
from cyclopts import App, Parameter

from schedule4d.config import get_config
from schedule4d.config_commands import config_app
from schedule4d.link_commands import link_app
from schedule4d.links import LinkStore
from schedule4d.models import ScheduleTask, flatten_tasks
from schedule4d.parser import MSProjectParser
from schedule4d.rule_commands import rule_app
from schedule4d.store import Store
from schedule4d.stores import YamlStore
from schedule4d.timeline import ManualFrameScheduler, TimelineEngine, classify_status, visual_state_for

logger = structlog.get_logger()

app = App(
    help="schedule4d - 4D construction scheduling",
)

app.command(link_app)
app.command(rule_app)
app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def get_store() -> Store:
    """Get the configured store."""

    config = get_config()
    store_type = config.get("store.type")

    if store_type == "yaml":
        return YamlStore(root=config.get("store.path"))
    else:
        raise ValueError(f"Unknown store: {store_type}")


def _format_date(date: datetime) -> str:
    return date.strftime("%Y-%m-%d %H:%M")


def _print_tree(tasks: list[ScheduleTask], depth: int = 0) -> None:
    for task in tasks:
        outline = f"{task.outline_number} " if task.outline_number else ""
        print(
            f"{'  ' * depth}{outline}{task.name} [{task.task_id}] "
            f"{_format_date(task.start_date)} -> {_format_date(task.end_date)} "
            f"({task.duration:g}d, {task.percent_complete:g}%)"
        )
        _print_tree(task.children, depth + 1)


@app.command
def parse(file: Path) -> None:
    """Parse an MS Project XML file and print its task tree."""
    project = MSProjectParser().parse_file(file)

    print(f"Project: {project.name}")
    print(f"Start: {_format_date(project.start_date)}")
    print(f"Finish: {_format_date(project.finish_date)}")
    print(f"Tasks: {len(flatten_tasks(project.tasks))}\n")
    _print_tree(project.tasks)


@app.command
def active(file: Path, date: datetime) -> None:
    """List the tasks in progress on a date."""
    project = MSProjectParser().parse_file(file)
    engine = TimelineEngine(LinkStore())
    engine.load_tasks(project.tasks)

    tasks = engine.active_tasks_on_date(date)
    print(f"Found {len(tasks)} active task(s) on {_format_date(date)}:\n")
    for task in tasks:
        print(f"  {task.task_id}: {task.name}")


@app.command
def status(file: Path, date: datetime) -> None:
    """Show the construction status of every task on a date."""
    project = MSProjectParser().parse_file(file)

    for task in flatten_tasks(project.tasks):
        state = visual_state_for(classify_status(date, task))
        print(f"{task.task_id}: {task.name} - {state.status.value} (opacity {state.opacity:g}, color {state.color})")


class SteppedClock:
    """Clock advanced by hand, for headless playback."""

    def __init__(self) -> None:
        self.seconds = 0.0

    def __call__(self) -> float:
        return self.seconds

    def advance(self, seconds: float) -> None:
        self.seconds += seconds


@app.command
def simulate(
    file: Path,
    speed: float | None = None,
    steps: int = 10,
    step_seconds: float = 1.0,
) -> None:
    """Play back a schedule headlessly, one frame per step."""
    project = MSProjectParser().parse_file(file)
    if speed is None:
        speed = get_config().get_float("playback.speed")

    clock = SteppedClock()
    scheduler = ManualFrameScheduler()
    engine = TimelineEngine(LinkStore(), scheduler=scheduler, clock=clock)
    engine.load_tasks(project.tasks)
    engine.set_playback_speed(speed)

    state = engine.get_timeline_state()
    print(f"Timeline: {_format_date(state.start_date)} -> {_format_date(state.end_date)} at {speed:g} day(s)/s\n")

    engine.play()
    for step in range(1, steps + 1):
        clock.advance(step_seconds)
        scheduler.run_frame()
        state = engine.get_timeline_state()
        active_count = len(engine.active_tasks_on_date(state.current_date))
        print(f"{step:>4}  {_format_date(state.current_date)}  {active_count} active task(s)")
        if not state.is_playing:
            print("\nReached end of schedule")
            break


@app.command(name="import")
def import_schedule(file: Path, project: str) -> None:
    """Parse an MS Project XML file and save its tasks to the store."""
    parsed = MSProjectParser().parse_file(file)
    store = get_store()
    result = store.save_tasks(project, parsed.tasks)
    if not result.ok:
        raise ValueError(f"Failed to save tasks: {result.error}")
    print(f"Imported {len(flatten_tasks(parsed.tasks))} task(s) into project {project}")


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
