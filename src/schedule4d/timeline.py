"""4D timeline playback and visualization."""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta

import structlog

from schedule4d.collaborators import ModelCollaborator
from schedule4d.links import LinkStore
from schedule4d.models import ScheduleTask, TaskStatus, TimelineState, VisualState, flatten_tasks

logger = structlog.get_logger()

DEFAULT_FRAME_INTERVAL = 1 / 60

VISUAL_STATES = {
    TaskStatus.NOT_STARTED: VisualState(TaskStatus.NOT_STARTED, visible=True, opacity=0.2, color="#888888"),
    TaskStatus.IN_PROGRESS: VisualState(TaskStatus.IN_PROGRESS, visible=True, opacity=1.0, color="#ffff88"),
    TaskStatus.COMPLETED: VisualState(TaskStatus.COMPLETED, visible=True, opacity=1.0, color="#88ff88"),
}


def classify_status(current_date: datetime, task: ScheduleTask) -> TaskStatus:
    """Classify a task at a date; the start date counts as in progress and the end date as completed."""
    if current_date < task.start_date:
        return TaskStatus.NOT_STARTED
    if current_date >= task.end_date:
        return TaskStatus.COMPLETED
    return TaskStatus.IN_PROGRESS


def visual_state_for(status: TaskStatus) -> VisualState:
    """Get the visibility, opacity and color used for a task status."""
    return VISUAL_STATES[status]


class FrameHandle:
    """Cancellation token for a requested frame."""

    def __init__(self, on_cancel: Callable[[], None] | None = None) -> None:
        self.cancelled = False
        self._on_cancel = on_cancel

    def cancel(self) -> None:
        """Cancel the frame; cancelling twice is harmless."""
        if self.cancelled:
            return
        self.cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()


class FrameScheduler(ABC):
    """Abstract base class for the host's per-frame callback mechanism."""

    @abstractmethod
    def request_frame(self, callback: Callable[[], None]) -> FrameHandle:
        """Run a callback once, on the next frame."""
        pass


class ManualFrameScheduler(FrameScheduler):
    """Frame scheduler driven explicitly by the host calling ``run_frame``."""

    def __init__(self) -> None:
        self._pending: list[tuple[FrameHandle, Callable[[], None]]] = []

    def request_frame(self, callback: Callable[[], None]) -> FrameHandle:
        handle = FrameHandle()
        self._pending.append((handle, callback))
        return handle

    @property
    def pending(self) -> int:
        """Number of frames requested and not cancelled."""
        return sum(1 for handle, _ in self._pending if not handle.cancelled)

    def run_frame(self) -> int:
        """Run the callbacks requested before this frame.

        Returns:
            Number of callbacks run.
        """
        frames, self._pending = self._pending, []
        ran = 0
        for handle, callback in frames:
            if handle.cancelled:
                continue
            handle.cancelled = True
            callback()
            ran += 1
        return ran


class AsyncioFrameScheduler(FrameScheduler):
    """Frame scheduler running callbacks on an asyncio event loop at a fixed interval."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None, interval: float = DEFAULT_FRAME_INTERVAL) -> None:
        self._loop = loop
        self.interval = interval

    def request_frame(self, callback: Callable[[], None]) -> FrameHandle:
        loop = self._loop or asyncio.get_running_loop()
        timer = loop.call_later(self.interval, callback)
        return FrameHandle(timer.cancel)


class TimelineEngine:
    """Drives the simulated construction date and the visual state of linked entities.

    The engine is either stopped or playing. While playing, every frame
    advances the current date by the real time elapsed since the previous
    frame multiplied by the playback speed, and stops when the end of the
    schedule is reached.
    """

    def __init__(
        self,
        link_store: LinkStore,
        renderer: ModelCollaborator | None = None,
        scheduler: FrameScheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the timeline engine.

        Args:
            link_store: Links deciding which entities each task drives
            renderer: Model viewer receiving visual states, if any
            scheduler: Frame scheduler for playback (defaults to a manual one)
            clock: Monotonic clock in seconds used to measure elapsed time between frames
            now: Source of the current date before a schedule is loaded
        """
        self.link_store = link_store
        self.renderer = renderer
        self.scheduler = scheduler or ManualFrameScheduler()
        self._clock = clock

        today = now()
        self._state = TimelineState(current_date=today, start_date=today, end_date=today)
        self._tasks: list[ScheduleTask] = []
        self._task_map: dict[str, ScheduleTask] = {}
        self._frame: FrameHandle | None = None
        self._last_tick = 0.0
        self._visual_states: dict[str, VisualState] = {}

        self.on_tasks_loaded: Callable[[list[ScheduleTask]], None] | None = None
        self.on_timeline_state_changed: Callable[[TimelineState], None] | None = None

    def _notify_state(self) -> None:
        if self.on_timeline_state_changed is not None:
            self.on_timeline_state_changed(self.get_timeline_state())

    def load_tasks(self, tasks: list[ScheduleTask]) -> None:
        """Load a task tree and fit the timeline to its date range.

        An empty task list keeps the previous date range.
        """
        self._stop()
        self._tasks = list(tasks)
        flat_tasks = flatten_tasks(self._tasks)
        self._task_map = {task.task_id: task for task in flat_tasks}

        if flat_tasks:
            self._state.start_date = min(task.start_date for task in flat_tasks)
            self._state.end_date = max(task.end_date for task in flat_tasks)
            self._state.current_date = self._state.start_date
        logger.info(
            "Tasks loaded",
            count=len(flat_tasks),
            start_date=self._state.start_date.isoformat(),
            end_date=self._state.end_date.isoformat(),
        )

        self.update_visualization()
        self._notify_state()
        if self.on_tasks_loaded is not None:
            self.on_tasks_loaded(list(self._tasks))

    def get_tasks(self) -> list[ScheduleTask]:
        """Get the root tasks."""
        return list(self._tasks)

    def get_task(self, task_id: str) -> ScheduleTask | None:
        """Get any task of the tree by its task ID."""
        return self._task_map.get(task_id)

    def get_flat_tasks(self) -> list[ScheduleTask]:
        """Get every task of the tree."""
        return flatten_tasks(self._tasks)

    def get_timeline_state(self) -> TimelineState:
        """Get a copy of the timeline state."""
        return replace(self._state)

    @property
    def is_playing(self) -> bool:
        return self._state.is_playing

    def play(self) -> None:
        """Start playback.

        If no frame can be scheduled the engine stays stopped.
        """
        if self._state.is_playing:
            return

        if not self._request_frame():
            return
        self._state.is_playing = True
        self._last_tick = self._clock()
        logger.info("Timeline playing", current_date=self._state.current_date.isoformat())
        self._notify_state()

    def _request_frame(self) -> bool:
        try:
            self._frame = self.scheduler.request_frame(self._tick)
        except Exception as e:
            self._frame = None
            logger.error("Failed to schedule frame", error=str(e))
            return False
        return True

    def pause(self) -> None:
        """Stop playback, keeping the current date."""
        self._stop()
        logger.info("Timeline paused", current_date=self._state.current_date.isoformat())
        self._notify_state()

    def reset(self) -> None:
        """Stop playback and rewind to the start of the schedule."""
        self._stop()
        self._state.current_date = self._state.start_date
        logger.info("Timeline reset", current_date=self._state.current_date.isoformat())
        self.update_visualization()
        self._notify_state()

    def set_current_date(self, date: datetime) -> None:
        """Jump to a date, in either state."""
        self._state.current_date = date
        self.update_visualization()
        self._notify_state()

    def set_playback_speed(self, speed: float) -> None:
        """Set the playback speed in simulated days per real second."""
        if speed <= 0:
            logger.warning("Ignoring non-positive playback speed", speed=speed)
            return
        self._state.playback_speed = speed
        self._notify_state()

    def _stop(self) -> None:
        self._state.is_playing = False
        if self._frame is not None:
            self._frame.cancel()
            self._frame = None

    def _tick(self) -> None:
        self._frame = None
        if not self._state.is_playing:
            return

        now = self._clock()
        elapsed = max(now - self._last_tick, 0.0)
        self._last_tick = now

        advanced = self._state.current_date + timedelta(days=elapsed * self._state.playback_speed)
        if advanced > self._state.end_date:
            self._state.current_date = self._state.end_date
            self._state.is_playing = False
            logger.info("Timeline reached end", end_date=self._state.end_date.isoformat())
        else:
            self._state.current_date = advanced

        self.update_visualization()
        self._notify_state()

        if self._state.is_playing and not self._request_frame():
            self._state.is_playing = False
            self._notify_state()

    def update_visualization(self) -> dict[str, VisualState]:
        """Recompute the visual state of every task with linked entities.

        Returns:
            Visual state per task ID.
        """
        current_date = self._state.current_date
        states: dict[str, VisualState] = {}

        for task_id, links in self.link_store.all_links().items():
            if not links:
                continue
            task = self._task_map.get(task_id)
            if task is None:
                continue

            state = visual_state_for(classify_status(current_date, task))
            states[task_id] = state

            if self.renderer is None:
                continue
            try:
                self.renderer.apply_visual_state(links, state.visible, state.opacity, state.color)
            except Exception as e:
                logger.warning("Failed to apply visual state", task_id=task_id, error=str(e))

        self._visual_states = states
        return dict(states)

    @property
    def visual_states(self) -> dict[str, VisualState]:
        """Visual states from the last recompute."""
        return dict(self._visual_states)

    def active_tasks_on_date(self, date: datetime) -> list[ScheduleTask]:
        """Get every task whose date range contains the date, ends included."""
        return [task for task in self.get_flat_tasks() if task.start_date <= date <= task.end_date]

    def dispose(self) -> None:
        """Stop playback and drop all tasks."""
        self._stop()
        self._tasks = []
        self._task_map.clear()
        self._visual_states.clear()
        logger.debug("Timeline disposed")
