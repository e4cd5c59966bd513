from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from dependency_scheduler.core.log import get_logger
from dependency_scheduler.core.model import Task, TaskWindow


log = get_logger("durations")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def estimate(task: Task) -> timedelta:
    """Estimated effort; an absent or negative estimate counts as zero (a milestone)."""
    minutes = task.estimated_duration_minutes
    if minutes is None or minutes <= 0:
        return timedelta(0)
    return timedelta(minutes=minutes)


def earliest_known_date(tasks: Iterable[Task]) -> Optional[datetime]:
    dates = [d for t in tasks for d in (t.start_date, t.due_date) if d is not None]
    return min(dates) if dates else None


def derive_window(task: Task, anchor: datetime) -> TaskWindow:
    start, due = task.start_date, task.due_date
    if start is not None and due is not None:
        if due < start:
            log.debug("task %s is due before it starts; treating as zero-duration", task.id)
            return TaskWindow(start=start, finish=start)
        return TaskWindow(start=start, finish=due)
    if start is not None:
        return TaskWindow(start=start, finish=start + estimate(task))
    if due is not None:
        return TaskWindow(start=due - estimate(task), finish=due)
    return TaskWindow(start=anchor, finish=anchor + estimate(task))


def derive_windows(tasks: Iterable[Task], anchor: Optional[datetime] = None) -> dict[str, TaskWindow]:
    """Nominal start/finish for every task in scope.

    Undated tasks are anchored at the scope's earliest known date, falling back
    to `anchor` and then the Unix epoch when nothing in scope carries a date.
    """

    task_list = list(tasks)
    base = earliest_known_date(task_list) or anchor or EPOCH
    return {t.id: derive_window(t, base) for t in task_list}
