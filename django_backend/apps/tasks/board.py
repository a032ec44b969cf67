"""Grouping of a project's tasks into the four Kanban columns."""
from .models import TaskStatus

BOARD_COLUMNS = [choice.value for choice in TaskStatus]


def group_by_status(tasks, serialize=None):
    """
    Bucket ``tasks`` into ``{column: [task, ...]}`` preserving input order.
    Every column is present even when empty. ``serialize`` converts each task
    before it is placed (e.g. a serializer's ``to_representation``).
    """
    grouped = {column: [] for column in BOARD_COLUMNS}
    for task in tasks:
        item = serialize(task) if serialize else task
        grouped.setdefault(task.status, []).append(item)
    return grouped
