"""
Client-side Kanban board state.

Tasks are cached grouped by status. Moving a card is optimistic: the local
columns change immediately, the new status is PATCHed, and afterwards the
whole task list is fetched again and replaces the local state, whether the
PATCH succeeded or not. There is no targeted rollback; the re-fetch is the
reconciliation.
"""
import logging

from board_client.api_client import ApiError

logger = logging.getLogger(__name__)

COLUMNS = ("todo", "in_progress", "review", "done")


class BoardPermissionError(Exception):
    pass


def group_by_status(tasks):
    grouped = {column: [] for column in COLUMNS}
    for task in tasks:
        grouped.setdefault(task.get("status"), []).append(task)
    return grouped


class MoveTaskCommand:
    """One optimistic status change: ``apply`` locally, ``send`` to the server, ``settle`` by re-fetching."""

    def __init__(self, board, task_id, from_column, to_column):
        self.board = board
        self.task_id = task_id
        self.from_column = from_column
        self.to_column = to_column
        self.error = None
        self.sent = False

    def apply(self):
        source = self.board.columns[self.from_column]
        for index, task in enumerate(source):
            if task["id"] == self.task_id:
                break
        else:
            raise LookupError(f"Task {self.task_id} is not in column {self.from_column}")

        moved = {**source.pop(index), "status": self.to_column}
        self.board.columns[self.to_column].append(moved)
        return moved

    def send(self):
        try:
            self.board.client.update_task_status(self.task_id, self.to_column)
            self.sent = True
        except ApiError as e:
            logger.warning(f"Moving task {self.task_id} to {self.to_column} failed: {e}")
            self.error = e
        return self.sent

    def settle(self):
        self.board.refresh()
        if self.error is not None:
            self.board.error = self.error
        return self.sent


class KanbanBoard:
    def __init__(self, client, project_id, current_user_id=None, owner_id=None):
        self.client = client
        self.project_id = project_id
        self.current_user_id = current_user_id
        self.owner_id = owner_id
        self.columns = group_by_status([])
        self.error = None

    @property
    def can_drag(self):
        return self.owner_id is not None and self.current_user_id == self.owner_id

    @property
    def tasks(self):
        return [task for column in self.columns.values() for task in column]

    def find(self, task_id):
        for task in self.tasks:
            if task["id"] == task_id:
                return task
        return None

    def load(self, **filters):
        data = self.client.list_tasks(self.project_id, **filters)
        self.columns = group_by_status(data["tasks"])
        self.error = None
        return self.columns

    def refresh(self):
        """Replace local state with the server's; on failure keep it and record the error."""
        try:
            self.load()
        except ApiError as e:
            logger.error(f"Refreshing board of project {self.project_id} failed: {e}")
            self.error = e
            return False
        return True

    def move_task(self, task_id, from_column, to_column):
        if not self.can_drag:
            raise BoardPermissionError("Only the project owner can move tasks")
        for column in (from_column, to_column):
            if column not in COLUMNS:
                raise ValueError(f"Unknown column: {column}")
        if from_column == to_column:
            return None

        command = MoveTaskCommand(self, task_id, from_column, to_column)
        command.apply()
        command.send()
        command.settle()
        return command

    def stats(self):
        counts = {column: len(self.columns.get(column, [])) for column in COLUMNS}
        total = sum(counts.values())
        return {
            "total": total,
            "by_status": counts,
            "completion_rate": round(counts["done"] / total * 100) if total else 0,
        }
