"""Task change events handed to the notification emitter."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ


class TaskEventKind(enum.StrEnum):
    """What changed on a task."""

    CREATED = "task.created"
    STATUS_CHANGED = "task.status_changed"
    ASSIGNEE_CHANGED = "task.assignee_changed"
    SPRINT_CHANGED = "task.sprint_changed"


@dc.dataclass(frozen=True, slots=True)
class TaskChangeEvent:
    """A single task change produced by reconciliation.

    ``recipient_id`` is the task's assignee after the change, if any.
    ``old_value``/``new_value`` hold statuses, user ids or sprint ids
    depending on ``kind``.
    """

    kind: TaskEventKind
    project_id: str
    task_id: str
    feature_code: str
    title: str
    commit_sha: str
    recipient_id: str | None = None
    old_value: str | None = None
    new_value: str | None = None

    def describe(self) -> str:
        """Return a one-line human-readable summary."""
        match self.kind:
            case TaskEventKind.CREATED:
                return f"{self.feature_code} created: {self.title}"
            case TaskEventKind.STATUS_CHANGED:
                return (
                    f"{self.feature_code} status changed from "
                    f"{self.old_value} to {self.new_value}"
                )
            case TaskEventKind.ASSIGNEE_CHANGED:
                return f"{self.feature_code} assigned to {self.new_value}"
            case TaskEventKind.SPRINT_CHANGED:
                return f"{self.feature_code} moved to sprint {self.new_value}"

    def to_payload(self) -> dict[str, typ.Any]:
        """Return a JSON-safe mapping suitable for a message queue."""
        payload = dc.asdict(self)
        payload["kind"] = self.kind.value
        return payload

    @classmethod
    def from_payload(cls, payload: typ.Mapping[str, typ.Any]) -> TaskChangeEvent:
        """Rebuild an event from :meth:`to_payload` output."""
        values = dict(payload)
        values["kind"] = TaskEventKind(values["kind"])
        return cls(**values)
