"""Task reconciliation errors."""

from __future__ import annotations


class TaskReconcileError(RuntimeError):
    """Raised when a task can neither be created nor found."""

    @classmethod
    def vanished_after_conflict(cls, feature_code: str) -> TaskReconcileError:
        """Return an error for a create conflict whose winner is not visible."""
        return cls(
            f"task {feature_code} conflicted on insert but could not be reloaded"
        )
