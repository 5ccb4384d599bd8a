"""Task reconciliation from parsed directives."""

from __future__ import annotations

from .errors import TaskReconcileError
from .events import TaskChangeEvent, TaskEventKind
from .reconciler import ReconcileOutcome, TaskReconciler

__all__ = [
    "ReconcileOutcome",
    "TaskChangeEvent",
    "TaskEventKind",
    "TaskReconcileError",
    "TaskReconciler",
]
