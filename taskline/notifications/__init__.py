"""Notification side channel for task changes."""

from __future__ import annotations

from .emitter import (
    DramatiqNotificationEmitter,
    LoggingNotificationEmitter,
    NotificationEmitter,
)

__all__ = [
    "DramatiqNotificationEmitter",
    "LoggingNotificationEmitter",
    "NotificationEmitter",
]
