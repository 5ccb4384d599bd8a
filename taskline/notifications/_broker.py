"""Dramatiq broker bootstrap for the notification actor."""

from __future__ import annotations

import os
import sys
import threading

import dramatiq
from dramatiq.brokers.stub import StubBroker

_BROKER_LOCK = threading.Lock()
_broker_configured = False
_TRUTHY = frozenset({"1", "true", "yes"})


def _is_running_tests() -> bool:
    """Return whether the process runs under pytest."""
    return "pytest" in sys.modules or any(
        key in os.environ
        for key in ("PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS")
    )


def _should_use_stub_broker() -> bool:
    """Use a StubBroker under tests or when TASKLINE_ALLOW_STUB_BROKER is truthy."""
    allow_stub = os.environ.get("TASKLINE_ALLOW_STUB_BROKER", "")
    return allow_stub.strip().lower() in _TRUTHY or _is_running_tests()


def ensure_broker_configured() -> None:
    """Install a broker once per process before actors are declared.

    Raises
    ------
    RuntimeError
        If no broker can be obtained and a StubBroker is not allowed.

    """
    global _broker_configured

    if _broker_configured:
        return

    with _BROKER_LOCK:
        if _broker_configured:
            return

        if _should_use_stub_broker():
            dramatiq.set_broker(StubBroker())
        else:
            try:
                dramatiq.get_broker()
            except ImportError as exc:  # pragma: no cover - prod misconfiguration
                message = (
                    "No Dramatiq broker available. Install a broker extra "
                    "(e.g. dramatiq[rabbitmq]) or set TASKLINE_ALLOW_STUB_BROKER=1 "
                    "for local runs."
                )
                raise RuntimeError(message) from exc

        _broker_configured = True
