"""Salary identifiers carried on log records of the current task."""
from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Iterator, Mapping

# Rendered first and in this order; other keys follow alphabetically.
KEY_ORDER = ("teacher_id", "calculation_id", "period")

_bindings: contextvars.ContextVar[Mapping[str, object]] = contextvars.ContextVar(
    "salary_log_bindings", default={}
)


def render(bindings: Mapping[str, object]) -> str:
    keys = [key for key in KEY_ORDER if key in bindings]
    keys += sorted(key for key in bindings if key not in KEY_ORDER)
    return "".join(f"{key}={bindings[key]} " for key in keys)


class LogContext:
    """Scoped bindings backed by a ``ContextVar``.

    A preview request racing a period switch runs in its own task, so the
    two never see each other's ``period``.
    """

    @contextmanager
    def bound(self, **values: object) -> Iterator[None]:
        merged = dict(_bindings.get())
        merged.update((key, value) for key, value in values.items() if value is not None)
        token = _bindings.set(merged)
        try:
            yield
        finally:
            _bindings.reset(token)

    def current(self) -> dict[str, object]:
        return dict(_bindings.get())


class ContextFilter(logging.Filter):
    """Sets ``record.context`` from the bindings of the emitting task."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Already set when the record was queued from another task.
        if not hasattr(record, "context"):
            record.context = render(_bindings.get())
        return True


log_context = LogContext()
