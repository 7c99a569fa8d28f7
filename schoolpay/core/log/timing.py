"""Duration logging for calls to the salary collaborator."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Iterator, Optional


@dataclass
class CallTimer:
    label: str
    logger: logging.Logger
    slow_after: Optional[float] = None
    outcome: Optional[str] = None
    started: float = field(default_factory=perf_counter)

    @property
    def elapsed(self) -> float:
        return perf_counter() - self.started

    @property
    def is_slow(self) -> bool:
        return self.slow_after is not None and self.elapsed > self.slow_after


@contextmanager
def timeit(
    label: str,
    *,
    logger: Optional[logging.Logger] = None,
    slow_after: Optional[float] = None,
) -> Iterator[CallTimer]:
    """Log how long the block took.

    Set ``timer.outcome`` inside the block (an HTTP status, for example) to
    have it appended to the message. Blocks running longer than
    ``slow_after`` seconds are logged as warnings.
    """
    timer = CallTimer(
        label=label,
        logger=logger or logging.getLogger("schoolpay.timer"),
        slow_after=slow_after,
    )
    try:
        yield timer
    except BaseException:
        timer.logger.warning("%s failed after %.3fs", label, timer.elapsed)
        raise

    level = logging.WARNING if timer.is_slow else logging.DEBUG
    suffix = f" -> {timer.outcome}" if timer.outcome else ""
    timer.logger.log(level, "%s took %.3fs%s", label, timer.elapsed, suffix)
