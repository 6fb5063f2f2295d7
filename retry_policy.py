#!/usr/bin/env python3
"""Bounded retry for flaky git network operations."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryOutcome:
    ok: bool
    attempts: int


@dataclass(frozen=True)
class RetryPolicy:
    """Call an operation until it reports success or the attempts run out."""

    max_attempts: int = 1
    backoff_seconds: float = 2.0
    multiplier: float = 2.0
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_seconds < 0 or self.multiplier < 1:
            raise ValueError("backoff_seconds must be >= 0 and multiplier >= 1")

    def delays(self) -> list[float]:
        return [self.backoff_seconds * self.multiplier**i for i in range(self.max_attempts - 1)]

    def run(self, operation: Callable[[], bool], *, label: str = "operation") -> RetryOutcome:
        delays = self.delays()
        for attempt in range(1, self.max_attempts + 1):
            if operation():
                return RetryOutcome(ok=True, attempts=attempt)
            if attempt < self.max_attempts:
                delay = delays[attempt - 1]
                logger.warning("%s failed (attempt %d/%d); retrying in %.1fs", label, attempt, self.max_attempts, delay)
                self.sleep(delay)
        return RetryOutcome(ok=False, attempts=self.max_attempts)
