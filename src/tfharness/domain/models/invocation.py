"""External process invocation models."""

from __future__ import annotations

import shlex
import time
from enum import Enum
from pathlib import Path

from pydantic import Field

from tfharness.domain.models.base import ValueObject


class Deadline(ValueObject):
    """Absolute expiry on the monotonic clock, shared by every step of a run."""

    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        return cls(expires_at=time.monotonic() + seconds)

    def remaining(self) -> float:
        """Seconds left before expiry, never negative."""
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0


class Invocation(ValueObject):
    """One execution of an external program."""

    executable: str
    args: tuple[str, ...] = ()
    working_dir: Path
    deadline: Deadline

    @property
    def command_line(self) -> str:
        return shlex.join([self.executable, *self.args])


class InvocationOutcome(str, Enum):
    """Completion outcome of an invocation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class InvocationResult(ValueObject):
    """Captured streams and outcome of a finished invocation.

    ``returncode`` is None when the process never started or was killed
    at the deadline; ``error`` holds the underlying cause of a failure.
    """

    stdout: str = ""
    stderr: str = ""
    outcome: InvocationOutcome
    returncode: int | None = None
    error: str | None = None
    duration_seconds: float = Field(default=0.0, ge=0.0)

    @property
    def succeeded(self) -> bool:
        return self.outcome == InvocationOutcome.SUCCEEDED
