"""Lifecycle run model for one init -> apply -> output -> destroy pass."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from tfharness.domain.models.base import DomainEntity, utc_now
from tfharness.domain.models.invocation import Invocation, InvocationResult


DEFAULT_OUTPUT_NAMES: tuple[str, ...] = (
    "s3_bucket_id",
    "s3_bucket_arn",
    "s3_bucket_region",
)


class LifecycleState(str, Enum):
    """Lifecycle states, in forward order."""

    START = "start"
    INITIALIZED = "initialized"
    APPLIED = "applied"
    OUTPUTS_CAPTURED = "outputs_captured"
    VERIFIED = "verified"
    DONE = "done"


class CleanupStatus(str, Enum):
    NOT_ATTEMPTED = "not_attempted"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


LIFECYCLE_VALID_TRANSITIONS: dict[LifecycleState, set[LifecycleState]] = {
    LifecycleState.START: {LifecycleState.INITIALIZED, LifecycleState.DONE},
    LifecycleState.INITIALIZED: {LifecycleState.APPLIED, LifecycleState.DONE},
    LifecycleState.APPLIED: {LifecycleState.OUTPUTS_CAPTURED, LifecycleState.DONE},
    LifecycleState.OUTPUTS_CAPTURED: {LifecycleState.VERIFIED, LifecycleState.DONE},
    LifecycleState.VERIFIED: {LifecycleState.DONE},
    LifecycleState.DONE: set(),
}


class LifecycleRun(DomainEntity):
    """Record of a single lifecycle run.

    ``history`` lists every state entered, so a finished run still shows
    how far it got before DONE.
    """

    state: LifecycleState = LifecycleState.START
    history: list[LifecycleState] = Field(default_factory=lambda: [LifecycleState.START])
    outputs: dict[str, str] = Field(default_factory=dict)
    failed_step: str | None = None
    error_message: str = ""
    cleanup: CleanupStatus = CleanupStatus.NOT_ATTEMPTED
    cleanup_error: str = ""
    started_at: str = Field(default_factory=lambda: utc_now().isoformat())
    completed_at: str | None = None

    def _transition_to(self, new_state: LifecycleState) -> None:
        valid = LIFECYCLE_VALID_TRANSITIONS.get(self.state, set())
        if new_state not in valid:
            raise InvalidLifecycleTransitionError(
                f"Lifecycle cannot transition from {self.state.value} to {new_state.value}"
            )
        self.state = new_state
        self.history = [*self.history, new_state]
        self.touch()

    def mark_initialized(self) -> None:
        self._transition_to(LifecycleState.INITIALIZED)

    def mark_applied(self) -> None:
        self._transition_to(LifecycleState.APPLIED)

    def record_output(self, name: str, value: str) -> None:
        if self.state != LifecycleState.APPLIED:
            raise InvalidLifecycleTransitionError(
                f"Outputs can only be recorded after apply, not in {self.state.value}"
            )
        self.outputs = {**self.outputs, name: value}

    def mark_outputs_captured(self) -> None:
        self._transition_to(LifecycleState.OUTPUTS_CAPTURED)

    def mark_verified(self) -> None:
        self._transition_to(LifecycleState.VERIFIED)

    def fail(self, step: str, error_message: str) -> None:
        self.failed_step = step
        self.error_message = error_message
        self.touch()

    def record_cleanup(self, succeeded: bool, error_message: str = "") -> None:
        self.cleanup = CleanupStatus.SUCCEEDED if succeeded else CleanupStatus.FAILED
        self.cleanup_error = error_message
        self.touch()

    def finish(self) -> None:
        self._transition_to(LifecycleState.DONE)
        self.completed_at = utc_now().isoformat()

    @property
    def reached(self) -> LifecycleState:
        """Furthest state reached before DONE."""
        return next(
            (state for state in reversed(self.history) if state != LifecycleState.DONE),
            LifecycleState.START,
        )

    @property
    def is_terminal(self) -> bool:
        return self.state == LifecycleState.DONE

    @property
    def passed(self) -> bool:
        return self.failed_step is None and LifecycleState.VERIFIED in self.history


class InvalidLifecycleTransitionError(Exception):
    """Raised when an invalid lifecycle state transition is attempted."""


class LifecycleError(Exception):
    """Base class for failures that end a lifecycle run."""

    def __init__(self, step: str, message: str) -> None:
        super().__init__(message)
        self.step = step


class StepFailedError(LifecycleError):
    """Raised when a terraform invocation does not succeed."""

    def __init__(
        self,
        step: str,
        invocation: Invocation,
        result: InvocationResult,
        subject: str | None = None,
    ) -> None:
        label = f"terraform {step} {subject}" if subject else f"terraform {step}"
        super().__init__(
            step,
            f"{label} failed: {result.error}\n"
            f"command: {invocation.command_line}\n"
            f"stdout: {result.stdout}\n"
            f"stderr: {result.stderr}",
        )
        self.invocation = invocation
        self.result = result


class OutputDecodeError(LifecycleError):
    """Raised when an output value is not a JSON-encoded string."""

    def __init__(self, name: str, raw: str, reason: str) -> None:
        super().__init__("output", f"failed to parse {name} output: {reason}\noutput: {raw}")
        self.name = name
        self.raw = raw


class EmptyOutputError(LifecycleError):
    """Raised when an output value decodes to an empty string."""

    def __init__(self, name: str) -> None:
        super().__init__("verify", f"expected non-empty {name} output, got empty string")
        self.name = name
