"""Domain models package."""

from tfharness.domain.models.base import (
    DomainEntity,
    generate_id,
    utc_now,
    ValueObject,
)
from tfharness.domain.models.invocation import (
    Deadline,
    Invocation,
    InvocationOutcome,
    InvocationResult,
)
from tfharness.domain.models.lifecycle import (
    CleanupStatus,
    DEFAULT_OUTPUT_NAMES,
    EmptyOutputError,
    InvalidLifecycleTransitionError,
    LIFECYCLE_VALID_TRANSITIONS,
    LifecycleError,
    LifecycleRun,
    LifecycleState,
    OutputDecodeError,
    StepFailedError,
)


__all__ = [
    "CleanupStatus",
    "DEFAULT_OUTPUT_NAMES",
    "Deadline",
    "DomainEntity",
    "EmptyOutputError",
    "InvalidLifecycleTransitionError",
    "Invocation",
    "InvocationOutcome",
    "InvocationResult",
    "LIFECYCLE_VALID_TRANSITIONS",
    "LifecycleError",
    "LifecycleRun",
    "LifecycleState",
    "OutputDecodeError",
    "StepFailedError",
    "ValueObject",
    "generate_id",
    "utc_now",
]
