"""Service port interfaces (hexagonal architecture)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from tfharness.domain.models.invocation import Deadline, Invocation, InvocationResult


class ProcessRunner(ABC):
    """Port for running external processes."""

    @abstractmethod
    async def run(self, invocation: Invocation) -> InvocationResult:
        """Run the invocation to completion or until its deadline.

        Failures (non-zero exit, missing executable, deadline) are reported
        through the result outcome rather than raised.
        """


class ProvisioningTool(ABC):
    """Port for the provisioning CLI driven by the lifecycle.

    Each command returns the invocation that was run together with its
    result; judging success is left to the caller.
    """

    @property
    @abstractmethod
    def config_root(self) -> Path:
        """Directory the tool runs in."""

    @abstractmethod
    async def init(self, deadline: Deadline) -> tuple[Invocation, InvocationResult]:
        """Initialize the working directory."""

    @abstractmethod
    async def apply(self, deadline: Deadline) -> tuple[Invocation, InvocationResult]:
        """Create or update the configured infrastructure."""

    @abstractmethod
    async def output(self, name: str, deadline: Deadline) -> tuple[Invocation, InvocationResult]:
        """Query one named output value as JSON."""

    @abstractmethod
    async def destroy(self, deadline: Deadline) -> tuple[Invocation, InvocationResult]:
        """Tear down the configured infrastructure."""
