"""Terraform CLI executor."""

from __future__ import annotations

from pathlib import Path

import structlog

from tfharness.domain.models.invocation import Deadline, Invocation, InvocationResult
from tfharness.domain.ports.services import ProcessRunner, ProvisioningTool


logger = structlog.get_logger(__name__)


class TerraformCli(ProvisioningTool):
    """Builds terraform invocations and runs them through a process runner.

    All commands run in ``config_root``. Results are returned unchanged;
    deciding whether a failure is fatal is left to the caller.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        config_root: Path,
        var_file: str,
        binary: str = "terraform",
    ) -> None:
        self._runner = runner
        self._config_root = config_root
        self._var_file = var_file
        self._binary = binary

    @property
    def config_root(self) -> Path:
        return self._config_root

    def invocation(self, deadline: Deadline, *args: str) -> Invocation:
        """Build an invocation of the terraform binary."""
        return Invocation(
            executable=self._binary,
            args=args,
            working_dir=self._config_root,
            deadline=deadline,
        )

    async def init(self, deadline: Deadline) -> tuple[Invocation, InvocationResult]:
        """Run terraform init without interactive input."""
        return await self._run(self.invocation(deadline, "init", "-input=false"))

    async def apply(self, deadline: Deadline) -> tuple[Invocation, InvocationResult]:
        """Run terraform apply with the harness variable file."""
        return await self._run(
            self.invocation(deadline, "apply", "-auto-approve", f"-var-file={self._var_file}")
        )

    async def output(
        self, name: str, deadline: Deadline
    ) -> tuple[Invocation, InvocationResult]:
        """Query a single output value as JSON."""
        return await self._run(self.invocation(deadline, "output", "-json", name))

    async def destroy(self, deadline: Deadline) -> tuple[Invocation, InvocationResult]:
        """Run terraform destroy with the harness variable file."""
        return await self._run(
            self.invocation(deadline, "destroy", "-auto-approve", f"-var-file={self._var_file}")
        )

    async def _run(self, invocation: Invocation) -> tuple[Invocation, InvocationResult]:
        logger.debug(
            "terraform_command",
            subcommand=invocation.args[0],
            working_dir=str(invocation.working_dir),
        )
        return invocation, await self._runner.run(invocation)
