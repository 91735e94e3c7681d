"""Domain service driving the provisioning lifecycle."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import structlog

from tfharness.domain.models.invocation import Deadline
from tfharness.domain.models.lifecycle import (
    DEFAULT_OUTPUT_NAMES,
    InvalidLifecycleTransitionError,
    LifecycleError,
    LifecycleRun,
    LifecycleState,
    StepFailedError,
)
from tfharness.domain.ports.services import ProvisioningTool
from tfharness.domain.services.output_values import decode_output_value, require_non_empty


logger = structlog.get_logger(__name__)


class LifecycleDriver:
    """Sequences init -> apply -> output capture -> verify, with guaranteed destroy.

    The destroy is registered as soon as init succeeds, before apply is
    attempted, and runs on every exit path from then on. A failed destroy
    is logged and recorded on the run but never replaces the primary
    outcome. Steps run once each, in order, under a single deadline.
    """

    def __init__(
        self,
        tool: ProvisioningTool,
        output_names: Sequence[str] = DEFAULT_OUTPUT_NAMES,
        deadline_seconds: float = 1800.0,
    ) -> None:
        self._tool = tool
        self._output_names = tuple(output_names)
        self._deadline_seconds = deadline_seconds
        self._run = LifecycleRun()

    @property
    def run_record(self) -> LifecycleRun:
        return self._run

    async def run(self) -> LifecycleRun:
        """Run the whole lifecycle once.

        Raises:
            LifecycleError: on any fatal step failure, after cleanup ran.
            InvalidLifecycleTransitionError: if this driver already ran.
        """
        if self._run.state != LifecycleState.START:
            raise InvalidLifecycleTransitionError(f"Lifecycle run {self._run.id} already ran")

        deadline = Deadline.after(self._deadline_seconds)
        logger.info(
            "lifecycle_started",
            run_id=self._run.id,
            config_root=str(self._tool.config_root),
            deadline_seconds=self._deadline_seconds,
        )

        try:
            await self._initialize(deadline)
            async with self.provisioned(deadline):
                await self._apply(deadline)
                await self._capture_outputs(deadline)
                self._verify()
        except LifecycleError as e:
            self._run.fail(e.step, str(e))
            logger.error("lifecycle_failed", run_id=self._run.id, step=e.step, error=str(e))
            raise
        finally:
            self._run.finish()
            logger.info(
                "lifecycle_finished",
                run_id=self._run.id,
                reached=self._run.reached.value,
                cleanup=self._run.cleanup.value,
            )

        logger.info("lifecycle_passed", run_id=self._run.id, outputs=self._run.outputs)
        return self._run

    @asynccontextmanager
    async def provisioned(self, deadline: Deadline) -> AsyncIterator[LifecycleRun]:
        """Scope in which provisioned resources may exist; destroys them on exit."""
        try:
            yield self._run
        finally:
            await self._destroy(deadline)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _initialize(self, deadline: Deadline) -> None:
        invocation, result = await self._tool.init(deadline)
        if not result.succeeded:
            raise StepFailedError("init", invocation, result)
        self._run.mark_initialized()

    async def _apply(self, deadline: Deadline) -> None:
        invocation, result = await self._tool.apply(deadline)
        if not result.succeeded:
            raise StepFailedError("apply", invocation, result)
        self._run.mark_applied()

    async def _capture_outputs(self, deadline: Deadline) -> None:
        for name in self._output_names:
            invocation, result = await self._tool.output(name, deadline)
            if not result.succeeded:
                raise StepFailedError("output", invocation, result, subject=name)
            self._run.record_output(name, decode_output_value(name, result.stdout))
        self._run.mark_outputs_captured()

    def _verify(self) -> None:
        for name in self._output_names:
            require_non_empty(name, self._run.outputs[name])
        self._run.mark_verified()

        outputs = self._run.outputs
        if "s3_bucket_id" in outputs and "s3_bucket_region" in outputs:
            logger.info(
                "bucket_verified",
                bucket_id=outputs["s3_bucket_id"],
                region=outputs["s3_bucket_region"],
            )

    async def _destroy(self, deadline: Deadline) -> None:
        invocation, result = await self._tool.destroy(deadline)
        if result.succeeded:
            self._run.record_cleanup(succeeded=True)
            return

        message = (
            f"terraform destroy failed: {result.error}\n"
            f"command: {invocation.command_line}\n"
            f"stdout: {result.stdout}\n"
            f"stderr: {result.stderr}"
        )
        self._run.record_cleanup(succeeded=False, error_message=message)
        logger.warning(
            "terraform_destroy_failed",
            run_id=self._run.id,
            command=invocation.command_line,
            error=result.error,
            stdout=result.stdout,
            stderr=result.stderr,
        )
