"""Subprocess-backed process runner."""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import time

import structlog

from tfharness.domain.models.invocation import Invocation, InvocationOutcome, InvocationResult
from tfharness.domain.ports.services import ProcessRunner


logger = structlog.get_logger(__name__)

KILL_DRAIN_TIMEOUT_SECONDS = 5.0
READ_CHUNK_SIZE = 64 * 1024


def _decode(chunks: list[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")


def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill the process and everything in its session."""
    with contextlib.suppress(ProcessLookupError):
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()


async def _pump(stream: asyncio.StreamReader | None, chunks: list[bytes]) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            return
        chunks.append(chunk)


class AsyncProcessRunner(ProcessRunner):
    """Runs invocations with asyncio subprocesses.

    stdout and stderr are read incrementally into separate buffers, so
    output produced before a kill is kept. The invocation deadline bounds
    the whole call: on expiry the child's process group is killed, the
    pipes are drained and a failed result is returned. Every call is
    traced with a ``process_invocation`` event, including calls cancelled
    by the caller.
    """

    async def run(self, invocation: Invocation) -> InvocationResult:
        started = time.monotonic()
        result = await self._execute(invocation, started)
        return self._finish(invocation, result, started)

    async def _execute(self, invocation: Invocation, started: float) -> InvocationResult:
        if invocation.deadline.expired:
            return InvocationResult(
                outcome=InvocationOutcome.FAILED,
                error="deadline exceeded before the process was started",
            )

        try:
            process = await asyncio.create_subprocess_exec(
                invocation.executable,
                *invocation.args,
                cwd=invocation.working_dir,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            return InvocationResult(outcome=InvocationOutcome.FAILED, error=str(e))

        stdout: list[bytes] = []
        stderr: list[bytes] = []

        try:
            await asyncio.wait_for(
                self._collect(process, stdout, stderr),
                timeout=invocation.deadline.remaining(),
            )
        except asyncio.TimeoutError:
            await self._terminate(process, stdout, stderr)
            return InvocationResult(
                stdout=_decode(stdout),
                stderr=_decode(stderr),
                outcome=InvocationOutcome.FAILED,
                error="deadline exceeded, process killed",
            )
        except asyncio.CancelledError:
            await self._terminate(process, stdout, stderr)
            self._finish(
                invocation,
                InvocationResult(
                    stdout=_decode(stdout),
                    stderr=_decode(stderr),
                    outcome=InvocationOutcome.FAILED,
                    error="cancelled",
                ),
                started,
            )
            raise

        if process.returncode != 0:
            return InvocationResult(
                stdout=_decode(stdout),
                stderr=_decode(stderr),
                outcome=InvocationOutcome.FAILED,
                returncode=process.returncode,
                error=f"exit status {process.returncode}",
            )

        return InvocationResult(
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            outcome=InvocationOutcome.SUCCEEDED,
            returncode=process.returncode,
        )

    @staticmethod
    async def _collect(
        process: asyncio.subprocess.Process,
        stdout: list[bytes],
        stderr: list[bytes],
    ) -> None:
        await asyncio.gather(
            _pump(process.stdout, stdout),
            _pump(process.stderr, stderr),
        )
        await process.wait()

    async def _terminate(
        self,
        process: asyncio.subprocess.Process,
        stdout: list[bytes],
        stderr: list[bytes],
    ) -> None:
        _kill(process)
        try:
            await asyncio.wait_for(
                self._collect(process, stdout, stderr),
                timeout=KILL_DRAIN_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            # Something outside the session still holds the pipes open.
            logger.warning("process_drain_timed_out", pid=process.pid)
            if process.stdout is not None:
                process.stdout.feed_eof()
            if process.stderr is not None:
                process.stderr.feed_eof()
            await process.wait()

    def _finish(
        self, invocation: Invocation, result: InvocationResult, started: float
    ) -> InvocationResult:
        result = result.model_copy(
            update={"duration_seconds": time.monotonic() - started}
        )
        self._trace(invocation, result)
        return result

    @staticmethod
    def _trace(invocation: Invocation, result: InvocationResult) -> None:
        logger.info(
            "process_invocation",
            command=invocation.executable,
            args=list(invocation.args),
            working_dir=str(invocation.working_dir),
            outcome=result.outcome.value,
            returncode=result.returncode,
            error=result.error,
            duration_seconds=round(result.duration_seconds, 3),
            stdout=result.stdout,
            stderr=result.stderr,
        )
