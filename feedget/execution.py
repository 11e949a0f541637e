"""Async process execution with line-streamed output."""

import asyncio
import logging
from typing import AsyncIterator, Sequence

DEFAULT_TIMEOUT = 30
INSTALL_TIMEOUT = 600

_logging = logging.getLogger(__name__)


class AsyncProcess:
    """A child process whose stdout is read line by line as it is produced.

    stderr is drained concurrently so a chatty child never blocks on a full
    pipe; its lines are available from ``stderr_lines`` once stdout ends.

    Usage::

        async with AsyncProcess(["tool", "install", "Foo"]) as proc:
            async for line in proc.stdout_lines():
                ...
            for line in proc.stderr_lines():
                ...
    """

    def __init__(self, args: Sequence[str], timeout: int = DEFAULT_TIMEOUT):
        self.args = list(args)
        self.timeout = timeout
        self.returncode: int | None = None
        self._process: asyncio.subprocess.Process | None = None
        self._stderr: list[str] = []
        self._stderr_task: asyncio.Task | None = None

    async def start(self) -> "AsyncProcess":
        _logging.debug(f"Running command: {' '.join(self.args)}")
        self._process = await asyncio.create_subprocess_exec(
            *self.args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        self._stderr_task = asyncio.create_task(self._drain_stderr())
        return self

    async def _drain_stderr(self) -> None:
        assert self._process is not None and self._process.stderr is not None
        async for raw in self._process.stderr:
            line = raw.decode(errors="replace").rstrip("\r\n")
            if line:
                self._stderr.append(line)

    async def stdout_lines(self) -> AsyncIterator[str]:
        """Yield non-empty stdout lines until the stream closes.

        Raises:
            TimeoutError: If no line arrives within the timeout; the
                process is killed first.
        """
        if self._process is None:
            await self.start()
        assert self._process is not None and self._process.stdout is not None
        stream = self._process.stdout
        while True:
            try:
                raw = await asyncio.wait_for(stream.readline(), timeout=self.timeout)
            except asyncio.TimeoutError:
                await self.kill()
                _logging.error(
                    f"Command timed out after {self.timeout} seconds: {' '.join(self.args)}"
                )
                raise TimeoutError(f"Command timed out after {self.timeout} seconds")
            if not raw:
                break
            line = raw.decode(errors="replace").rstrip("\r\n")
            if line:
                yield line
        await self.wait()

    def stderr_lines(self) -> list[str]:
        return list(self._stderr)

    async def wait(self) -> int:
        assert self._process is not None
        self.returncode = await self._process.wait()
        if self._stderr_task is not None:
            await self._stderr_task
        return self.returncode

    async def kill(self) -> None:
        if self._process is not None and self._process.returncode is None:
            self._process.kill()
            _ = await self._process.wait()
        if self._stderr_task is not None and not self._stderr_task.done():
            self._stderr_task.cancel()

    async def close(self) -> None:
        if self._process is None:
            return
        if self._process.returncode is None:
            await self.kill()
        transport = getattr(self._process, "_transport", None)
        if transport:
            transport.close()

    async def __aenter__(self) -> "AsyncProcess":
        if self._process is None:
            await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["AsyncProcess", "DEFAULT_TIMEOUT", "INSTALL_TIMEOUT"]
