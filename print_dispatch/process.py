"""
External process execution.

Every strategy that shells out (print helper, office executables, the
automation script host, spooler tools) goes through ProcessRunner so quoting,
stream capture and exit-code handling live in one place.
"""

import asyncio
import locale
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from print_dispatch.errors import ProcessExecutionError

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


@dataclass
class ProcessResult:
    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def error_message(self) -> str:
        """stderr, or stdout when stderr is empty, or the bare exit code."""
        return (
            self.stderr.strip()
            or self.stdout.strip()
            or f"Process exited with code {self.returncode}"
        )


class ProcessRunner:
    """
    Runs commands as argv lists (no shell) and captures output line by line.

    Arguments are passed straight to the OS, so paths with spaces need no
    manual quoting; on Windows the list is joined with the platform's
    standard quoting rules.
    """

    def __init__(self, encoding: Optional[str] = None):
        self.encoding = encoding or locale.getpreferredencoding(False)

    async def run(
        self,
        args: Sequence[str],
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
        check: bool = False
    ) -> ProcessResult:
        """
        Run a command to completion.

        Args:
            args: Executable followed by its arguments
            cwd: Working directory for the child
            timeout: Seconds before the child is killed (None = wait forever)
            check: Raise ProcessExecutionError on a non-zero exit

        Raises:
            ProcessExecutionError: spawn failure, timeout, output read
                failure, or (with check) non-zero exit
        """
        argv = [str(a) for a in args]
        logger.info(f"Executing: {_display(argv)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            logger.error(f"Failed to start {argv[0]}: {e}")
            raise ProcessExecutionError(f"Failed to start {argv[0]}: {e}") from e

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []

        try:
            await asyncio.wait_for(
                asyncio.gather(
                    self._pump(process.stdout, stdout_lines, "stdout"),
                    self._pump(process.stderr, stderr_lines, "stderr"),
                    process.wait()
                ),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            await _kill(process)
            raise ProcessExecutionError(
                f"{argv[0]} timed out after {timeout}s",
                returncode=process.returncode,
                stdout="\n".join(stdout_lines),
                stderr="\n".join(stderr_lines)
            )
        except asyncio.CancelledError:
            await _kill(process)
            raise
        except Exception as e:
            await _kill(process)
            logger.error(f"Error reading output of {argv[0]}: {e}")
            raise ProcessExecutionError(
                f"Error reading output of {argv[0]}: {e}",
                returncode=process.returncode,
                stdout="\n".join(stdout_lines),
                stderr="\n".join(stderr_lines)
            ) from e

        result = ProcessResult(
            args=argv,
            returncode=process.returncode,
            stdout="\n".join(stdout_lines),
            stderr="\n".join(stderr_lines)
        )

        if not result.ok:
            logger.error(f"Execution failed ({result.returncode}): {_display(argv)}")
            if check:
                raise ProcessExecutionError(
                    result.error_message,
                    returncode=result.returncode,
                    stdout=result.stdout,
                    stderr=result.stderr
                )

        return result

    async def _pump(self, stream: asyncio.StreamReader, sink: list[str], label: str) -> None:
        # Lines can exceed the StreamReader limit, so split chunks by hand
        pending = b""
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            pending += chunk
            *lines, pending = pending.split(b"\n")
            for line in lines:
                self._emit(line, sink, label)
        if pending:
            self._emit(pending, sink, label)

    def _emit(self, line: bytes, sink: list[str], label: str) -> None:
        text = line.decode(self.encoding, errors="replace").rstrip("\r")
        sink.append(text)
        logger.info(f"[{label}] {text}")


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


def _display(argv: list[str]) -> str:
    return " ".join(f'"{a}"' if " " in a else a for a in argv)
