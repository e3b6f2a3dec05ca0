"""Tests for the external process runner."""

import sys
import time

import pytest

from print_dispatch.errors import ProcessExecutionError
from print_dispatch.process import ProcessResult, ProcessRunner


class TestProcessResult:
    def test_error_message_prefers_stderr(self):
        assert ProcessResult(["x"], 1, "out", "err").error_message == "err"
        assert ProcessResult(["x"], 1, "out", "  ").error_message == "out"
        assert ProcessResult(["x"], 3).error_message == "Process exited with code 3"


class TestProcessRunner:
    @pytest.mark.asyncio
    async def test_captures_output_lines(self):
        script = "import sys; print('one'); print('two'); print('oops', file=sys.stderr)"
        result = await ProcessRunner().run([sys.executable, "-c", script])

        assert result.ok
        assert result.stdout == "one\ntwo"
        assert result.stderr == "oops"

    @pytest.mark.asyncio
    async def test_non_zero_exit(self):
        result = await ProcessRunner().run([sys.executable, "-c", "import sys; sys.exit(4)"])
        assert result.returncode == 4
        assert not result.ok

    @pytest.mark.asyncio
    async def test_check_raises(self):
        script = "import sys; print('bad input', file=sys.stderr); sys.exit(2)"
        with pytest.raises(ProcessExecutionError) as exc_info:
            await ProcessRunner().run([sys.executable, "-c", script], check=True)

        assert str(exc_info.value) == "bad input"
        assert exc_info.value.returncode == 2

    @pytest.mark.asyncio
    async def test_missing_executable(self):
        with pytest.raises(ProcessExecutionError, match="Failed to start"):
            await ProcessRunner().run(["definitely-not-a-real-command-xyz"])

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        with pytest.raises(ProcessExecutionError, match="timed out"):
            await ProcessRunner().run([sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.5)

    @pytest.mark.asyncio
    async def test_line_longer_than_stream_limit(self):
        script = "print('x' * 200000); print('tail')"
        result = await ProcessRunner().run([sys.executable, "-c", script])

        assert result.ok
        assert result.stdout == "x" * 200000 + "\ntail"

    @pytest.mark.asyncio
    async def test_output_read_error_kills_process(self):
        class BrokenRunner(ProcessRunner):
            async def _pump(self, stream, sink, label):
                raise ValueError("unreadable output")

        started = time.monotonic()
        with pytest.raises(ProcessExecutionError, match="unreadable output") as exc_info:
            await BrokenRunner().run([sys.executable, "-c", "import time; time.sleep(10)"])

        assert time.monotonic() - started < 5
        assert exc_info.value.returncode is not None
