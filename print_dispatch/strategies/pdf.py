"""
PDF printing through the platform print subsystem.

Windows: bundled SumatraPDF in silent print mode.
POSIX: CUPS `lp`.

This is the only strategy that retries on its own.
"""

import asyncio
import logging
import re
import time
from pathlib import Path
from typing import Awaitable, Callable, Optional

from print_dispatch.config_store import ConfigStore
from print_dispatch.errors import ProcessExecutionError, UnsupportedPlatformError
from print_dispatch.platforms import is_posix, is_windows
from print_dispatch.process import ProcessRunner
from print_dispatch.strategies.base import (
    DispatchResult,
    DispatchStrategy,
    DocumentClass,
    PrintOptions,
    Target,
    require_file,
)

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = 1
DEFAULT_RETRY_DELAY_MS = 3000
DEFAULT_COMPLETION_TIMEOUT_SEC = 300.0
COMPLETION_POLL_SEC = 1.0

SUMATRA_RELATIVE_PATH = Path("lib") / "SumatraPDF.exe"

# `lp` prints "request id is <queue>-<id> (1 file(s))"
_REQUEST_ID_RE = re.compile(r"request id is (\S+)-(\d+)")

_SUMATRA_DUPLEX = {
    "simplex": "simplex",
    "long-edge": "duplexlong",
    "short-edge": "duplexshort",
}

_CUPS_SIDES = {
    "simplex": "one-sided",
    "long-edge": "two-sided-long-edge",
    "short-edge": "two-sided-short-edge",
}


def sumatra_print_settings(options: PrintOptions) -> Optional[str]:
    """Build SumatraPDF's comma-separated `-print-settings` value."""
    settings = []
    if options.pages:
        settings.append(options.pages)
    if options.copies > 1:
        settings.append(f"{options.copies}x")
    if options.orientation:
        settings.append(options.orientation)
    if options.scale:
        settings.append(options.scale)
    if options.color:
        settings.append(options.color)
    if options.duplex:
        settings.append(_SUMATRA_DUPLEX[options.duplex])
    if options.bin:
        settings.append(f"bin={options.bin}")
    if options.paper_size:
        settings.append(f"paper={options.paper_size}")
    return ",".join(settings) or None


def cups_options(options: PrintOptions) -> list[str]:
    """Map print options to `lp` arguments."""
    args: list[str] = []
    if options.printer:
        args += ["-d", options.printer]
    if options.copies > 1:
        args += ["-n", str(options.copies)]
    if options.pages:
        args += ["-P", options.pages]
    if options.duplex:
        args += ["-o", f"sides={_CUPS_SIDES[options.duplex]}"]
    media = options.media or options.paper_size
    if media:
        args += ["-o", f"media={media}"]
    if options.fit_to_page or options.scale == "fit":
        args += ["-o", "fit-to-page"]
    if options.orientation == "landscape":
        args += ["-o", "landscape"]
    if options.color == "monochrome":
        args += ["-o", "print-color-mode=monochrome"]
    for key, value in options.extra.items():
        args += ["-o", f"{key}={value}"]
    return args


def parse_request_id(output: str) -> Optional[tuple[str, str]]:
    """Return (queue, job id) from `lp` output, if present."""
    match = _REQUEST_ID_RE.search(output)
    if not match:
        return None
    return match.group(1), match.group(2)


class PdfStrategy(DispatchStrategy):
    """
    Prints PDF files.

    Config options (print configuration store):
        print.retries: extra attempts after a failure (default 1)
        print.retryDelayMs: wait between attempts (default 3000)
        print.completionTimeoutSec: limit for wait_for_completion (default 300)
        pdf.sumatraPath: override for the bundled SumatraPDF.exe
    """

    document_class = DocumentClass.PDF
    label = "PDF"

    def __init__(
        self,
        runner: ProcessRunner,
        config: ConfigStore,
        platform: str,
        resources_dir: Path,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.runner = runner
        self.config = config
        self.platform = platform
        self.resources_dir = Path(resources_dir)
        self._sleep = sleep

    @property
    def sumatra_path(self) -> Path:
        configured = self.config.get("pdf.sumatraPath")
        if isinstance(configured, str) and configured.strip():
            return Path(configured.strip())
        return self.resources_dir / SUMATRA_RELATIVE_PATH

    def retry_policy(self) -> tuple[int, float]:
        """(retries, delay in seconds) from configuration."""
        retries = self.config.get("print.retries", DEFAULT_RETRIES)
        delay_ms = self.config.get("print.retryDelayMs", DEFAULT_RETRY_DELAY_MS)
        try:
            retries = max(0, int(retries))
        except (TypeError, ValueError):
            retries = DEFAULT_RETRIES
        try:
            delay = max(0.0, float(delay_ms) / 1000.0)
        except (TypeError, ValueError):
            delay = DEFAULT_RETRY_DELAY_MS / 1000.0
        return retries, delay

    async def _dispatch(self, target: Target, options: PrintOptions) -> DispatchResult:
        path = require_file(target).resolve()

        if not (is_windows(self.platform) or is_posix(self.platform)):
            raise UnsupportedPlatformError(self.platform)

        retries, delay = self.retry_policy()
        printer_label = options.printer or "(default)"
        attempts = retries + 1
        last_error: Optional[ProcessExecutionError] = None

        for attempt in range(1, attempts + 1):
            try:
                if is_windows(self.platform):
                    result = await self._print_windows(path, options)
                else:
                    result = await self._print_posix(path, options)
                logger.info(
                    f"SUCCESS: {path} -> {printer_label} [{self.platform}]"
                    + (f" jobId={result.job_id}" if result.job_id else "")
                )
                return result
            except ProcessExecutionError as e:
                last_error = e
                logger.info(f"FAIL [{attempt}/{attempts}]: {path} -> {printer_label} | {e}")
                if attempt < attempts:
                    await self._sleep(delay)

        return DispatchResult.failure(
            str(last_error),
            stdout=last_error.stdout,
            stderr=last_error.stderr
        )

    async def _print_windows(self, path: Path, options: PrintOptions) -> DispatchResult:
        sumatra = self.sumatra_path
        if not sumatra.exists():
            raise ProcessExecutionError(f"PDF print helper not found: {sumatra}")

        args = [str(sumatra)]
        if options.printer:
            args += ["-print-to", options.printer]
        else:
            args.append("-print-to-default")
        args.append("-silent")
        settings = sumatra_print_settings(options)
        if settings:
            args += ["-print-settings", settings]
        args.append(str(path))

        result = await self.runner.run(args, check=True)
        return DispatchResult.from_process(result)

    async def _print_posix(self, path: Path, options: PrintOptions) -> DispatchResult:
        args = ["lp", *cups_options(options), str(path)]
        result = await self.runner.run(args, check=True)

        request = parse_request_id(result.stdout)
        job_id = request[1] if request else None

        if options.wait_for_completion and request:
            await self._wait_for_completion(f"{request[0]}-{request[1]}")

        return DispatchResult.from_process(result, job_id=job_id)

    async def _wait_for_completion(self, request_id: str) -> None:
        timeout = self.config.get("print.completionTimeoutSec", DEFAULT_COMPLETION_TIMEOUT_SEC)
        deadline = time.monotonic() + float(timeout)

        while time.monotonic() < deadline:
            pending = await self.runner.run(["lpstat", "-W", "not-completed", "-o"])
            active = {line.split()[0] for line in pending.stdout.splitlines() if line.strip()}
            if request_id not in active:
                logger.info(f"Print job {request_id} completed")
                return
            await self._sleep(COMPLETION_POLL_SEC)

        logger.warning(f"Stopped waiting for print job {request_id} after {timeout}s")
