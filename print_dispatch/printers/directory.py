"""
Printer directory: available printers, default printer and status.

Requires: pycups on POSIX, pywin32 on Windows.
Every call queries the OS; nothing is cached.
"""

import asyncio
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from print_dispatch.errors import PrinterDirectoryError, UnsupportedPlatformError
from print_dispatch.platforms import is_posix, is_windows
from print_dispatch.process import ProcessRunner

logger = logging.getLogger(__name__)

try:
    import cups
except ImportError:
    cups = None
    if sys.platform != "win32":
        logger.warning("pycups package not available - printer listing will not function")

try:
    import win32print
except ImportError:
    win32print = None

# CUPS printer-state values
CUPS_STATES = {
    3: "idle",
    4: "printing",
    5: "stopped",
}


@dataclass
class PrinterInfo:
    name: str
    is_default: bool = False
    status: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Return printer info as dict for API responses."""
        return {
            "name": self.name,
            "isDefault": self.is_default,
            **self.status,
        }


class PrinterDirectory:
    """
    Queries the host printing subsystem.

    Windows printers come from win32print; POSIX printers from the local
    CUPS scheduler. Status, driver options and job control shell out to
    `wmic` / `lpstat` / `lpoptions` / `cancel`.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        platform: str,
        cups_server: Optional[str] = None,
        connection_factory: Optional[Callable[[], Any]] = None
    ):
        self.runner = runner
        self.platform = platform
        self.cups_server = cups_server
        self._connection_factory = connection_factory

    def _check_supported(self) -> None:
        if not (is_windows(self.platform) or is_posix(self.platform)):
            raise UnsupportedPlatformError(self.platform)

    def _require_posix(self) -> None:
        if not is_posix(self.platform):
            raise UnsupportedPlatformError(self.platform, "POSIX only")

    def _cups_connection(self):
        if self._connection_factory is not None:
            return self._connection_factory()
        if cups is None:
            raise PrinterDirectoryError("pycups package not installed")
        if self.cups_server:
            cups.setServer(self.cups_server)
        return cups.Connection()

    async def _run_blocking(self, func: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func)
        except PrinterDirectoryError:
            raise
        except Exception as e:
            raise PrinterDirectoryError(f"Printer query failed: {e}") from e

    # -------------------------------------------------------------------------
    # Enumeration
    # -------------------------------------------------------------------------

    def _list_cups(self) -> list[PrinterInfo]:
        conn = self._cups_connection()
        default_name = conn.getDefault()
        printers = []
        for name, attrs in conn.getPrinters().items():
            state = attrs.get("printer-state")
            printers.append(PrinterInfo(
                name=name,
                is_default=(name == default_name),
                status={
                    "state": CUPS_STATES.get(state, "unknown"),
                    "stateMessage": attrs.get("printer-state-message", ""),
                    "info": attrs.get("printer-info", ""),
                    "location": attrs.get("printer-location", ""),
                    "makeAndModel": attrs.get("printer-make-and-model", ""),
                    "uri": attrs.get("device-uri", ""),
                }
            ))
        return printers

    def _list_windows(self) -> list[PrinterInfo]:
        if win32print is None:
            raise PrinterDirectoryError("pywin32 package not installed")

        try:
            default_name = win32print.GetDefaultPrinter()
        except Exception:
            default_name = None

        flags = win32print.PRINTER_ENUM_LOCAL | win32print.PRINTER_ENUM_CONNECTIONS
        printers = []
        for item in win32print.EnumPrinters(flags, None, 2):
            name = item["pPrinterName"]
            printers.append(PrinterInfo(
                name=name,
                is_default=(name == default_name),
                status={
                    "status": item.get("Status", 0),
                    "attributes": item.get("Attributes", 0),
                    "jobs": item.get("cJobs", 0),
                    "portName": item.get("pPortName", ""),
                    "driverName": item.get("pDriverName", ""),
                }
            ))
        return printers

    async def list_printers(self) -> list[PrinterInfo]:
        """List all printers known to the OS."""
        self._check_supported()
        if is_windows(self.platform):
            return await self._run_blocking(self._list_windows)
        return await self._run_blocking(self._list_cups)

    async def get_default_printer(self) -> Optional[PrinterInfo]:
        """
        Return the default printer.

        On Windows the first printer stands in when none is marked default.
        """
        printers = await self.list_printers()
        for printer in printers:
            if printer.is_default:
                return printer
        if is_windows(self.platform) and printers:
            return printers[0]
        return None

    # -------------------------------------------------------------------------
    # Status and job control
    # -------------------------------------------------------------------------

    async def check_status(self, printer_name: str) -> str:
        """Raw, trimmed output of the platform status command."""
        self._check_supported()
        if is_windows(self.platform):
            # WQL string literal: backslashes first, then quotes
            escaped = printer_name.replace("\\", "\\\\").replace("'", "\\'")
            args = ["wmic", "printer", "where", f"Name='{escaped}'", "get", "PrinterStatus,WorkOffline"]
        else:
            args = ["lpstat", "-p", printer_name]

        result = await self.runner.run(args, check=True)
        return result.stdout.strip()

    async def get_driver_options(self, printer_name: str) -> str:
        """Driver options as listed by `lpoptions -l`."""
        self._require_posix()
        result = await self.runner.run(["lpoptions", "-p", printer_name, "-l"], check=True)
        return result.stdout.strip()

    async def get_job_status(self, printer_name: str, job_id: str) -> Optional[str]:
        """The `lpstat -o` line for `<printer>-<job_id>`, or None when gone."""
        self._require_posix()
        result = await self.runner.run(["lpstat", "-o", printer_name], check=True)
        request_id = f"{printer_name}-{job_id}"
        for line in result.stdout.splitlines():
            if line.split() and line.split()[0] == request_id:
                return line.strip()
        return None

    async def cancel_job(self, printer_name: str, job_id: str) -> bool:
        """Cancel `<printer>-<job_id>`."""
        self._require_posix()
        await self.runner.run(["cancel", f"{printer_name}-{job_id}"], check=True)
        logger.info(f"Cancelled print job {printer_name}-{job_id}")
        return True
