"""
Background sweeper for the managed temp directory.

Downloads, uploads and rendered PDFs are left in place after printing so the
spooler can still read them. The sweeper deletes files older than the
retention window.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TempSweeper:
    """
    Background task that removes expired temp files.

    Features:
    - Periodic sweep of the temp directory (top level only)
    - Age measured from last modification time
    - Immediate sweep on start
    """

    def __init__(
        self,
        temp_dir: Path,
        retention_hours: float = 24.0,
        interval_sec: float = 3600.0,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the sweeper.

        Args:
            temp_dir: Managed temp directory
            retention_hours: Files older than this are deleted (default 24h)
            interval_sec: How often to sweep (default 1h)
            clock: Current time in epoch seconds
        """
        self.temp_dir = Path(temp_dir)
        self.retention_hours = retention_hours
        self.interval_sec = interval_sec
        self._clock = clock

        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def start(self) -> None:
        """Start the sweeper background task."""
        if self._running:
            logger.warning("Temp sweeper already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info(
            f"Temp sweeper started (retention: {self.retention_hours}h, "
            f"interval: {self.interval_sec}s)"
        )

    async def stop(self) -> None:
        """Stop the sweeper."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Temp sweeper stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    def sweep_once(self) -> list[Path]:
        """Delete expired files now. Returns the removed paths."""
        if not self.temp_dir.is_dir():
            return []

        cutoff = self._clock() - self.retention_hours * 3600
        removed = []

        for path in self.temp_dir.iterdir():
            try:
                if not path.is_file() or path.stat().st_mtime >= cutoff:
                    continue
                path.unlink()
                removed.append(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                # Still held open by a print job on some platforms
                logger.warning(f"Could not remove temp file {path}: {e}")

        if removed:
            logger.info(f"Removed {len(removed)} expired temp file(s) from {self.temp_dir}")
        return removed

    async def _sweep_loop(self) -> None:
        """Main sweep loop."""
        try:
            self.sweep_once()
        except Exception as e:
            logger.error(f"Initial temp sweep failed: {e}")

        while self._running:
            try:
                await asyncio.sleep(self.interval_sec)
                if self._running:
                    self.sweep_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Temp sweep error: {e}")
