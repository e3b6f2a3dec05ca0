"""
Input resolution: turn a print target into a local absolute file path.

Remote targets are streamed into a managed temp directory. Temp files are not
removed after a successful print; the maintenance sweeper ages them out.
"""

import asyncio
import logging
import os
import posixpath
import threading
import time
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import aiofiles
import aiohttp

from print_dispatch.errors import DownloadError, ResolutionError

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


def is_url(value) -> bool:
    """True for strings starting with http:// or https://."""
    if not isinstance(value, str):
        return False
    return value.startswith("http://") or value.startswith("https://")


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


class TempStore:
    """
    Managed temp directory with collision-avoiding names.

    The directory is created on first use. A name handed out by
    create_temp_path stays reserved until release(), so concurrent jobs in
    this process never share a path. Other processes are only kept apart by
    the existence checks.
    """

    def __init__(self, temp_dir: Path):
        self.temp_dir = Path(temp_dir)
        self._reserved: set[Path] = set()
        self._lock = threading.Lock()

    def ensure_dir(self) -> Path:
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        return self.temp_dir

    def _is_free(self, path: Path) -> bool:
        if path in self._reserved:
            return False
        return not path.exists() or path.stat().st_size == 0

    def create_temp_path(self, filename: Optional[str] = None, default_ext: str = ".pdf") -> Path:
        """
        Reserve a path in the temp directory.

        With a filename: the path is used if absent or empty and not reserved;
        otherwise `_1`, `_2`, ... is inserted before the extension until a
        free name is found. Without one: a random `temp_<ms>_<id><ext>` name
        is generated.
        """
        tmp_dir = self.ensure_dir()

        with self._lock:
            if filename:
                candidate = tmp_dir / filename
                if not self._is_free(candidate):
                    stem, ext = os.path.splitext(filename)
                    ext = ext or default_ext
                    counter = 1
                    candidate = tmp_dir / f"{stem}_{counter}{ext}"
                    while candidate in self._reserved or candidate.exists():
                        counter += 1
                        candidate = tmp_dir / f"{stem}_{counter}{ext}"
            else:
                candidate = tmp_dir / f"temp_{_timestamp_ms()}_{uuid.uuid4().hex[:9]}{default_ext}"
                while candidate in self._reserved or candidate.exists():
                    candidate = tmp_dir / f"temp_{_timestamp_ms()}_{uuid.uuid4().hex[:9]}{default_ext}"

            self._reserved.add(candidate)
            return candidate

    def release(self, path: Path) -> None:
        """Give up the reservation on a path once it is written or discarded."""
        with self._lock:
            self._reserved.discard(Path(path))

    async def save_upload(self, data: bytes, filename: Optional[str] = None) -> Path:
        """Persist uploaded bytes and return the temp path."""
        name = os.path.basename(filename) if filename else None
        local_path = self.create_temp_path(name or None)
        try:
            async with aiofiles.open(local_path, "wb") as f:
                await f.write(data)
        finally:
            self.release(local_path)
        logger.info(f"Saved upload ({len(data)} bytes) -> {local_path}")
        return local_path


class PathResolver:
    """
    Resolves local paths and URLs to existing local files.

    Config options:
        download_timeout_sec: Total timeout for a single download (default 60)
    """

    def __init__(self, temp_store: TempStore, download_timeout_sec: float = 60.0):
        self.temp_store = temp_store
        self.download_timeout_sec = download_timeout_sec

    async def resolve(self, target: str, kind: str = "") -> Path:
        """
        Resolve a target to a local absolute path.

        URLs are downloaded to `temp_{kind}_{timestamp}{ext}`. Anything else
        is made absolute against the working directory and normalized.

        Raises:
            DownloadError: URL could not be fetched
            ResolutionError: empty target
        """
        if not target or not isinstance(target, str):
            raise ResolutionError("No file path provided")

        if is_url(target):
            ext = posixpath.splitext(urlparse(target).path)[1] or ".pdf"
            filename = f"temp_{kind}_{_timestamp_ms()}{ext}"
            local_path = await self.download(target, filename)
            logger.info(f"Downloaded remote file: {target} -> {local_path}")
            return local_path

        return Path(os.path.abspath(target))

    async def download(self, url: str, filename: Optional[str] = None) -> Path:
        """Stream a URL into the temp directory, removing partial files on failure."""
        local_path = self.temp_store.create_temp_path(filename)
        timeout = aiohttp.ClientTimeout(total=self.download_timeout_sec)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise DownloadError(url, f"HTTP {response.status}", status=response.status)

                    async with aiofiles.open(local_path, "wb") as f:
                        async for chunk in response.content.iter_chunked(DOWNLOAD_CHUNK_SIZE):
                            await f.write(chunk)

        except DownloadError:
            _discard(local_path)
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            _discard(local_path)
            raise DownloadError(url, str(e) or type(e).__name__) from e
        finally:
            self.temp_store.release(local_path)

        return local_path


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove partial download {path}: {e}")
