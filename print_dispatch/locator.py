"""
Office executable discovery.

Candidate paths are built in priority order (user configuration, legacy
configuration, platform defaults) by a pure function, then filtered by an
existence check. Resolution degrades to a best-effort default so a missing
install surfaces as a clear "not found" at print time rather than here.
"""

import logging
import ntpath
import os
import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from print_dispatch.config_store import ConfigStore

logger = logging.getLogger(__name__)

ROLES = ("word", "excel", "ppt")

OFFICE_EXECUTABLE_NAMES = {
    "word": {
        "win32": "WINWORD.EXE",
        "darwin": "Microsoft Word",
        "linux": "soffice",
    },
    "excel": {
        "win32": "EXCEL.EXE",
        "darwin": "Microsoft Excel",
        "linux": "soffice",
    },
    "ppt": {
        "win32": "POWERPNT.EXE",
        "darwin": "Microsoft PowerPoint",
        "linux": "soffice",
    },
}

WINDOWS_OFFICE_ROOTS = (
    "C:/Program Files/Microsoft Office/root/Office16",
    "C:/Program Files (x86)/Microsoft Office/root/Office16",
)

MAC_BUNDLES = {
    "word": "/Applications/Microsoft Word.app",
    "excel": "/Applications/Microsoft Excel.app",
    "ppt": "/Applications/Microsoft PowerPoint.app",
}

LINUX_ROOTS = (
    "/usr/bin",
    "/usr/local/bin",
    "/snap/bin",
    "/usr/lib/libreoffice/program",
    "/usr/local/libreoffice/program",
    "/usr/local/Microsoft Office",
)


class CandidateSource(Enum):
    CONFIG = "config"
    LEGACY_CONFIG = "legacy-config"
    DEFAULT = "default"


@dataclass(frozen=True)
class ExecutableCandidate:
    path: str
    source: CandidateSource
    origin: str

    @property
    def from_user_config(self) -> bool:
        return self.source != CandidateSource.DEFAULT


def executable_name(role: str, platform: str) -> Optional[str]:
    return OFFICE_EXECUTABLE_NAMES.get(role, {}).get(platform)


def _join(platform: str, *parts: str) -> str:
    if platform == "win32":
        return ntpath.join(*parts)
    return posixpath.join(*parts)


def default_candidates(role: str, platform: str) -> list[str]:
    """Hard-coded install locations for a role on a platform."""
    exe_name = executable_name(role, platform)

    if platform == "win32" and exe_name:
        return [_join(platform, root, exe_name) for root in WINDOWS_OFFICE_ROOTS]

    if platform == "darwin":
        bundle = MAC_BUNDLES.get(role)
        if not bundle:
            return []
        if not exe_name:
            return [bundle]
        return [bundle, posixpath.join(bundle, "Contents", "MacOS", exe_name)]

    if platform == "linux":
        if not exe_name:
            return list(LINUX_ROOTS)
        return [posixpath.join(root, exe_name) for root in LINUX_ROOTS]

    return []


def derive_executable_paths(base_path: str, role: str, platform: str) -> list[str]:
    """
    Expand one configured value into concrete paths.

    The value itself comes first. A macOS `.app` bundle adds its embedded
    binary; any other value not already ending with the executable name is
    treated as a directory and gets the executable name appended.
    """
    if not isinstance(base_path, str):
        return []
    trimmed = base_path.strip()
    if not trimmed:
        return []

    results = [trimmed]
    exe_name = executable_name(role, platform)
    if exe_name:
        if platform == "darwin" and trimmed.endswith(".app"):
            results.append(posixpath.join(trimmed, "Contents", "MacOS", exe_name))
        elif not trimmed.lower().endswith(exe_name.lower()):
            results.append(_join(platform, trimmed, exe_name))
    return results


def build_candidates(
    role: str,
    platform: str,
    config_get: Callable[[str], Any]
) -> list[ExecutableCandidate]:
    """
    Build the ranked, de-duplicated candidate list for a role.

    Order: `office.<role>`, `office.<role>.<platform>`,
    `officePaths.<platform>`, then platform defaults. Duplicates are dropped
    case-insensitively, keeping the first occurrence.
    """
    candidates: list[ExecutableCandidate] = []
    seen: set[str] = set()

    def push(path: str, source: CandidateSource, origin: str) -> None:
        normalized = path.strip()
        if not normalized:
            return
        key = normalized.lower()
        if key in seen:
            return
        seen.add(key)
        candidates.append(ExecutableCandidate(normalized, source, origin))

    def expand(value: Any, source: CandidateSource, origin: str) -> None:
        if not value:
            return
        if isinstance(value, (list, tuple)):
            for item in value:
                expand(item, source, origin)
            return
        if isinstance(value, dict):
            if value.get(platform):
                expand(value[platform], source, f"{origin}.{platform}")
            if value.get("default"):
                expand(value["default"], source, f"{origin}.default")
            return
        for path in derive_executable_paths(value, role, platform):
            push(path, source, origin)

    role_key = f"office.{role}"
    expand(config_get(role_key), CandidateSource.CONFIG, role_key)

    platform_key = f"office.{role}.{platform}"
    expand(config_get(platform_key), CandidateSource.CONFIG, platform_key)

    legacy_key = f"officePaths.{platform}"
    expand(config_get(legacy_key), CandidateSource.LEGACY_CONFIG, legacy_key)

    for path in default_candidates(role, platform):
        expand(path, CandidateSource.DEFAULT, "default")

    return candidates


class ExecutableLocator:
    """
    Finds office executables using the configuration store.

    Candidate lists are rebuilt on every call so configuration edits apply
    immediately.
    """

    def __init__(
        self,
        config: ConfigStore,
        platform: str,
        exists: Callable[[str], bool] = os.path.exists
    ):
        self.config = config
        self.platform = platform
        self._exists = exists

    def candidates(self, role: str) -> list[ExecutableCandidate]:
        return build_candidates(role, self.platform, self.config.get)

    def _first_existing(self, role: str, candidates: list[ExecutableCandidate]) -> Optional[str]:
        warned: set[str] = set()
        for candidate in candidates:
            try:
                if self._exists(candidate.path):
                    return candidate.path
            except OSError as e:
                logger.warning(f"Error checking Office path {candidate.path}: {e}")

            if candidate.from_user_config and candidate.path not in warned:
                warned.add(candidate.path)
                logger.warning(
                    f"Configured {role} path not accessible: {candidate.path} ({candidate.origin})"
                )
        return None

    def locate(self, role: str) -> Optional[str]:
        """
        Return the first existing candidate for a role.

        Falls back to the first default candidate (which may not exist), or
        None when the platform has no defaults. Never raises.
        """
        candidates = self.candidates(role)
        found = self._first_existing(role, candidates)
        if found:
            return found

        for candidate in candidates:
            if candidate.source == CandidateSource.DEFAULT:
                return candidate.path
        return None

    def preferred(self, role: str) -> Optional[str]:
        """
        Path to report to users: an existing candidate, else the first
        configured candidate (configured but not accessible), else the
        best-effort default.
        """
        candidates = self.candidates(role)
        found = self._first_existing(role, candidates)
        if found:
            return found

        configured = [c for c in candidates if c.from_user_config]
        if configured:
            return configured[0].path

        return candidates[0].path if candidates else None
