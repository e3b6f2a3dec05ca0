"""
Error taxonomy for the print dispatch engine.

Internal helpers (resolver, locator, renderer, process runner) raise these.
Strategies and the engine catch them and convert to a DispatchResult.
"""

from typing import Optional


class PrintDispatchError(Exception):
    """Base class for all dispatch errors."""
    pass


class ResolutionError(PrintDispatchError):
    """Target could not be turned into a local file."""
    pass


class DownloadError(ResolutionError):
    """Remote target could not be downloaded."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        self.url = url
        self.status = status
        super().__init__(f"Failed to download file: {reason}")


class ExecutableNotFoundError(PrintDispatchError):
    """No discoverable application for a role."""
    pass


class ProcessExecutionError(PrintDispatchError):
    """External process failed to spawn or exited non-zero."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = ""
    ):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class RenderTimeoutError(PrintDispatchError, TimeoutError):
    """Page load exceeded the render wait."""
    pass


class UnsupportedPlatformError(PrintDispatchError):
    """Operation is not available on the host platform."""

    def __init__(self, platform: str, detail: str = "Unsupported OS"):
        self.platform = platform
        super().__init__(f"{detail} ({platform})")


class ConfigError(PrintDispatchError):
    """Configuration file could not be read or written."""
    pass


class InvalidKeyPathError(ConfigError, ValueError):
    """Dotted key path is empty or has an empty segment."""
    pass


class OptionsError(PrintDispatchError, ValueError):
    """Invalid print options."""
    pass


class PrinterDirectoryError(PrintDispatchError):
    """Printer enumeration backend unavailable or failing."""
    pass


class UnsupportedDocumentError(PrintDispatchError):
    """File type not handled by the selected strategy."""
    pass
