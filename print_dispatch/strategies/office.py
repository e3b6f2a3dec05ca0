"""
Office document printing.

OfficeAppStrategy drives Word, Excel or PowerPoint (or LibreOffice) directly
with silent-print command-line switches. ScriptedOfficeStrategy runs the
bundled PowerShell automation script, which also supports printer
selection, page ranges and PDF export.
"""

import logging
import ntpath
import posixpath
from pathlib import Path

from print_dispatch.config_store import ConfigStore
from print_dispatch.errors import (
    ExecutableNotFoundError,
    UnsupportedDocumentError,
    UnsupportedPlatformError,
)
from print_dispatch.locator import ExecutableLocator, executable_name
from print_dispatch.platforms import is_windows
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

APP_LABELS = {
    "word": "Word",
    "excel": "Excel",
    "ppt": "PowerPoint",
}

ROLE_DOCUMENT_CLASSES = {
    "word": DocumentClass.WORD,
    "excel": DocumentClass.EXCEL,
    "ppt": DocumentClass.PPT,
}

# Print to the default printer, then quit the application
OFFICE_PRINT_SWITCHES = {
    "word": ["/q", "/n", "/w", "/mFilePrintDefault", "/mFileCloseOrExit"],
    "excel": ["/q", "/e", "/mFilePrintDefault", "/mFileCloseOrExit"],
    "ppt": ["/P"],
}

OFFICE_EXTENSIONS = {
    ".doc", ".docx", ".docm", ".dot", ".dotx", ".rtf", ".odt",
    ".xls", ".xlsx", ".xlsm", ".xlsb", ".csv", ".ods",
    ".ppt", ".pptx", ".pptm", ".pps", ".ppsx", ".odp",
}

SCRIPT_RELATIVE_PATH = Path("scripts") / "print-office.ps1"
DEFAULT_SCRIPT_HOST = "powershell.exe"


def is_libreoffice(executable: str) -> bool:
    name = ntpath.basename(executable).lower()
    return name.startswith("soffice")


class OfficeAppStrategy(DispatchStrategy):
    """Prints through the office application located for one role."""

    def __init__(
        self,
        role: str,
        locator: ExecutableLocator,
        runner: ProcessRunner
    ):
        if role not in APP_LABELS:
            raise ValueError(f"Unknown office role: {role}")
        self.role = role
        self.locator = locator
        self.runner = runner
        self.document_class = ROLE_DOCUMENT_CLASSES[role]
        self.label = APP_LABELS[role]

    @property
    def platform(self) -> str:
        return self.locator.platform

    def _executable(self) -> str:
        exe_path = self.locator.locate(self.role)
        if not exe_path:
            raise ExecutableNotFoundError(
                f"{self.label} executable not found. "
                f"Configure office.{self.role} in config.json"
            )

        if self.platform == "darwin" and exe_path.endswith(".app"):
            exe_name = executable_name(self.role, self.platform)
            exe_path = posixpath.join(exe_path, "Contents", "MacOS", exe_name)

        isabs = ntpath.isabs if is_windows(self.platform) else posixpath.isabs
        if not isabs(exe_path):
            exe_path = str(Path.cwd() / exe_path)
        return exe_path

    def build_command(self, executable: str, path: Path, options: PrintOptions) -> list[str]:
        if is_libreoffice(executable):
            args = [executable, "--headless", "--invisible", "--norestore"]
            if options.printer:
                args += ["--pt", options.printer]
            else:
                args.append("-p")
            return [*args, str(path)]

        if options.printer:
            logger.warning(
                f"{self.label} prints to the default printer when invoked directly; "
                f"ignoring printer '{options.printer}'"
            )
        return [executable, *OFFICE_PRINT_SWITCHES[self.role], str(path)]

    async def _dispatch(self, target: Target, options: PrintOptions) -> DispatchResult:
        path = require_file(target).resolve()
        executable = self._executable()
        result = await self.runner.run(self.build_command(executable, path, options))
        return DispatchResult.from_process(result)


class ScriptedOfficeStrategy(DispatchStrategy):
    """
    Prints any office document through the PowerShell automation script.

    Windows only. Config options (print configuration store):
        office.printScript: override for the bundled print-office.ps1
        office.scriptHost: script host executable (default powershell.exe)
    """

    document_class = DocumentClass.OFFICE
    label = "Office document"

    def __init__(
        self,
        runner: ProcessRunner,
        config: ConfigStore,
        platform: str,
        resources_dir: Path
    ):
        self.runner = runner
        self.config = config
        self.platform = platform
        self.resources_dir = Path(resources_dir)

    @property
    def script_path(self) -> Path:
        configured = self.config.get("office.printScript")
        if isinstance(configured, str) and configured.strip():
            return Path(configured.strip())
        return self.resources_dir / SCRIPT_RELATIVE_PATH

    @property
    def script_host(self) -> str:
        configured = self.config.get("office.scriptHost")
        if isinstance(configured, str) and configured.strip():
            return configured.strip()
        return DEFAULT_SCRIPT_HOST

    def build_command(self, path: Path, options: PrintOptions) -> list[str]:
        args = [
            self.script_host,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy", "Bypass",
            "-File", str(self.script_path),
            "-FilePath", str(path),
        ]
        if options.printer:
            args += ["-PrinterName", options.printer]
        args += ["-Copies", str(options.copies)]
        if options.pages:
            args += ["-PageRange", options.pages]
        if options.output_folder:
            args += ["-OutputFolder", options.output_folder]
        if options.convert_to_pdf:
            args.append("-ConvertToPdf")
        return args

    async def _dispatch(self, target: Target, options: PrintOptions) -> DispatchResult:
        if not is_windows(self.platform):
            raise UnsupportedPlatformError(self.platform, "Scripted office printing requires Windows")

        path = require_file(target).resolve()
        if path.suffix.lower() not in OFFICE_EXTENSIONS:
            raise UnsupportedDocumentError(f"Unsupported office document type: {path.suffix or path.name}")

        result = await self.runner.run(self.build_command(path, options))
        return DispatchResult.from_process(result)
