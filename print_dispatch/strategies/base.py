import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from print_dispatch.errors import OptionsError, PrintDispatchError, ResolutionError
from print_dispatch.process import ProcessResult

logger = logging.getLogger(__name__)


class DocumentClass(Enum):
    PDF = "pdf"
    WORD = "word"
    EXCEL = "excel"
    PPT = "ppt"
    OFFICE = "office"
    HTML = "html"
    FRAGMENT = "fragment"

    @property
    def references_file(self) -> bool:
        """True when the target is a path or URL rather than inline content."""
        return self not in (DocumentClass.HTML, DocumentClass.FRAGMENT)


ORIENTATIONS = ("portrait", "landscape")
DUPLEX_MODES = ("simplex", "long-edge", "short-edge")
SCALE_MODES = ("noscale", "shrink", "fit")
COLOR_MODES = ("color", "monochrome")

# Request keys accepted in camelCase, mapped to field names
_OPTION_ALIASES = {
    "pageRange": "pages",
    "paperSize": "paper_size",
    "fitToPage": "fit_to_page",
    "outputFolder": "output_folder",
    "convertToPdf": "convert_to_pdf",
    "waitForCompletion": "wait_for_completion",
}


@dataclass(frozen=True)
class PrintOptions:
    """
    Per-job print options.

    Fields not used by a strategy are ignored by it. `extra` entries are
    passed to CUPS as `-o key=value` driver options.

    Defaults:
        printer: None (system default printer)
        copies: 1
        everything else: unset
    """

    printer: Optional[str] = None
    copies: int = 1
    pages: Optional[str] = None
    orientation: Optional[str] = None
    duplex: Optional[str] = None
    scale: Optional[str] = None
    paper_size: Optional[str] = None
    bin: Optional[str] = None
    color: Optional[str] = None
    media: Optional[str] = None
    fit_to_page: bool = False
    output_folder: Optional[str] = None
    convert_to_pdf: bool = False
    wait_for_completion: bool = False
    extra: dict = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.copies, int) or isinstance(self.copies, bool) or self.copies < 1:
            raise OptionsError(f"copies must be a positive integer, got {self.copies!r}")
        if self.orientation is not None and self.orientation not in ORIENTATIONS:
            raise OptionsError(f"orientation must be one of {ORIENTATIONS}, got {self.orientation!r}")
        if self.duplex is not None and self.duplex not in DUPLEX_MODES:
            raise OptionsError(f"duplex must be one of {DUPLEX_MODES}, got {self.duplex!r}")
        if self.scale is not None and self.scale not in SCALE_MODES:
            raise OptionsError(f"scale must be one of {SCALE_MODES}, got {self.scale!r}")
        if self.color is not None and self.color not in COLOR_MODES:
            raise OptionsError(f"color must be one of {COLOR_MODES}, got {self.color!r}")

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PrintOptions":
        """
        Build options from a request body.

        Accepts snake_case or camelCase keys; `landscape: true` is shorthand
        for landscape orientation. Unknown keys with scalar values become
        driver options in `extra`.
        """
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise OptionsError("options must be an object")

        names = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        extra: dict[str, str] = {}

        for key, value in data.items():
            name = _OPTION_ALIASES.get(key, key)
            if name == "landscape":
                if value:
                    values["orientation"] = "landscape"
            elif name == "extra":
                if not isinstance(value, dict):
                    raise OptionsError("extra must be an object")
                extra.update({str(k): str(v) for k, v in value.items()})
            elif name in names:
                if value is not None:
                    values[name] = value
            elif isinstance(value, (str, int, float, bool)):
                extra[key] = str(value).lower() if isinstance(value, bool) else str(value)

        if "copies" in values:
            try:
                values["copies"] = int(values["copies"])
            except (TypeError, ValueError):
                raise OptionsError(f"copies must be a positive integer, got {values['copies']!r}")
        for text_field in ("printer", "pages", "paper_size", "bin", "media", "output_folder"):
            if text_field in values:
                values[text_field] = str(values[text_field])
        for flag in ("fit_to_page", "convert_to_pdf", "wait_for_completion"):
            if flag in values:
                values[flag] = bool(values[flag])

        return cls(extra=extra, **values)

    def with_printer(self, printer: Optional[str]) -> "PrintOptions":
        if not printer or self.printer:
            return self
        return replace(self, printer=printer)


@dataclass(frozen=True)
class Fragment:
    """UI markup plus the initial data bound into its component state."""

    markup: str
    data: Any = None


@dataclass(frozen=True)
class PrintRequest:
    document_class: DocumentClass
    target: Union[str, Fragment]
    options: PrintOptions = field(default_factory=PrintOptions)


@dataclass
class DispatchResult:
    success: bool
    error: Optional[str] = None
    job_id: Optional[str] = None
    stdout: Optional[str] = None
    stderr: Optional[str] = None

    @classmethod
    def failure(cls, error: str, stdout: Optional[str] = None, stderr: Optional[str] = None) -> "DispatchResult":
        return cls(success=False, error=error, stdout=stdout or None, stderr=stderr or None)

    @classmethod
    def from_process(cls, result: ProcessResult, job_id: Optional[str] = None) -> "DispatchResult":
        if result.ok:
            return cls(
                success=True,
                job_id=job_id,
                stdout=result.stdout or None,
                stderr=result.stderr or None
            )
        return cls.failure(result.error_message, stdout=result.stdout, stderr=result.stderr)

    def to_dict(self) -> dict:
        """JSON shape returned by the job API."""
        data: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        if self.job_id is not None:
            data["jobId"] = self.job_id
        if self.stdout:
            data["stdout"] = self.stdout
        if self.stderr:
            data["stderr"] = self.stderr
        return data


Target = Union[Path, str, Fragment]


class DispatchStrategy(ABC):
    """
    Turns a resolved input into an external print invocation.

    `dispatch` never raises: every failure becomes an unsuccessful
    DispatchResult with a readable error.
    """

    document_class: DocumentClass
    label: str = "Document"

    async def dispatch(self, target: Target, options: Optional[PrintOptions] = None) -> DispatchResult:
        options = options or PrintOptions()
        try:
            result = await self._dispatch(target, options)
        except PrintDispatchError as e:
            logger.error(f"{self.label} print error: {e}")
            return DispatchResult.failure(str(e))
        except Exception as e:
            logger.exception(f"Unexpected {self.label} print error")
            return DispatchResult.failure(str(e) or type(e).__name__)

        if result.success:
            logger.info(f"{self.label} print job completed")
        else:
            logger.error(f"{self.label} print failed: {result.error}")
        return result

    @abstractmethod
    async def _dispatch(self, target: Target, options: PrintOptions) -> DispatchResult:
        """Run the print. May raise; `dispatch` converts errors."""
        pass


def require_file(target: Target) -> Path:
    """Ensure a file-based strategy received an existing local file."""
    if isinstance(target, Fragment):
        raise OptionsError("Expected a file path, got a UI fragment")
    path = Path(target)
    if not path.is_file():
        raise ResolutionError(f"File not found: {path}")
    return path
