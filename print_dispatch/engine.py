"""
Print dispatch engine.

Resolves a request's target (downloading URLs when needed), picks the
strategy registered for its document class and returns the uniform
DispatchResult. Batches run one item at a time.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from print_dispatch.config_store import ConfigStore
from print_dispatch.errors import PrintDispatchError, ResolutionError
from print_dispatch.locator import ExecutableLocator
from print_dispatch.platforms import current_platform
from print_dispatch.printers.directory import PrinterDirectory
from print_dispatch.process import ProcessRunner
from print_dispatch.renderer import HtmlRenderer
from print_dispatch.resolver import PathResolver, TempStore
from print_dispatch.strategies import (
    DispatchResult,
    DocumentClass,
    Fragment,
    PrintOptions,
    PrintRequest,
    StrategyRegistry,
)
from print_dispatch.strategies.html import FragmentStrategy, HtmlStrategy
from print_dispatch.strategies.office import OfficeAppStrategy, ScriptedOfficeStrategy
from print_dispatch.strategies.pdf import PdfStrategy

logger = logging.getLogger(__name__)

# on_progress(completed, total, target, result)
ProgressCallback = Callable[[int, int, str, DispatchResult], None]


class DispatchEngine:
    """Routes print requests to strategies."""

    def __init__(
        self,
        resolver: PathResolver,
        registry: StrategyRegistry,
        directory: PrinterDirectory,
        locator: Optional[ExecutableLocator] = None,
        renderer: Optional[HtmlRenderer] = None
    ):
        self.resolver = resolver
        self.registry = registry
        self.directory = directory
        self.locator = locator
        self.renderer = renderer

    @property
    def temp_store(self) -> TempStore:
        return self.resolver.temp_store

    async def dispatch(self, request: PrintRequest) -> DispatchResult:
        """Resolve the request target if it names a file, then print it."""
        strategy = self.registry.get(request.document_class)
        if not strategy:
            return DispatchResult.failure(
                f"No print strategy for document class: {request.document_class.value}"
            )

        target = request.target
        if request.document_class.references_file:
            if isinstance(target, Fragment):
                return DispatchResult.failure("Expected a file path or URL")
            try:
                target = await self.resolver.resolve(target, kind=request.document_class.value)
            except ResolutionError as e:
                logger.error(f"Could not resolve {request.target}: {e}")
                return DispatchResult.failure(str(e))

        return await strategy.dispatch(target, request.options)

    async def _default_printer_name(self) -> Optional[str]:
        try:
            printer = await self.directory.get_default_printer()
        except PrintDispatchError as e:
            logger.warning(f"Could not determine default printer: {e}")
            return None
        return printer.name if printer else None

    async def print_many(
        self,
        targets: Sequence[str],
        document_class: DocumentClass = DocumentClass.PDF,
        options: Optional[PrintOptions] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> list[DispatchResult]:
        """
        Print several targets in submission order.

        The default printer is looked up once when no printer is given, so
        every item goes to the same queue. A failed item does not stop the
        batch.
        """
        if not targets:
            raise ValueError("No files to print")

        options = options or PrintOptions()
        if not options.printer:
            options = options.with_printer(await self._default_printer_name())

        total = len(targets)
        results: list[DispatchResult] = []
        logger.info(f"Batch print: {total} file(s) -> {options.printer or '(default)'}")

        for index, target in enumerate(targets, start=1):
            result = await self.dispatch(PrintRequest(document_class, target, options))
            results.append(result)

            percent = round(index / total * 100)
            logger.info(f"Progress: {index}/{total} ({percent}%)")
            if on_progress:
                try:
                    on_progress(index, total, target, result)
                except Exception:
                    logger.exception("Batch progress callback failed")

        failed = sum(1 for r in results if not r.success)
        if failed:
            logger.warning(f"Batch print finished with {failed} failure(s)")
        return results


def create_engine(
    config: ConfigStore,
    temp_dir: Path,
    resources_dir: Path,
    platform: Optional[str] = None,
    runner: Optional[ProcessRunner] = None,
    renderer: Optional[HtmlRenderer] = None,
    directory: Optional[PrinterDirectory] = None
) -> DispatchEngine:
    """Wire the resolver, locator, renderer and all strategies."""
    platform = platform or current_platform()
    runner = runner or ProcessRunner()
    temp_store = TempStore(temp_dir)

    locator = ExecutableLocator(config, platform)
    renderer = renderer or HtmlRenderer(temp_store, config, platform)
    directory = directory or PrinterDirectory(runner, platform)

    pdf = PdfStrategy(runner, config, platform, resources_dir)

    registry = StrategyRegistry()
    registry.register(pdf)
    for role in ("word", "excel", "ppt"):
        registry.register(OfficeAppStrategy(role, locator, runner))
    registry.register(ScriptedOfficeStrategy(runner, config, platform, resources_dir))
    registry.register(HtmlStrategy(renderer, pdf))
    registry.register(FragmentStrategy(renderer, pdf))

    return DispatchEngine(
        PathResolver(temp_store),
        registry,
        directory,
        locator=locator,
        renderer=renderer
    )
