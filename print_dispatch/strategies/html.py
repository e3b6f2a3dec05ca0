"""
HTML and UI-fragment printing: render to PDF, then hand off to PdfStrategy.
"""

import logging
from typing import Any

from jinja2 import Environment, PackageLoader

from print_dispatch.errors import OptionsError
from print_dispatch.renderer import HtmlRenderer
from print_dispatch.strategies.base import (
    DispatchResult,
    DispatchStrategy,
    DocumentClass,
    Fragment,
    PrintOptions,
    Target,
)
from print_dispatch.strategies.pdf import PdfStrategy

logger = logging.getLogger(__name__)

_templates = Environment(
    loader=PackageLoader("print_dispatch", "templates"),
    autoescape=False,
    keep_trailing_newline=True,
)


def build_fragment_page(markup: str, initial_data: Any = None, title: str = "Print") -> str:
    """
    Wrap component markup in a standalone React page.

    `initial_data` is serialized into the component's `data` state, so the
    markup can reference it as `{data.field}`.
    """
    template = _templates.get_template("fragment.html")
    return template.render(markup=markup, initial_data=initial_data, title=title)


class HtmlStrategy(DispatchStrategy):
    """Prints raw HTML content."""

    document_class = DocumentClass.HTML
    label = "HTML"

    def __init__(self, renderer: HtmlRenderer, pdf_strategy: PdfStrategy):
        self.renderer = renderer
        self.pdf_strategy = pdf_strategy

    async def _render_and_print(self, html: str, options: PrintOptions) -> DispatchResult:
        pdf_path = await self.renderer.render(html, paper_format=options.paper_size or "A4")
        return await self.pdf_strategy.dispatch(pdf_path, options)

    async def _dispatch(self, target: Target, options: PrintOptions) -> DispatchResult:
        if not isinstance(target, str) or not target.strip():
            raise OptionsError("HTML content is empty")
        return await self._render_and_print(target, options)


class FragmentStrategy(HtmlStrategy):
    """Prints a UI fragment with data bindings."""

    document_class = DocumentClass.FRAGMENT
    label = "Fragment"

    async def _dispatch(self, target: Target, options: PrintOptions) -> DispatchResult:
        if isinstance(target, Fragment):
            fragment = target
        elif isinstance(target, str):
            fragment = Fragment(markup=target)
        else:
            raise OptionsError("Expected UI fragment markup")

        if not fragment.markup.strip():
            raise OptionsError("Fragment markup is empty")

        html = build_fragment_page(fragment.markup, fragment.data)
        return await self._render_and_print(html, options)
