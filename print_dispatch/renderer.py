"""
HTML to PDF rendering with a headless Chromium-family browser.

Uses an installed Chrome/Edge when one is found (or configured), otherwise
the Chromium build bundled with Playwright:
    python -m playwright install chromium
"""

import logging
import os
from pathlib import Path
from typing import Callable, Optional

import aiofiles
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from print_dispatch.config_store import ConfigStore
from print_dispatch.errors import RenderTimeoutError
from print_dispatch.resolver import TempStore

logger = logging.getLogger(__name__)

PAGE_LOAD_TIMEOUT_MS = 30000

BROWSER_PATHS = {
    "win32": (
        "C:/Program Files/Google/Chrome/Application/chrome.exe",
        "C:/Program Files (x86)/Google/Chrome/Application/chrome.exe",
        "C:/Program Files/Microsoft/Edge/Application/msedge.exe",
        "C:/Program Files (x86)/Microsoft/Edge/Application/msedge.exe",
    ),
    "darwin": (
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
        "/Applications/Microsoft Edge.app/Contents/MacOS/Microsoft Edge",
    ),
    "linux": (
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/usr/bin/chromium",
        "/usr/bin/chromium-browser",
        "/usr/bin/microsoft-edge",
    ),
}

# Flags for running inside a locked-down desktop session
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]


def default_pdf_options(paper_format: str = "A4") -> dict:
    return {
        "format": paper_format,
        "print_background": True,
        "margin": {
            "top": "1cm",
            "right": "1cm",
            "bottom": "1cm",
            "left": "1cm",
        },
        "prefer_css_page_size": False,
    }


class HtmlRenderer:
    """
    Converts HTML content into a PDF file in the managed temp directory.

    Each render launches and closes its own browser instance.
    """

    def __init__(
        self,
        temp_store: TempStore,
        config: ConfigStore,
        platform: str,
        playwright_factory: Callable = async_playwright,
        timeout_ms: int = PAGE_LOAD_TIMEOUT_MS,
        exists: Callable[[str], bool] = os.path.exists
    ):
        self.temp_store = temp_store
        self.config = config
        self.platform = platform
        self.timeout_ms = timeout_ms
        self._playwright_factory = playwright_factory
        self._exists = exists

    def resolve_browser_executable(self) -> Optional[str]:
        """
        Configured `browser.executablePath`, then well-known install paths.

        Returns None to use the Playwright-bundled Chromium.
        """
        configured = self.config.get("browser.executablePath")
        if isinstance(configured, str) and configured.strip():
            if self._exists(configured.strip()):
                return configured.strip()
            logger.warning(f"Configured browser path not accessible: {configured}")

        for path in BROWSER_PATHS.get(self.platform, ()):
            if self._exists(path):
                return path
        return None

    async def render(
        self,
        html: str,
        paper_format: str = "A4",
        pdf_options: Optional[dict] = None,
        **launch_options
    ) -> Path:
        """
        Render HTML to a PDF file and return its path.

        Args:
            html: Page content
            paper_format: Paper format name (A4, A3, Letter, Legal, ...)
            pdf_options: Overrides merged over the default PDF options
            **launch_options: Extra browser launch options (e.g.
                executable_path)

        Raises:
            RenderTimeoutError: page did not reach network idle in time
        """
        executable_path = launch_options.pop("executable_path", None) or self.resolve_browser_executable()
        options = {**default_pdf_options(paper_format), **(pdf_options or {})}
        temp_path = self.temp_store.create_temp_path()

        logger.info(
            f"Starting PDF generation with format: {paper_format} "
            f"(browser: {executable_path or 'bundled chromium'})"
        )

        try:
            async with self._playwright_factory() as playwright:
                browser = await playwright.chromium.launch(
                    executable_path=executable_path,
                    headless=True,
                    args=LAUNCH_ARGS,
                    **launch_options
                )
                try:
                    page = await browser.new_page()
                    try:
                        await page.set_content(
                            html,
                            wait_until="networkidle",
                            timeout=self.timeout_ms
                        )
                    except PlaywrightTimeoutError as e:
                        raise RenderTimeoutError(
                            f"Page content did not finish loading within {self.timeout_ms} ms"
                        ) from e
                    pdf_bytes = await page.pdf(**options)
                finally:
                    try:
                        await browser.close()
                    except Exception as e:
                        logger.warning(f"Error closing browser: {e}")

            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(pdf_bytes)

        except Exception as e:
            logger.error(f"Error generating PDF: {e}")
            try:
                temp_path.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning(f"Failed to cleanup temp file: {cleanup_error}")
            raise
        finally:
            self.temp_store.release(temp_path)

        logger.info(f"PDF generated successfully: {temp_path}")
        return temp_path
