"""Tests for HTML rendering and the HTML/fragment strategies."""

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from print_dispatch.errors import RenderTimeoutError
from print_dispatch.renderer import LAUNCH_ARGS, HtmlRenderer, default_pdf_options
from print_dispatch.resolver import TempStore
from print_dispatch.strategies import DispatchResult, Fragment, PrintOptions
from print_dispatch.strategies.html import FragmentStrategy, HtmlStrategy, build_fragment_page


class FakePage:
    def __init__(self, browser):
        self.browser = browser

    async def set_content(self, html, wait_until=None, timeout=None):
        self.browser.calls.append(("set_content", html, wait_until, timeout))
        if self.browser.fail_load:
            raise PlaywrightTimeoutError("Timeout 30000ms exceeded.")

    async def pdf(self, **options):
        self.browser.calls.append(("pdf", options))
        if self.browser.fail_pdf:
            raise RuntimeError("Target closed")
        return b"%PDF-1.4 rendered"


class FakeBrowser:
    def __init__(self, fail_load=False, fail_pdf=False):
        self.calls = []
        self.closed = False
        self.fail_load = fail_load
        self.fail_pdf = fail_pdf

    async def new_page(self):
        return FakePage(self)

    async def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self, browser):
        self.browser = browser
        self.launch_kwargs = None

    async def launch(self, **kwargs):
        self.launch_kwargs = kwargs
        return self.browser


class FakePlaywright:
    """Stands in for `async_playwright()`."""

    def __init__(self, browser):
        self.chromium = FakeChromium(browser)

    def __call__(self):
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakePdfStrategy:
    def __init__(self):
        self.dispatched = []

    async def dispatch(self, target, options=None):
        self.dispatched.append((target, options))
        return DispatchResult(success=True, job_id="7")


@pytest.fixture
def temp_store(tmp_path):
    return TempStore(tmp_path / "tmp")


def make_renderer(temp_store, config_store, browser, exists=lambda p: False):
    return HtmlRenderer(
        temp_store,
        config_store,
        "linux",
        playwright_factory=FakePlaywright(browser),
        exists=exists
    )


class TestHtmlRenderer:
    @pytest.mark.asyncio
    async def test_render_writes_pdf(self, temp_store, config_store):
        browser = FakeBrowser()
        renderer = make_renderer(temp_store, config_store, browser)

        path = await renderer.render("<h1>Hi</h1>", paper_format="Letter")

        assert path.parent == temp_store.temp_dir
        assert path.read_bytes() == b"%PDF-1.4 rendered"
        assert browser.closed
        assert browser.calls[0] == ("set_content", "<h1>Hi</h1>", "networkidle", 30000)
        assert browser.calls[1] == ("pdf", default_pdf_options("Letter"))

    @pytest.mark.asyncio
    async def test_launch_uses_bundled_chromium_by_default(self, temp_store, config_store):
        factory = FakePlaywright(FakeBrowser())
        renderer = HtmlRenderer(temp_store, config_store, "linux", playwright_factory=factory,
                                exists=lambda p: False)

        await renderer.render("<p>x</p>")

        kwargs = factory.chromium.launch_kwargs
        assert kwargs["executable_path"] is None
        assert kwargs["headless"] is True
        assert kwargs["args"] == LAUNCH_ARGS

    @pytest.mark.asyncio
    async def test_pdf_option_overrides(self, temp_store, config_store):
        browser = FakeBrowser()
        renderer = make_renderer(temp_store, config_store, browser)

        await renderer.render("<p>x</p>", pdf_options={"landscape": True, "print_background": False})

        options = browser.calls[1][1]
        assert options["landscape"] is True
        assert options["print_background"] is False
        assert options["format"] == "A4"
        assert options["margin"]["top"] == "1cm"

    @pytest.mark.asyncio
    async def test_timeout_removes_temp_file(self, temp_store, config_store):
        browser = FakeBrowser(fail_load=True)
        renderer = make_renderer(temp_store, config_store, browser)

        with pytest.raises(RenderTimeoutError):
            await renderer.render("<img src='http://10.255.255.1/slow.png'>")

        assert browser.closed
        assert list(temp_store.temp_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_pdf_failure_propagates(self, temp_store, config_store):
        browser = FakeBrowser(fail_pdf=True)
        renderer = make_renderer(temp_store, config_store, browser)

        with pytest.raises(RuntimeError):
            await renderer.render("<p>x</p>")

        assert browser.closed
        assert list(temp_store.temp_dir.iterdir()) == []

    def test_configured_browser_wins(self, temp_store, config_store):
        config_store.set("browser.executablePath", "/opt/chrome/chrome")
        renderer = make_renderer(temp_store, config_store, FakeBrowser(),
                                 exists=lambda p: p in ("/opt/chrome/chrome", "/usr/bin/chromium"))
        assert renderer.resolve_browser_executable() == "/opt/chrome/chrome"

    def test_well_known_browser_path(self, temp_store, config_store):
        config_store.set("browser.executablePath", "/missing/chrome")
        renderer = make_renderer(temp_store, config_store, FakeBrowser(),
                                 exists=lambda p: p == "/usr/bin/chromium")
        assert renderer.resolve_browser_executable() == "/usr/bin/chromium"


class TestFragmentPage:
    def test_embeds_markup_and_data(self):
        html = build_fragment_page("<p>{data.name}</p>", {"name": "Ada"})
        assert "<p>{data.name}</p>" in html
        assert 'useState({"name": "Ada"})' in html
        assert "ReactDOM.createRoot" in html

    def test_missing_data_is_null(self):
        assert "useState(null)" in build_fragment_page("<p>x</p>")


class TestHtmlStrategies:
    @pytest.mark.asyncio
    async def test_html_renders_then_prints_pdf(self, temp_store, config_store):
        browser = FakeBrowser()
        pdf = FakePdfStrategy()
        strategy = HtmlStrategy(make_renderer(temp_store, config_store, browser), pdf)

        result = await strategy.dispatch("<h1>Invoice</h1>", PrintOptions(printer="Office", paper_size="A5"))

        assert result.success
        assert result.job_id == "7"
        rendered, options = pdf.dispatched[0]
        assert rendered.read_bytes() == b"%PDF-1.4 rendered"
        assert options.printer == "Office"
        assert browser.calls[1][1]["format"] == "A5"

    @pytest.mark.asyncio
    async def test_empty_html_fails_without_rendering(self, temp_store, config_store):
        browser = FakeBrowser()
        pdf = FakePdfStrategy()
        strategy = HtmlStrategy(make_renderer(temp_store, config_store, browser), pdf)

        result = await strategy.dispatch("   ")

        assert not result.success
        assert browser.calls == []
        assert pdf.dispatched == []

    @pytest.mark.asyncio
    async def test_fragment_wraps_markup(self, temp_store, config_store):
        browser = FakeBrowser()
        pdf = FakePdfStrategy()
        strategy = FragmentStrategy(make_renderer(temp_store, config_store, browser), pdf)

        result = await strategy.dispatch(Fragment("<h2>{data.total}</h2>", {"total": 12}))

        assert result.success
        page_html = browser.calls[0][1]
        assert "<h2>{data.total}</h2>" in page_html
        assert 'useState({"total": 12})' in page_html

    @pytest.mark.asyncio
    async def test_render_timeout_becomes_failed_result(self, temp_store, config_store):
        pdf = FakePdfStrategy()
        strategy = HtmlStrategy(make_renderer(temp_store, config_store, FakeBrowser(fail_load=True)), pdf)

        result = await strategy.dispatch("<p>x</p>")

        assert not result.success
        assert "did not finish loading" in result.error
        assert pdf.dispatched == []
