"""
Headless browser capability used by the page extractors.

Extractors only talk to the ``BrowserSession`` protocol, so tests can drive
them with a fake session. ``PlaywrightSession`` is the production
implementation for JavaScript-rendered job boards.
"""

import logging
from functools import partial
from typing import Awaitable, Callable, Optional, Protocol, TypeVar

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1280, "height": 800}
LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


class BrowserLaunchError(Exception):
    """Raised when a browser session cannot be started."""

    pass


class BrowserSession(Protocol):
    """The browser operations an extractor needs."""

    async def navigate(self, url: str, timeout_ms: int) -> None:
        ...

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        """Wait for ``selector``; return False on timeout instead of raising."""
        ...

    async def extract(self, parser: Callable[[str], T]) -> T:
        """Run ``parser`` over the current rendered DOM."""
        ...

    async def click(self, selector: str, settle_ms: int = 0) -> bool:
        """Click the first match of ``selector``; return False if there is none."""
        ...

    async def close(self) -> None:
        ...


SessionFactory = Callable[[], Awaitable[BrowserSession]]


class PlaywrightSession:
    """A single Chromium page owned by one extractor call."""

    def __init__(self, playwright: Playwright, browser: Browser, page: Page):
        self._playwright = playwright
        self._browser = browser
        self.page = page

    @classmethod
    async def launch(cls, headless: bool = True) -> "PlaywrightSession":
        playwright: Optional[Playwright] = None
        browser: Optional[Browser] = None
        try:
            playwright = await async_playwright().start()
            browser = await playwright.chromium.launch(headless=headless, args=LAUNCH_ARGS)
            page = await browser.new_page(viewport=VIEWPORT, user_agent=USER_AGENT)
            await page.set_extra_http_headers({"Accept-Language": "en-US,en;q=0.9"})
        except Exception as e:
            if browser is not None:
                await browser.close()
            if playwright is not None:
                await playwright.stop()
            raise BrowserLaunchError(f"Failed to launch browser: {e}") from e
        return cls(playwright, browser, page)

    async def navigate(self, url: str, timeout_ms: int) -> None:
        await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        try:
            await self.page.wait_for_selector(selector, timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            logger.info(f"Selector {selector} not found within {timeout_ms}ms, proceeding anyway")
            return False

    async def extract(self, parser: Callable[[str], T]) -> T:
        html = await self.page.content()
        return parser(html)

    async def click(self, selector: str, settle_ms: int = 0) -> bool:
        handle = await self.page.query_selector(selector)
        if handle is None:
            return False
        await handle.click()
        if settle_ms:
            await self.page.wait_for_timeout(settle_ms)
        return True

    async def close(self) -> None:
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


def playwright_session_factory(headless: bool = True) -> SessionFactory:
    """Session factory handed to the extractors in production."""
    return partial(PlaywrightSession.launch, headless=headless)
