"""Playwright-powered browser session implementation."""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from playwright.sync_api import Error, Page, sync_playwright

from ..config import BrowserConfig
from ..errors import DriverError, InvalidCredentials
from .base import BrowserPage, BrowserSession, PageInfo

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_COOKIE_FIELDS = {
    "name",
    "value",
    "url",
    "domain",
    "path",
    "expires",
    "httpOnly",
    "secure",
    "sameSite",
}

# Resolves once no mutation has been observed for `settle` ms, or after `limit` ms.
_WAIT_STABLE_SCRIPT = """
([settle, limit]) => new Promise((resolve) => {
    let timer = null;
    const observer = new MutationObserver(() => {
        clearTimeout(timer);
        timer = setTimeout(done, settle);
    });
    const deadline = setTimeout(done, limit);
    function done() {
        observer.disconnect();
        clearTimeout(timer);
        clearTimeout(deadline);
        resolve(true);
    }
    observer.observe(document, {
        subtree: true,
        childList: true,
        attributes: true,
        characterData: true,
    });
    timer = setTimeout(done, settle);
})
"""


class PlaywrightBrowserSession(BrowserSession):
    """Browser session backed by Playwright.

    The sync API is bound to the thread that started it, so every call is
    executed on a single dedicated worker thread.
    """

    def __init__(self, config: Optional[BrowserConfig] = None) -> None:
        self._config = config or BrowserConfig()
        self._worker: Optional[ThreadPoolExecutor] = None
        self._playwright = None
        self._browser = None
        self._context = None

    def start(self) -> None:
        if self._worker:
            return
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="playwright")
        self._call(self._start)

    def _start(self) -> None:
        LOGGER.debug("Starting Playwright browser session")
        self._playwright = sync_playwright().start()
        if self._config.control_url:
            LOGGER.info("Connecting to remote browser at %s", self._config.control_url)
            self._browser = self._playwright.chromium.connect_over_cdp(
                self._config.control_url,
                timeout=self._timeout_ms,
            )
            contexts = self._browser.contexts
            self._context = contexts[0] if contexts else self._browser.new_context()
        else:
            self._browser = self._playwright.chromium.launch(
                headless=self._config.headless,
                args=[
                    "--no-sandbox",
                    "--disable-dev-shm-usage",
                    "--disable-gpu",
                ],
            )
            self._context = self._browser.new_context()
        self._context.set_default_timeout(self._timeout_ms)

    def stop(self) -> None:
        if not self._worker:
            return
        try:
            self._call(self._stop)
        finally:
            self._worker.shutdown(wait=True)
            self._worker = None

    def _stop(self) -> None:
        LOGGER.debug("Stopping Playwright browser session")
        try:
            if self._context and not self._config.control_url:
                self._context.close()
        finally:
            if self._browser:
                self._browser.close()
            if self._playwright:
                self._playwright.stop()
        self._context = None
        self._browser = None
        self._playwright = None

    def open_page(self, url: str) -> BrowserPage:
        def _open() -> Page:
            page = self._require_context().new_page()
            try:
                page.goto(url, wait_until="load")
            except Error:
                page.close()
                raise
            return page

        LOGGER.debug("Opening %s", url)
        return PlaywrightPage(self, self._call(_open))

    def get_credentials(self) -> str:
        cookies = self._call(lambda: self._require_context().cookies())
        return json.dumps(cookies, ensure_ascii=False)

    def set_credentials(self, blob: str) -> None:
        cookies = _decode_cookies(blob)
        if not cookies:
            return
        self._call(lambda: self._require_context().add_cookies(cookies))
        LOGGER.debug("Loaded %s cookies into the session", len(cookies))

    # Internal helpers -------------------------------------------------

    @property
    def _timeout_ms(self) -> float:
        return self._config.timeout * 1000

    @property
    def config(self) -> BrowserConfig:
        return self._config

    def _require_context(self):
        if not self._context:
            raise DriverError("Browser session is not started")
        return self._context

    def _call(self, func: Callable[..., T], *args: Any) -> T:
        if not self._worker:
            raise DriverError("Browser session is not started")
        future = self._worker.submit(func, *args)
        try:
            return future.result()
        except Error as exc:
            raise DriverError(str(exc)) from exc


class PlaywrightPage(BrowserPage):
    """A Playwright page whose calls run on the owning session's worker thread."""

    def __init__(self, session: PlaywrightBrowserSession, page: Page) -> None:
        self._session = session
        self._page = page
        self._url_before_click: Optional[str] = None

    def wait_stable(self) -> None:
        config = self._session.config
        settle_ms = int(config.settle_seconds * 1000)
        limit_ms = int(config.stable_timeout * 1000)

        def _wait() -> None:
            for _ in range(3):
                self._page.wait_for_load_state("load")
                try:
                    self._page.evaluate(_WAIT_STABLE_SCRIPT, [settle_ms, limit_ms])
                    return
                except Error as exc:
                    # The document was replaced while observing; observe the new one.
                    if "context was destroyed" not in str(exc):
                        raise
            raise DriverError("page did not settle")

        self._session._call(_wait)

    def info(self) -> PageInfo:
        return self._session._call(
            lambda: PageInfo(title=self._page.title(), url=self._page.url)
        )

    def fill(self, selector: str, text: str) -> None:
        self._session._call(self._page.fill, selector, text)

    def click(self, selector: str) -> None:
        def _click() -> None:
            self._url_before_click = self._page.url
            self._page.click(selector)

        self._session._call(_click)

    def wait_navigation(self) -> None:
        def _wait() -> None:
            before = self._url_before_click
            if before is not None:
                self._page.wait_for_url(lambda url: url != before)
            self._page.wait_for_load_state("load")

        self._session._call(_wait)

    def evaluate(self, script: str) -> Any:
        return self._session._call(self._page.evaluate, script)

    def screenshot(self, path: Path) -> None:
        self._session._call(lambda: self._page.screenshot(path=str(path), full_page=True))

    def close(self) -> None:
        self._session._call(self._page.close)


def _decode_cookies(blob: str) -> list[dict[str, Any]]:
    try:
        raw = json.loads(blob)
    except ValueError as exc:
        raise InvalidCredentials(f"cookies are not valid JSON: {exc}") from exc
    if raw is None:
        return []
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise InvalidCredentials("cookies must be a JSON list of objects")
    cookies = []
    for item in raw:
        cookie = {key: value for key, value in item.items() if key in _COOKIE_FIELDS}
        if "name" not in cookie or "value" not in cookie:
            raise InvalidCredentials("every cookie needs a name and a value")
        if cookie.get("sameSite") not in {"Strict", "Lax", "None"}:
            cookie.pop("sameSite", None)
        cookies.append(cookie)
    return cookies
