"""Query orchestrator that drives the shared browser session."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from ..browser.base import BrowserPage, BrowserSession
from ..cache.base import CredentialCache
from ..config import ServiceConfig
from ..errors import (
    CredentialNotFound,
    InvalidArgument,
    MissingAuthentication,
    MissingRoomName,
    NavigationFailed,
    QueryError,
    StoreError,
)
from ..models import AuthState, CacheWriteOutcome, QueryRequest, QueryResult
from .portal import build_room_query_script, classify_page, parse_room_info

LOGGER = logging.getLogger(__name__)


class Queryer:
    """Runs room queries one at a time on a single shared browser session.

    Cookies are global state of the session, so injecting credentials,
    logging in, caching and fetching for one query must never interleave
    with another query. ``execute_query`` holds ``self._lock`` for its whole
    duration.
    """

    def __init__(
        self,
        config: ServiceConfig,
        cache: CredentialCache,
        browser: BrowserSession,
    ) -> None:
        self._config = config
        self._portal = config.portal
        self._cache = cache
        self._browser = browser
        self._lock = threading.Lock()
        self.last_cache_write: Optional[CacheWriteOutcome] = None

    def execute_query(self, request: QueryRequest) -> QueryResult:
        """Return the balance and remaining power of ``request.room_name``."""

        with self._lock:
            cookies = self._resolve_cookies(request)
            if not request.has_login() and not cookies:
                raise MissingAuthentication()
            if not request.room_name:
                raise MissingRoomName()
            if cookies:
                self._browser.set_credentials(cookies)

            page = self._browser.open_page(self._portal.target_url)
            try:
                return self._query_page(page, request)
            finally:
                page.close()

    def _query_page(self, page: BrowserPage, request: QueryRequest) -> QueryResult:
        page.wait_stable()
        info = page.info()
        state = classify_page(info, self._portal)
        logged_in = False
        if state is AuthState.NEEDS_LOGIN:
            if not request.has_login():
                LOGGER.info("Cookies for room %s were rejected", request.room_name)
                self._capture_screenshot(page)
                raise NavigationFailed(info.title)
            self._login(page, request)
            logged_in = True
        else:
            LOGGER.info("Session already authenticated for room %s", request.room_name)

        title = page.info().title
        if title != self._portal.target_title:
            self._capture_screenshot(page)
            raise NavigationFailed(title)
        if logged_in:
            self.last_cache_write = self._cache_credentials(request.room_name)

        payload = page.evaluate(build_room_query_script(request.room_name, self._portal))
        balance, power = parse_room_info(payload, self._portal)
        result = QueryResult(balance=balance, power=power)
        if self._config.return_credentials:
            result.cookies = self._browser.get_credentials()
        return result

    def _login(self, page: BrowserPage, request: QueryRequest) -> None:
        LOGGER.info("Logging in with username and password for room %s", request.room_name)
        page.fill(self._portal.username_selector, request.username)
        page.fill(self._portal.password_selector, request.password)
        page.click(self._portal.remember_selector)
        page.click(self._portal.login_selector)
        page.wait_navigation()
        page.wait_stable()

    def _resolve_cookies(self, request: QueryRequest) -> str:
        cached = self._load_cached_cookies(request.room_name)
        if cached and (self._config.prefer_cached_credentials or not request.cookies):
            LOGGER.info("Using cached cookies for room %s", request.room_name)
            return cached
        if not cached:
            LOGGER.warning("No cached cookies found for room %s", request.room_name)
        return request.cookies

    def _load_cached_cookies(self, room_name: str) -> str:
        if not room_name:
            return ""
        try:
            return self._cache.get(room_name).decode("utf-8")
        except CredentialNotFound:
            return ""
        except (StoreError, UnicodeDecodeError) as exc:
            LOGGER.warning("Failed to read cached cookies for room %s: %s", room_name, exc)
            return ""

    def _cache_credentials(self, room_name: str) -> CacheWriteOutcome:
        """Store the session cookies for ``room_name``; failures are only logged."""

        try:
            cookies = self._browser.get_credentials()
            self._cache.set(room_name, cookies.encode("utf-8"), self._config.cache.ttl_seconds)
        except (InvalidArgument, StoreError) as exc:
            LOGGER.warning("Failed to cache cookies for room %s: %s", room_name, exc)
            return CacheWriteOutcome(stored=False, error=str(exc))
        LOGGER.debug("Cached cookies for room %s", room_name)
        return CacheWriteOutcome(stored=True)

    def _capture_screenshot(self, page: BrowserPage) -> None:
        path = self._config.browser.screenshot_path
        try:
            page.screenshot(path)
        except (QueryError, OSError) as exc:
            LOGGER.warning("Failed to capture diagnostic screenshot %s: %s", path, exc)
        else:
            LOGGER.info("Saved diagnostic screenshot to %s", path)
