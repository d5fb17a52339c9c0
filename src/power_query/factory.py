"""Factories for constructing components from configuration."""

from __future__ import annotations

from .browser.base import BrowserSession
from .browser.playwright_session import PlaywrightBrowserSession
from .cache.base import CredentialCache, InMemoryCredentialCache
from .cache.sqlite import SQLiteCredentialCache
from .config import BrowserConfig, CacheConfig, ServiceConfig
from .orchestrator.runner import Queryer


def build_cache(config: CacheConfig) -> CredentialCache:
    backend = config.backend.lower()
    if backend == "sqlite":
        return SQLiteCredentialCache(config.path)
    if backend == "memory":
        return InMemoryCredentialCache()
    raise ValueError(f"Unsupported cache backend: {config.backend}")


def build_browser(config: BrowserConfig) -> PlaywrightBrowserSession:
    return PlaywrightBrowserSession(config)


def build_queryer(
    config: ServiceConfig,
    cache: CredentialCache,
    browser: BrowserSession,
) -> Queryer:
    browser.start()
    return Queryer(config=config, cache=cache, browser=browser)
