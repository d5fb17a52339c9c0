"""Configuration models for the power query service."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_SELECTOR_FORM = "#loginViewDiv > div:nth-child(1) > form:nth-child(1) > div:nth-child(1)"


class BrowserConfig(BaseModel):
    """Settings for the shared browser session."""

    control_url: Optional[str] = Field(
        default=None,
        description="CDP endpoint of a remote Chromium. A local browser is launched when unset.",
    )
    headless: bool = True
    timeout: float = Field(default=30.0, description="Timeout (in seconds) for driver operations.")
    settle_seconds: float = Field(
        default=1.0,
        description="Quiet period without DOM mutations before a page counts as stable.",
    )
    stable_timeout: float = Field(default=15.0)
    screenshot_path: Path = Path("debug.png")


class CacheConfig(BaseModel):
    """Settings for the credential cache."""

    backend: str = Field(default="sqlite")
    path: Path = Path("power_query.db")
    ttl_days: float = Field(default=6.0)

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_days * 24 * 60 * 60


class PortalConfig(BaseModel):
    """Addresses, titles and selectors of the dormitory electricity portal."""

    target_url: str = (
        "https://eportal.uestc.edu.cn/qljfwapp/sys/lwUestcDormElecPrepaid/index.do#/record"
    )
    query_url: str = (
        "https://eportal.uestc.edu.cn/qljfwapp/sys/lwUestcDormElecPrepaid/"
        "dormElecPrepaidMan/queryRoomInfo.do"
    )
    login_title: str = "Unified identity authentication platform"
    target_title: str = "清水河校区寝室电费充值"
    success_code: str = "0"
    username_selector: str = f"{_SELECTOR_FORM} > div:nth-child(1) > input:nth-child(3)"
    password_selector: str = f"{_SELECTOR_FORM} > div:nth-child(2) > input:nth-child(3)"
    remember_selector: str = f"{_SELECTOR_FORM} > div:nth-child(4) > input:nth-child(1)"
    login_selector: str = (
        "#loginViewDiv > div:nth-child(1) > form:nth-child(1) > div:nth-child(2)"
        " > div:nth-child(2) > a:nth-child(1)"
    )


class ServerConfig(BaseModel):
    """Settings for the HTTP endpoint."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)


class ServiceConfig(BaseSettings):
    """Top-level configuration for the query service."""

    model_config = SettingsConfigDict(
        env_prefix="POWER_QUERY_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    portal: PortalConfig = Field(default_factory=PortalConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    prefer_cached_credentials: bool = Field(
        default=True,
        description="Let a cached credential replace one supplied with the request.",
    )
    return_credentials: bool = Field(
        default=False,
        description="Include the session credential blob in query results.",
    )


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> ServiceConfig:
    """Load configuration from an optional file and overrides."""

    data: dict[str, Any] = {}
    if path:
        import yaml

        data = yaml.safe_load(path.read_text()) or {}
    if overrides:
        _deep_update(data, overrides)
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    config = ServiceConfig(**data, **settings_kwargs)
    if not data:
        return config

    merged = config.model_dump(mode="python")
    _deep_update(merged, data)
    return ServiceConfig.model_validate(merged)


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> None:
    """Recursively merge ``updates`` into ``target`` in-place."""

    for key, value in updates.items():
        if (
            isinstance(value, Mapping)
            and isinstance(existing := target.get(key), Mapping)
        ):
            nested: dict[str, Any]
            if isinstance(existing, dict):
                nested = existing
            else:
                nested = dict(existing)
            _deep_update(nested, value)
            target[key] = nested
        else:
            target[key] = value
