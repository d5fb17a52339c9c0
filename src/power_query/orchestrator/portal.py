"""Helpers describing how the electricity portal behaves."""

from __future__ import annotations

import json
from typing import Any, Optional

from ..browser.base import PageInfo
from ..config import PortalConfig
from ..errors import RemoteQueryFailed
from ..models import AuthState


def classify_page(info: PageInfo, portal: PortalConfig) -> AuthState:
    """Map the loaded page onto an authentication state using its title."""

    if info.title == portal.login_title:
        return AuthState.NEEDS_LOGIN
    return AuthState.AUTHENTICATED


def build_room_query_script(room_name: str, portal: PortalConfig) -> str:
    """Return a page function that POSTs the room query with the page's own cookies."""

    room_ids = json.dumps([{"DORM_ID": room_name}], ensure_ascii=False, separators=(",", ":"))
    return f"""() => {{
        return fetch({json.dumps(portal.query_url)}, {{
            method: 'POST',
            headers: {{
                'Content-Type': 'application/x-www-form-urlencoded; charset=UTF-8'
            }},
            body: 'roomIds=' + encodeURIComponent({json.dumps(room_ids, ensure_ascii=False)})
        }}).then(response => response.json());
    }}"""


def parse_room_info(payload: Any, portal: PortalConfig) -> tuple[str, str]:
    """Extract ``(balance, power)`` from the query endpoint response."""

    first = payload[0] if isinstance(payload, list) and payload else None
    if not isinstance(first, dict):
        raise RemoteQueryFailed()
    code = _as_text(first.get("code"))
    if code != portal.success_code:
        raise RemoteQueryFailed(code)
    room_info = first.get("roomInfo")
    if not isinstance(room_info, dict):
        room_info = {}
    return _as_text(room_info.get("syje")) or "", _as_text(room_info.get("sydl")) or ""


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value)
