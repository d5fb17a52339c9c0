import json

import pytest

from power_query.browser.base import PageInfo
from power_query.browser.playwright_session import _decode_cookies
from power_query.config import PortalConfig
from power_query.errors import InvalidCredentials, RemoteQueryFailed
from power_query.models import AuthState
from power_query.orchestrator.portal import (
    build_room_query_script,
    classify_page,
    parse_room_info,
)

PORTAL = PortalConfig()


def test_classify_page_by_title() -> None:
    assert classify_page(PageInfo(title=PORTAL.login_title), PORTAL) is AuthState.NEEDS_LOGIN
    assert classify_page(PageInfo(title=PORTAL.target_title), PORTAL) is AuthState.AUTHENTICATED
    assert classify_page(PageInfo(title="Maintenance"), PORTAL) is AuthState.AUTHENTICATED


def test_room_query_script_posts_form_encoded_room_ids() -> None:
    script = build_room_query_script('10"1', PORTAL)

    assert script.startswith("() =>")
    assert json.dumps(PORTAL.query_url) in script
    assert "application/x-www-form-urlencoded; charset=UTF-8" in script
    assert "'roomIds=' + encodeURIComponent(" in script
    expected = json.dumps(json.dumps([{"DORM_ID": '10"1'}], separators=(",", ":")))
    assert expected in script


def test_parse_room_info_reads_balance_and_power() -> None:
    payload = [{"code": "0", "roomInfo": {"syje": "12.3", "sydl": 45.6}}]

    assert parse_room_info(payload, PORTAL) == ("12.3", "45.6")


def test_parse_room_info_rejects_failure_code() -> None:
    with pytest.raises(RemoteQueryFailed) as excinfo:
        parse_room_info([{"code": "2"}], PORTAL)

    assert excinfo.value.code == "2"


def test_decode_cookies_keeps_playwright_fields() -> None:
    blob = json.dumps(
        [
            {
                "name": "CASTGC",
                "value": "token",
                "domain": ".uestc.edu.cn",
                "path": "/",
                "expires": -1,
                "size": 10,
                "sameSite": "",
                "priority": "Medium",
            }
        ]
    )

    assert _decode_cookies(blob) == [
        {"name": "CASTGC", "value": "token", "domain": ".uestc.edu.cn", "path": "/", "expires": -1}
    ]
    assert _decode_cookies("null") == []


@pytest.mark.parametrize("blob", ["not json", '{"name": "x"}', '[{"value": "x"}]'])
def test_decode_cookies_rejects_malformed_blobs(blob: str) -> None:
    with pytest.raises(InvalidCredentials):
        _decode_cookies(blob)
