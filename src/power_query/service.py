"""HTTP service exposing room queries."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .browser.base import BrowserSession
from .cache.base import CredentialCache
from .errors import QueryError
from .models import QueryRequest
from .orchestrator.runner import Queryer

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Power Query")


class ServiceState:
    """Holds the queryer shared by every request handler."""

    def __init__(
        self,
        queryer: Optional[Queryer] = None,
        *,
        cache: Optional[CredentialCache] = None,
        browser: Optional[BrowserSession] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._queryer = queryer
        self._cache = cache
        self._browser = browser

    def get_queryer(self) -> Optional[Queryer]:
        with self._lock:
            return self._queryer

    def health(self) -> Dict[str, Any]:
        if self.get_queryer() is None:
            return {"status": "unavailable", "detail": "queryer is not configured"}
        return {"status": "available"}

    def close(self) -> None:
        with self._lock:
            browser, cache = self._browser, self._cache
            self._queryer = None
            self._browser = None
            self._cache = None
        try:
            if browser:
                browser.stop()
        finally:
            if cache:
                cache.close()


state = ServiceState()


def _run_query(request: QueryRequest) -> JSONResponse:
    queryer = state.get_queryer()
    if queryer is None:
        return JSONResponse(status_code=503, content={"error": "service is not ready"})
    try:
        result = queryer.execute_query(request)
    except QueryError as exc:
        LOGGER.info("Query for room %s failed: %s", request.room_name, exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})
    return JSONResponse(content=result.model_dump(exclude_none=True))


# API routes -----------------------------------------------------------------


@app.get("/health")
def get_health() -> Dict[str, Any]:
    return state.health()


@app.get("/query")
def query_get(
    room_name: str = "",
    username: str = "",
    password: str = "",
    cookies: str = "",
) -> JSONResponse:
    return _run_query(
        QueryRequest(
            room_name=room_name,
            username=username,
            password=password,
            cookies=cookies,
        )
    )


@app.post("/query")
def query_post(payload: QueryRequest) -> JSONResponse:
    return _run_query(payload)
