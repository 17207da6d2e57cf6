from __future__ import annotations

import logging
from typing import Any

import requests

from .errors import BackendError, DecodeError, RowCountError
from .settings import Settings

logger = logging.getLogger(__name__)

TABLE_EVENTS = "calendar_events"
TABLE_COMMUNICATIONS = "communications"
TABLE_DENTISTS = "dentists"
TABLE_STAFF = "staff"


class TableClient:
    """
    Thin HTTP client for the data service.
    Generic table calls only: select / insert / update, with equality filters and ordering.
    """

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0, session: requests.Session | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    # =========================
    # HTTP
    # =========================
    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }

    def _request(self, method: str, table: str, params: dict | None = None, payload: dict | None = None) -> Any:
        url = f"{self.base_url}/api/tables/{table}"
        logger.debug("%s %s params=%s", method, url, params)
        try:
            r = self.session.request(
                method,
                url,
                headers=self._headers(),
                params=params,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, table, e)
            raise BackendError(f"Backend unreachable: {e}") from e

        if r.status_code >= 400:
            message = _error_message(r)
            logger.warning("%s %s -> %s: %s", method, table, r.status_code, message)
            raise BackendError(message, status_code=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            raise DecodeError(f"Backend returned a non-JSON body for {table}.") from e

    # =========================
    # Table calls
    # =========================
    def select(self, table: str, order: str | None = None, ascending: bool = True, **filters: Any) -> list[dict]:
        params: dict[str, Any] = dict(filters)
        if order:
            params["order"] = order
            params["ascending"] = "true" if ascending else "false"
        return _expect_rows(self._request("GET", table, params=params), table)

    def insert(self, table: str, payload: dict) -> dict:
        row = self._request("POST", table, payload=payload)
        if not isinstance(row, dict):
            raise DecodeError(f"Backend returned no row for insert into {table}.")
        return row

    def update(self, table: str, payload: dict, **filters: Any) -> list[dict]:
        return _expect_rows(self._request("PATCH", table, params=filters, payload=payload), table)

    def update_by_id(self, table: str, record_id: str, payload: dict) -> dict:
        """Patch one record; anything other than exactly one affected row is an integrity error."""
        rows = self.update(table, payload, id=record_id)
        if len(rows) != 1:
            logger.error("update %s id=%s affected %d rows", table, record_id, len(rows))
            raise RowCountError(table, record_id, len(rows))
        return rows[0]


def _error_message(r: requests.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text or f"HTTP {r.status_code}"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if detail:
            return str(detail)
    return f"HTTP {r.status_code}"


def _expect_rows(data: Any, table: str) -> list[dict]:
    if not isinstance(data, list):
        raise DecodeError(f"Backend returned a malformed row list for {table}.")
    return data


def build_client(settings: Settings) -> TableClient | None:
    """None when the endpoint/key are missing: the UI stays browsable, writes are refused."""
    if not settings.is_configured:
        logger.warning("DATA_API_URL / DATA_API_KEY not set: running without a data backend")
        return None
    return TableClient(settings.api_url, settings.api_key, timeout=settings.timeout)
