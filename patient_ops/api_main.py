from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status

from .logging_setup import setup_logging
from .seed import seed_base
from .settings import get_settings
from .store import StoreError, UnknownTableError, init_db, insert_row, select_rows, update_rows

logger = logging.getLogger(__name__)

# query params that drive the select; everything else is an equality filter
RESERVED_PARAMS = {"order", "ascending"}

app = FastAPI(title="Patient Operations Data API", version="1.0.0")



# Startup

@app.on_event("startup")
def startup() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    # Tables + base roster (idempotent)
    init_db()
    seed_base()
    if not settings.api_key:
        logger.warning("DATA_API_KEY not set: the data API accepts unauthenticated calls")



# Auth dependency

def require_api_key(apikey: str | None = Header(default=None)) -> None:
    expected = get_settings().api_key
    if not expected:
        return
    # tolerate stray spaces / quotes around the key
    given = (apikey or "").strip().strip('"').strip("'")
    if given != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")



# Helpers

def _filters(request: Request) -> dict[str, str]:
    return {k: v for k, v in request.query_params.items() if k not in RESERVED_PARAMS}


def _store_call(fn, *args, **kwargs) -> Any:
    try:
        return fn(*args, **kwargs)
    except UnknownTableError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))



# Endpoints

@app.get("/api/health")
def health() -> dict[str, Any]:
    return {"ok": True}


@app.get("/api/tables/{table}", dependencies=[Depends(require_api_key)])
def api_select(table: str, request: Request, order: str | None = None, ascending: bool = True) -> list[dict]:
    return _store_call(select_rows, table, _filters(request), order=order, ascending=ascending)


@app.post("/api/tables/{table}", dependencies=[Depends(require_api_key)])
def api_insert(table: str, payload: dict[str, Any]) -> dict[str, Any]:
    return _store_call(insert_row, table, payload)


@app.patch("/api/tables/{table}", dependencies=[Depends(require_api_key)])
def api_update(table: str, request: Request, payload: dict[str, Any]) -> list[dict]:
    """Returns the affected rows: callers check the count themselves."""
    return _store_call(update_rows, table, payload, _filters(request))
