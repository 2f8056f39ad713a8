# plate_palette/services/store.py
"""
Shared plumbing for services that talk to Supabase.

- Standardized return shape for every public service method:
    {"ok": True, "data": ..., "diagnostics": {...}}
    {"ok": False, "error": "<code>", "error_kind": "<kind>", "diagnostics": {...}}
- Blocking supabase SDK calls run via asyncio.to_thread so the event loop
  is never blocked.
- Store exceptions are caught in one place (`_call_db`) and classified:
  a unique violation becomes a "conflict", anything else "upstream".
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

VALIDATION = "validation"
CONFLICT = "conflict"
NOT_AUTHORIZED = "not_authorized"
NOT_FOUND = "not_found"
UPSTREAM = "upstream"

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_supabase_response(resp: Any) -> Dict[str, Any]:
    """
    Turn Supabase SDK responses (object with .data or dict) into a predictable dict.
    Returns {ok, data, raw}
    """
    if resp is None:
        return {"ok": False, "data": None, "raw": None}

    if hasattr(resp, "data"):
        data = getattr(resp, "data")
        return {"ok": data is not None, "data": data, "raw": resp}

    if isinstance(resp, dict):
        data = resp.get("data")
        return {"ok": data is not None, "data": data, "raw": resp}

    return {"ok": False, "data": None, "raw": str(resp)}


def _rows(data: Any) -> List[Dict[str, Any]]:
    if not data:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return [data]
    return []


async def _run_blocking(fn: Callable, *args, **kwargs) -> Any:
    return await asyncio.to_thread(lambda: fn(*args, **kwargs))


def _make_result(
    ok: bool,
    data: Any = None,
    error: Optional[str] = None,
    error_kind: Optional[str] = None,
    diagnostics: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    res: Dict[str, Any] = {"ok": ok}
    if ok:
        res["data"] = data
    else:
        res["error"] = error or "unknown_error"
        res["error_kind"] = error_kind or UPSTREAM
    res["diagnostics"] = diagnostics or {}
    return res


def _fail(
    error_kind: str, error: str, diagnostics: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    return _make_result(False, error=error, error_kind=error_kind, diagnostics=diagnostics)


def is_unique_violation(exc: BaseException) -> bool:
    code = getattr(exc, "code", None)
    if code is None and exc.args and isinstance(exc.args[0], dict):
        code = exc.args[0].get("code")
    return str(code) == UNIQUE_VIOLATION


class StoreService:
    """Base class for services holding an explicitly passed supabase client."""

    def __init__(self, client: Optional[Any]) -> None:
        self.client = client
        if self.client is None:
            logger.warning(
                "%s: Supabase client not available. DB operations will fail.",
                type(self).__name__,
            )

    def _no_client(self) -> Dict[str, Any]:
        return _fail(UPSTREAM, "no_supabase_client")

    async def _call_db(self, fn: Callable, *args, **kwargs) -> Dict[str, Any]:
        """
        Run blocking DB function in a thread and normalize response.
        `fn` should be a callable that invokes supabase SDK and returns its raw response.
        """
        if self.client is None:
            return self._no_client()
        name = getattr(fn, "__name__", str(fn))
        try:
            logger.debug("DB call: %s args=%s", name, args)
            raw = await _run_blocking(fn, *args, **kwargs)
        except Exception as exc:
            if is_unique_violation(exc):
                logger.info("DB call %s hit a unique constraint", name)
                return _fail(CONFLICT, "unique_violation", {"called": name})
            logger.exception("DB call %s raised exception: %s", name, exc)
            return _fail(UPSTREAM, "store_error", {"called": name, "exception": str(exc)})

        parsed = _parse_supabase_response(raw)
        if not parsed["ok"]:
            return _fail(UPSTREAM, "db_no_data", {"called": name})
        return _make_result(True, data=parsed["data"], diagnostics={"called": name})
