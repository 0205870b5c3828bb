"""
Purpose:
- Minimal client for the managed backend's REST data API (PostgREST dialect).
- Filtered select with offset/limit, exact count, insert, update-by-id, delete-by-id.

Notes:
- Filters are passed through in PostgREST syntax, e.g. {"is_public": "eq.true"}.
- Requests carry the anon key as `apikey` and the signed-in user's token as
  bearer, so row-level security applies to that user.
- Any transport error, non-2xx status or unparseable body becomes DataFetchFailure (reads) or
  MutationFailure (writes); nothing is retried.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional
import httpx

from ..core.errors import DataFetchFailure, MutationFailure
from ..core.settings import settings

logger = logging.getLogger(__name__)

def _total_from_content_range(value: Optional[str]) -> int:
    # "0-24/1234" or "*/0"
    if not value or "/" not in value:
        return 0
    total = value.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0

class DataStore:
    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        token: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
        bearer = token or api_key
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        self._http = httpx.Client(
            base_url=base_url.rstrip("/") + "/rest/v1",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "DataStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---- reads ----

    def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, str]] = None,
        *,
        order: Optional[str] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"select": columns, **(filters or {})}
        if order:
            params["order"] = order
        if offset is not None:
            params["offset"] = offset
        if limit is not None:
            params["limit"] = limit
        try:
            r = self._http.get(f"/{table}", params=params)
            r.raise_for_status()
            return r.json() or []
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("select %s failed: %r", table, e)
            raise DataFetchFailure(f"{table}: {e}") from e

    def count(self, table: str, filters: Optional[Dict[str, str]] = None) -> int:
        params: Dict[str, Any] = {"select": "id", "limit": 1, **(filters or {})}
        try:
            r = self._http.get(f"/{table}", params=params, headers={"Prefer": "count=exact"})
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("count %s failed: %r", table, e)
            raise DataFetchFailure(f"{table}: {e}") from e
        return _total_from_content_range(r.headers.get("content-range"))

    # ---- writes ----

    def _write(self, method: str, table: str, *, params=None, json=None) -> List[Dict[str, Any]]:
        try:
            r = self._http.request(
                method,
                f"/{table}",
                params=params,
                json=json,
                headers={"Prefer": "return=representation"},
            )
            r.raise_for_status()
            return r.json() if r.content else []
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("%s %s failed: %r", method, table, e)
            raise MutationFailure(f"{table}: {e}", step=f"{method.lower()}-{table}") from e

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._write("POST", table, json=row)
        return rows[0] if rows else dict(row)

    def update(self, table: str, row_id: Any, values: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._write("PATCH", table, params={"id": f"eq.{row_id}"}, json=values)
        return rows[0] if rows else dict(values, id=row_id)

    def delete(self, table: str, row_id: Any) -> None:
        self._write("DELETE", table, params={"id": f"eq.{row_id}"})

def get_store(token: Optional[str] = None) -> DataStore:
    """Store bound to settings and (optionally) the signed-in user's token."""
    return DataStore(
        base_url=settings.supabase_url,
        api_key=settings.supabase_anon_key,
        token=token,
        timeout=settings.http_timeout,
    )
