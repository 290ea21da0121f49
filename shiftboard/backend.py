# shiftboard/backend.py
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests

from .logging_utils import warn
from .production import deterministic_production_day_uuid, production_day_key

JSON = Dict[str, Any]

PRODUCT_TABLES: Sequence[str] = ("finished_products", "products", "active_products", "bulk_production_labels")
MISSING_CONFIG = "missing Supabase config"


class BackendError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Backend:
    """
    Thin client for the hosted REST API (PostgREST-style tables under /rest/v1
    plus object storage under /storage/v1).
    """
    def __init__(self, url: str, api_key: str, timeout: float = 20.0,
                 session: Optional[requests.Session] = None):
        self.base = (url or "").rstrip("/")
        self.api_key = api_key or ""
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        })

    @classmethod
    def from_config(cls, cfg) -> "Backend":
        return cls(cfg.supabase_url, cfg.supabase_api_key, timeout=cfg.http_timeout)

    @property
    def configured(self) -> bool:
        return bool(self.base and self.api_key)

    # --- raw request ---

    def _request(self, method: str, path: str,
                 params: Optional[Dict[str, Any]] = None,
                 json: Any = None,
                 headers: Optional[Dict[str, str]] = None) -> requests.Response:
        if not self.configured:
            raise BackendError(MISSING_CONFIG)
        url = f"{self.base}{path}"
        try:
            resp = self.session.request(method, url, params=params, json=json,
                                        headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise BackendError(str(e)) from e
        if not resp.ok:
            body = resp.text
            raise BackendError(body or resp.reason or f"HTTP {resp.status_code}",
                               status=resp.status_code, details=body)
        return resp

    def _rows(self, table: str, params: Dict[str, Any]) -> List[JSON]:
        resp = self._request("GET", f"/rest/v1/{table}", params=params)
        data = resp.json() if resp.content else []
        return data if isinstance(data, list) else []

    def _update(self, table: str, match: Dict[str, Any], payload: JSON) -> None:
        params = {k: f"eq.{v}" for k, v in match.items()}
        self._request("PATCH", f"/rest/v1/{table}", params=params, json=payload,
                      headers={"Prefer": "return=minimal"})

    def _insert(self, table: str, payload: Any, returning: bool = False) -> List[JSON]:
        prefer = "return=representation" if returning else "return=minimal"
        resp = self._request("POST", f"/rest/v1/{table}", json=payload, headers={"Prefer": prefer})
        if not returning or not resp.content:
            return []
        data = resp.json()
        return data if isinstance(data, list) else [data]

    def _upsert_row(self, table: str, key: str, value: Any, payload: JSON) -> None:
        # lookup, then update or insert (no bulk upsert on the hosted plan)
        found = self._rows(table, {"select": key, key: f"eq.{value}", "limit": 1})
        if found:
            self._update(table, {key: value}, payload)
        else:
            self._insert(table, payload)

    # --- active products ---

    def fetch_active_product_ids(self) -> List[str]:
        """Active item ids ordered by sort_order (nulls last). Empty on any error."""
        try:
            rows = self._rows("active_products", {
                "select": "item_id,sort_order",
                "is_active": "eq.true",
                "order": "sort_order.asc.nullslast",
            })
        except BackendError as e:
            warn(f"fetch_active_product_ids: {e.message}")
            return []
        return [str(r["item_id"]) for r in rows if r.get("item_id")]

    def set_active_product(self, item_id: str, is_active: bool, updated_by: Optional[str] = None) -> None:
        payload = {
            "item_id": item_id,
            "is_active": is_active,
            "updated_by": updated_by,
            "updated_at": _now_iso(),
        }
        self._upsert_row("active_products", "item_id", item_id, payload)

    def upsert_active_products(self, item_ids: Iterable[str], updated_by: Optional[str] = None) -> None:
        for item_id in item_ids or []:
            self.set_active_product(item_id, True, updated_by)

    def set_availability(self, item_id: str, is_available: bool, updated_by: Optional[str] = None) -> None:
        payload = {
            "item_id": item_id,
            "is_active": True,
            "is_available": is_available,
            "updated_by": updated_by,
            "updated_at": _now_iso(),
        }
        self._upsert_row("active_products", "item_id", item_id, payload)

    def fetch_availability_map(self) -> Dict[str, bool]:
        try:
            rows = self._rows("active_products", {"select": "item_id,is_available"})
        except BackendError as e:
            warn(f"fetch_availability_map: {e.message}")
            return {}
        return {str(r["item_id"]): bool(r.get("is_available")) for r in rows if r.get("item_id")}

    def set_product_order(self, item_ids: Sequence[str], updated_by: Optional[str] = None) -> None:
        """Write sort_order = position for each id; raises the first failure after trying all."""
        if not item_ids:
            return
        now = _now_iso()
        first: Optional[BackendError] = None
        for index, item_id in enumerate(item_ids):
            try:
                self._update("active_products", {"item_id": item_id},
                             {"sort_order": index, "updated_by": updated_by, "updated_at": now})
            except BackendError as e:
                if first is None:
                    first = e
        if first is not None:
            raise first

    # --- catalog ---

    def fetch_products(self, tables: Sequence[str] = PRODUCT_TABLES) -> List[JSON]:
        for table in tables:
            try:
                rows = self._rows(table, {"select": "*"})
            except BackendError as e:
                warn(f"error fetching {table}: {e.message}")
                continue
            if rows:
                return rows
        return []

    # --- timers ---

    def load_timers(self) -> Optional[JSON]:
        try:
            rows = self._rows("timers", {"select": "*", "limit": 1})
        except BackendError as e:
            warn(f"no timers row loaded: {e.message}")
            return None
        return rows[0] if rows else None

    def save_timers(self, row: JSON, row_id: Any = None) -> Any:
        """Update the timers row by id, or insert one. Returns the row id."""
        if row_id is not None:
            self._update("timers", {"id": row_id}, row)
            return row_id
        created = self._insert("timers", [row], returning=True)
        return created[0].get("id") if created else None

    # --- samples / production days ---

    def insert_sample_record(self, payload: JSON) -> JSON:
        try:
            self._insert("sample_records", payload)
        except BackendError as e:
            return {"ok": False, "error": e.message}
        return {"ok": True}

    def resolve_production_day_id(self, sampled_at: str, start_hour: int = 7) -> JSON:
        try:
            when = datetime.fromisoformat(sampled_at.replace("Z", "+00:00"))
        except (AttributeError, ValueError):
            return {"ok": False, "error": f"Invalid sampled_at timestamp: {sampled_at}"}
        if when.tzinfo is not None:
            when = when.astimezone().replace(tzinfo=None)
        key = production_day_key(when, start_hour)
        day_id = deterministic_production_day_uuid(key.shift_date_iso, key.shift_number)
        try:
            self._request("POST", "/rest/v1/production_days", json={
                "id": day_id,
                "lot_code": key.lot_code,
                "shift_date": key.shift_date_iso,
                "shift_number": key.shift_number,
            }, headers={"Prefer": "return=representation,resolution=merge-duplicates"})
        except BackendError as e:
            return {"ok": False, "error": e.message}
        return {"ok": True, "id": day_id}

    # --- object storage ---

    def download_object(self, bucket: str, path: str) -> str:
        resp = self._request("GET", f"/storage/v1/object/{bucket}/{path}")
        return resp.text
