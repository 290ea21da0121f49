# shiftboard/config.py
from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _as_float(v: Any, default: float) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return default
    return str(v).strip()


class Config:
    """
    Simple config holder that can be constructed from environment variables.
    - Attribute access: cfg.key
    - Mapping access:   cfg["key"], cfg.get("key", default)
    """

    _DEFAULTS: Dict[str, Any] = {
        # hosted backend
        "supabase_url": "",
        "supabase_api_key": "",
        "http_timeout": 20.0,

        # local state
        "data_dir": "data",
        "rotation_state_path": "data/samples_rotation_v1.json",
        "heartbeat_dir": "data/out",
        "peanut_schedule_path": "data/peanut_test_schedule.json",
        "product_cache_hours": 24,

        # floor clock
        "production_day_start_hour": 7,
        "due_check_seconds": 60,
    }

    _ENV_MAP: Dict[str, str] = {
        "SUPABASE_URL": "supabase_url",
        "SUPABASE_API_KEY": "supabase_api_key",
        "HTTP_TIMEOUT": "http_timeout",
        "SHIFTBOARD_DATA_DIR": "data_dir",
        "ROTATION_STATE_PATH": "rotation_state_path",
        "HEARTBEAT_DIR": "heartbeat_dir",
        "PEANUT_SCHEDULE_PATH": "peanut_schedule_path",
        "PRODUCT_CACHE_HOURS": "product_cache_hours",
        "PRODUCTION_DAY_START_HOUR": "production_day_start_hour",
        "DUE_CHECK_SECONDS": "due_check_seconds",
    }

    _CASTERS: Dict[str, Any] = {
        "supabase_url": _as_str,
        "supabase_api_key": _as_str,
        "http_timeout": _as_float,
        "data_dir": _as_str,
        "rotation_state_path": _as_str,
        "heartbeat_dir": _as_str,
        "peanut_schedule_path": _as_str,
        "product_cache_hours": _as_int,
        "production_day_start_hour": _as_int,
        "due_check_seconds": _as_int,
    }

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        merged = dict(self._DEFAULTS)
        merged.update(data or {})
        for k, caster in self._CASTERS.items():
            merged[k] = caster(merged.get(k), self._DEFAULTS[k])
        if not 0 <= merged["production_day_start_hour"] <= 23:
            merged["production_day_start_hour"] = self._DEFAULTS["production_day_start_hour"]
        self._d = merged

    # --- construction helpers ---

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """
        Build Config from process environment (plus defaults).
        Only whitelisted env vars are read via _ENV_MAP.
        """
        env = environ if environ is not None else os.environ
        data: Dict[str, Any] = {}
        for env_key, cfg_key in cls._ENV_MAP.items():
            if env_key in env:
                data[cfg_key] = env[env_key]
        return cls(data)

    @property
    def has_backend(self) -> bool:
        return bool(self._d["supabase_url"] and self._d["supabase_api_key"])

    # --- dict-like API ---

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._d)

    def get(self, key: str, default: Any = None) -> Any:
        return self._d.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self._d[key]

    def __contains__(self, key: str) -> bool:
        return key in self._d

    # --- attribute API ---

    def __getattr__(self, key: str) -> Any:
        try:
            return self._d[key]
        except KeyError as e:
            raise AttributeError(key) from e

    def __repr__(self) -> str:
        # keep the key out of logs
        shown = dict(self._d)
        if shown.get("supabase_api_key"):
            shown["supabase_api_key"] = "***"
        return f"Config({shown!r})"
