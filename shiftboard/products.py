# shiftboard/products.py
from __future__ import annotations
import math, re, time, uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .config import Config
from .store import load_json, save_json

Number = Union[int, float, str, None]

PRODUCT_CACHE_FILE = "products_cache_v1.json"

_COUNTRIES = {
    "US": ("US", "USA", "UNITED STATES", "UNITED STATES OF AMERICA"),
    "CA": ("CA", "CAN", "CANADA"),
    "MX": ("MX", "MEX", "MEXICO"),
}


def _first(row: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    # first key whose value is not None (empty strings count as a value)
    for k in keys:
        v = row.get(k)
        if v is not None:
            return v
    return default


@dataclass
class Product:
    """
    One catalog row. Source tables disagree on column names, so each field
    has a fallback chain (see from_row).
    """
    id: str
    item_number: str = ""
    product_name: Optional[str] = None
    name: Optional[str] = None
    customer: Optional[str] = None
    formula: Optional[str] = None
    pack_count: Number = None
    unit_size: Number = None
    unit_size_uom: Optional[str] = None
    container_1: Optional[str] = None
    is_active: bool = True
    special_sampling_flag: bool = False
    special_recipe_flag: bool = False
    line_number: Union[str, int, None] = None
    metal_detector: Union[str, bool, None] = None
    country_code: Optional[str] = None
    usda_flag: bool = False

    @classmethod
    def from_row(cls, r: Dict[str, Any]) -> "Product":
        pid = _first(r, "item_id", "id", "product_id")
        return cls(
            id=str(pid) if pid is not None else uuid.uuid4().hex,
            item_number=str(_first(r, "item_id", "item_number", "itemNumber", "id", default="")),
            product_name=_first(r, "description", "product_name", "name", "product", "itemNumber", "item_number"),
            name=_first(r, "description", "name", "product_name", "product"),
            customer=_first(r, "customer"),
            formula=_first(r, "formula", "formula_name"),
            pack_count=_first(r, "pack_count", "packCount"),
            unit_size=_first(r, "unit_size", "unitSize"),
            unit_size_uom=_first(r, "unit_size_uom", "unitSizeUom"),
            container_1=_first(r, "container_1", "container"),
            is_active=True,
            special_sampling_flag=bool(r.get("special_sampling_flag")),
            special_recipe_flag=bool(r.get("special_recipe_flag")),
            line_number=_first(r, "line_number", "line", "line_no"),
            metal_detector=_first(r, "metal_detector", "md"),
            country_code=_first(r, "country_code", "country"),
            usda_flag=bool(r.get("usda_flag")),
        )

    @property
    def key(self) -> str:
        """Key used by the active-products table."""
        return self.item_number or self.id

    @property
    def display_name(self) -> str:
        return self.product_name or self.name or self.item_number or self.id


def strip_item_number_prefix(value: Optional[str]) -> str:
    if not value:
        return value or ""
    return re.sub(r"^SB", "", str(value), flags=re.IGNORECASE)


def normalize_country_code(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    cleaned = str(code).strip().upper()
    for iso, aliases in _COUNTRIES.items():
        if cleaned in aliases:
            return iso
    return None


def _num_text(v: Any) -> str:
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)


def _to_number(v: Any) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return math.nan


def format_pack_size(pack_count: Number, unit_size: Number, unit_size_uom: Optional[str] = None) -> Optional[str]:
    """'12x 5#', '2 kg', '16 oz'; None without a unit size. Pounds render as '#'."""
    if unit_size is None or unit_size == "":
        return None
    packs = _to_number(pack_count if pack_count is not None else 0)
    size = _num_text(unit_size)
    uom = str(unit_size_uom).strip() if unit_size_uom else ""
    if uom.lower() == "lb":
        uom = "#"
    if uom == "#":
        text = f"{size}{uom}"
    else:
        text = f"{size} {uom}" if uom else size
    if math.isfinite(packs) and packs > 1:
        return f"{_num_text(packs)}x {text}"
    return text


def format_main_line(p: Product) -> str:
    parts = [
        strip_item_number_prefix(p.item_number),
        p.customer,
        p.formula,
        p.container_1,
        format_pack_size(p.pack_count, p.unit_size, p.unit_size_uom),
    ]
    return " | ".join(str(x) for x in parts if x)


def search_products(products: Iterable[Product], query: str, limit: int = 10) -> List[Product]:
    """Item-number hits (whitespace-insensitive) first, then name hits."""
    raw = (query or "").strip().lower()
    q = re.sub(r"\s+", "", raw)
    if not q:
        return []
    by_item: List[Product] = []
    by_name: List[Product] = []
    for p in products:
        item_norm = re.sub(r"\s+", "", (p.item_number or "").lower())
        name_norm = (p.product_name or p.name or "").lower()
        if q in item_norm:
            by_item.append(p)
        elif raw in name_norm:
            by_name.append(p)
    return (by_item + by_name)[:limit]


def find_product(products: Iterable[Product], key: Optional[str]) -> Optional[Product]:
    if not key:
        return None
    for p in products:
        if p.id == key or p.item_number == key:
            return p
    return None


class ProductCache:
    """Raw catalog rows cached on disk with a timestamp; stale after ttl_hours."""
    def __init__(self, path: Path, ttl_hours: float = 24):
        self.path = Path(path)
        self.ttl_secs = float(ttl_hours) * 3600.0

    @classmethod
    def from_config(cls, cfg: Config) -> "ProductCache":
        return cls(Path(cfg.data_dir) / PRODUCT_CACHE_FILE, cfg.product_cache_hours)

    def load(self, now: Optional[float] = None) -> Optional[List[Dict[str, Any]]]:
        blob = load_json(self.path, None)
        if not isinstance(blob, dict) or not isinstance(blob.get("rows"), list):
            return None
        ts = now if now is not None else time.time()
        try:
            age = ts - float(blob.get("ts") or 0)
        except (TypeError, ValueError):
            return None
        if age >= self.ttl_secs:
            return None
        return blob["rows"]

    def save(self, rows: List[Dict[str, Any]], now: Optional[float] = None) -> None:
        save_json(self.path, {"ts": now if now is not None else time.time(), "rows": list(rows)})


def products_from_rows(rows: Iterable[Dict[str, Any]]) -> List[Product]:
    return [Product.from_row(r) for r in rows or [] if isinstance(r, dict)]
