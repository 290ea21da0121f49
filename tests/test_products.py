import pytest

from shiftboard.config import Config
from shiftboard.products import (
    PRODUCT_CACHE_FILE,
    Product,
    ProductCache,
    find_product,
    format_main_line,
    format_pack_size,
    normalize_country_code,
    products_from_rows,
    search_products,
    strip_item_number_prefix,
)

ROWS = [
    {"item_id": "SB1234", "description": "Cheddar Snack Mix", "customer": "Acme",
     "formula": "F-9", "container_1": "Bag", "pack_count": 12, "unit_size": 5.0, "unit_size_uom": "lb"},
    {"item_number": "SB 5678", "product_name": "Honey Pretzel", "packCount": 1,
     "unitSize": 2, "unitSizeUom": "kg", "country": "canada"},
    {"id": 77, "name": "Pretzel Bites"},
]


@pytest.fixture
def products():
    return products_from_rows(ROWS)


def test_from_row_fallback_chains(products):
    cheddar, honey, bites = products
    assert cheddar.id == "SB1234"
    assert cheddar.item_number == "SB1234"
    assert cheddar.product_name == "Cheddar Snack Mix"
    assert honey.item_number == "SB 5678"
    assert honey.pack_count == 1
    assert honey.unit_size_uom == "kg"
    assert honey.country_code == "canada"
    assert bites.id == "77"
    assert bites.display_name == "Pretzel Bites"


def test_from_row_without_any_id_gets_random_one():
    a = Product.from_row({"description": "x"})
    b = Product.from_row({"description": "x"})
    assert a.id and b.id and a.id != b.id
    assert a.key == a.id


def test_strip_item_number_prefix():
    assert strip_item_number_prefix("SB1234") == "1234"
    assert strip_item_number_prefix("sb1234") == "1234"
    assert strip_item_number_prefix("X1234") == "X1234"
    assert strip_item_number_prefix(None) == ""


@pytest.mark.parametrize("raw,expected", [
    ("us", "US"), (" USA ", "US"), ("Canada", "CA"), ("MEX", "MX"), ("FR", None), (None, None),
])
def test_normalize_country_code(raw, expected):
    assert normalize_country_code(raw) == expected


def test_format_pack_size():
    assert format_pack_size(12, 5.0, "lb") == "12x 5#"
    assert format_pack_size(1, 2, "kg") == "2 kg"
    assert format_pack_size(None, 16, "oz") == "16 oz"
    assert format_pack_size(4, 2.5, "#") == "4x 2.5#"
    assert format_pack_size(6, None, "oz") is None
    assert format_pack_size(6, "", "oz") is None


def test_format_main_line(products):
    assert format_main_line(products[0]) == "1234 | Acme | F-9 | Bag | 12x 5#"


def test_search_item_number_hits_first(products):
    hits = search_products(products, "pretzel")
    assert [p.display_name for p in hits] == ["Honey Pretzel", "Pretzel Bites"]
    hits = search_products(products, "sb 56")
    assert [p.item_number for p in hits] == ["SB 5678"]
    assert search_products(products, "   ") == []
    assert len(search_products(products, "e", limit=1)) == 1


def test_find_product(products):
    assert find_product(products, "SB1234").display_name == "Cheddar Snack Mix"
    assert find_product(products, "77").display_name == "Pretzel Bites"
    assert find_product(products, "nope") is None
    assert find_product(products, None) is None


def test_product_cache_ttl(tmp_path):
    cache = ProductCache(tmp_path / "products.json", ttl_hours=1)
    assert cache.load() is None
    cache.save(ROWS, now=1000.0)
    assert cache.load(now=1000.0 + 3599) == ROWS
    assert cache.load(now=1000.0 + 3600) is None


def test_product_cache_from_config(tmp_path):
    cfg = Config({"data_dir": str(tmp_path), "product_cache_hours": "2"})
    cache = ProductCache.from_config(cfg)
    assert cache.path == tmp_path / PRODUCT_CACHE_FILE
    cache.save(ROWS, now=0.0)
    assert cache.load(now=2 * 3600 - 1) == ROWS
    assert cache.load(now=2 * 3600) is None
