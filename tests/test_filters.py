import pytest

from stok.domain.errors import ValidationError
from stok.domain.filters import build_stock_view, filter_items, normalize_filters
from stok.domain.models import StockItem


ITEMS = [
    StockItem("Solia S 60", "L1", 2, ubb_code="UBB-LEAD"),
    StockItem("Safesheath II 7F", "SH1", 5),
    StockItem("Intica 7 VR-T", "1111", 1, expiry_date="2026-05-01"),
    StockItem("Amvia Sky DR-T", "2222", 1, expiry_date="2025-12-01"),
    StockItem("Intica Neo 5 HF-T", "3333", 1),
]


def _names(items):
    return [i.material_name for i in items]


def test_no_search_no_filters_returns_everything():
    assert _names(filter_items(ITEMS)) == _names(ITEMS)


def test_lead_or_icd_excludes_sheath_only_items():
    out = _names(filter_items(ITEMS, filters=["lead", "icd"]))
    assert out == ["Solia S 60", "Intica 7 VR-T"]
    assert "Safesheath II 7F" not in out
    assert "Amvia Sky DR-T" not in out


def test_filters_are_or_combined_and_case_insensitive():
    assert _names(filter_items(ITEMS, filters=["SHEATH", "crt"])) == ["Safesheath II 7F", "Intica Neo 5 HF-T"]


def test_search_matches_name_serial_or_ubb():
    assert _names(filter_items(ITEMS, search="  ubb-lead ")) == ["Solia S 60"]
    assert _names(filter_items(ITEMS, search="2222")) == ["Amvia Sky DR-T"]
    assert _names(filter_items(ITEMS, search="intica")) == ["Intica 7 VR-T", "Intica Neo 5 HF-T"]


def test_search_and_filters_both_apply():
    assert _names(filter_items(ITEMS, search="intica", filters=["crt"])) == ["Intica Neo 5 HF-T"]


def test_unknown_filter_is_rejected():
    with pytest.raises(ValidationError):
        normalize_filters(["lead", "battery"])


def test_build_stock_view():
    view = build_stock_view(ITEMS, filters=["pacemaker", "icd"])
    assert view.item_count == 2
    assert view.total_quantity == 2
    assert view.next_expiry == "2025-12-01"
    assert [d.total_quantity for d in view.devices] == [1, 1, 0]
    assert [g.prefix for g in view.groups] == ["Amvia", "Intica"]


def test_build_stock_view_empty():
    view = build_stock_view([], search="x")
    assert view.items == [] and view.next_expiry is None
    assert len(view.devices) == 3
