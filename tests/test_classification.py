import pytest

from stok.domain.classification import (
    CRT,
    ICD,
    PACEMAKER,
    classify_device,
    device_summaries,
    group_hierarchically,
    is_icd,
    name_prefix,
)
from stok.domain.models import StockItem


def _item(name, serial="S1", qty=1, expiry=""):
    return StockItem(material_name=name, serial_lot_number=serial, quantity=qty, expiry_date=expiry)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Amvia Sky DR-T", PACEMAKER),
        ("Edora 8 DR", PACEMAKER),
        ("ENITRA 6 SR", PACEMAKER),
        ("Intica 7 VR-T", ICD),
        ("Acticor 7 DR-T DX", ICD),
        ("Intica Neo 5 HF-T", CRT),
        ("Solia S 60", None),
        ("", None),
    ],
)
def test_classify_device(name, expected):
    assert classify_device(name) == expected


def test_pacemaker_wins_over_icd():
    assert not is_icd("Amvia Sky DR-T")


def test_device_summaries_always_three_categories():
    items = [_item("Edora 8 DR", qty=2), _item("Intica 7 VR-T", qty=3), _item("Solia S 60", qty=9)]
    summary = {s.key: s.total_quantity for s in device_summaries(items)}
    assert list(summary) == [PACEMAKER, ICD, CRT]
    assert summary == {PACEMAKER: 2, ICD: 3, CRT: 0}


def test_name_prefix():
    assert name_prefix("Solia S 60") == "Solia"
    assert name_prefix("   ") == ""


def test_group_hierarchically_sums_and_sorts():
    items = [
        _item("solia S 53", "B", 1, ""),
        _item("Solia S 60", "Z", 2, "2026-01-01"),
        _item("Solia S 60", "A", 3, "2025-06-01"),
        _item("Solia S 60", "C", 1, ""),
        _item("Edora 8 DR", "X", 1),
    ]
    groups = group_hierarchically(items)

    assert [g.prefix for g in groups] == ["Edora", "Solia", "solia"]
    solia = groups[1]
    assert solia.total_quantity == 6
    (material,) = solia.materials
    assert material.full_name == "Solia S 60"
    assert material.total_quantity == 6
    # expiry ascending, empty expiry last
    assert [i.serial_lot_number for i in material.items] == ["A", "Z", "C"]
