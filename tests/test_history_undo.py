from datetime import date

import pandas as pd
import pytest

from stok.domain.errors import ValidationError
from stok.domain.models import (
    STOCK_ADD,
    STOCK_REMOVE,
    HistoryRecord,
    ItemDetails,
    StockItem,
)
from stok.infra.repositories import HistoryRepo, StockLedger
from stok.usecases.case_entry import register_case
from stok.usecases.excel import import_stock
from stok.usecases.history import FAILED, NOT_FOUND, NOT_UNDOABLE, UNDONE, get_history, list_history, undo
from stok.usecases.stock_management import add_stock, delete_stock, edit_stock, remove_stock


def _latest(store):
    return HistoryRepo(store).all()[0]


def test_undo_add_deletes_the_item(store):
    add_stock(store, "Solia S 60", "ABC123", 2)
    res = undo(store, _latest(store).id)
    assert res.status == UNDONE and res.ok
    assert StockLedger(store).all() == []
    assert HistoryRepo(store).all() == []


def test_undo_remove_and_delete_reinsert_with_fresh_id(store):
    item = add_stock(store, "Solia S 60", "ABC123", 3, from_="Depo", to="Ayse")
    remove_stock(store, "Solia S 60", "ABC123", 3)
    assert StockLedger(store).all() == []

    undo(store, _latest(store).id)
    (back,) = StockLedger(store).all()
    assert back.quantity == 3 and back.id != item.id
    assert back.from_ == "" and back.to == ""
    assert back.date_added == date.today().isoformat()

    delete_stock(store, back.id)
    undo(store, _latest(store).id)
    assert StockLedger(store).all()[0].quantity == 3


def test_undo_reinsert_bypasses_duplicate_check(store):
    add_stock(store, "Solia S 60", "ABC123", 3)
    remove_stock(store, "Solia S 60", "ABC123", 1)
    undo(store, _latest(store).id)
    assert sorted(i.quantity for i in StockLedger(store).all()) == [1, 2]


def test_undo_edit_restores_old_values(store):
    item = add_stock(store, "Solia S 60", "ABC123", 3, ubb_code="U1")
    edit_stock(store, item.id, serial_lot_number="XYZ", quantity=9)
    undo(store, _latest(store).id)
    restored = StockLedger(store).get(item.id)
    assert (restored.serial_lot_number, restored.quantity, restored.ubb_code) == ("ABC123", 3, "U1")


def test_undo_edit_of_vanished_item_is_a_noop(store):
    item = add_stock(store, "Solia S 60", "ABC123", 3)
    edit_stock(store, item.id, quantity=9)
    edit_record = _latest(store)
    StockLedger(store).delete_by_id(item.id)
    assert undo(store, edit_record.id).ok
    assert StockLedger(store).all() == []


def test_undo_case_readds_materials_and_second_undo_is_noop(store):
    add_stock(store, "Solia S 60", "ABC123", 1)
    add_stock(store, "Edora 8 DR", "998877", 2)
    register_case(store, "H", "D", "P", [
        {"material_name": "Solia S 60", "serial_lot_number": "ABC123", "quantity": 1},
        {"material_name": "Edora 8 DR", "serial_lot_number": "998877", "quantity": 2},
    ])
    assert StockLedger(store).all() == []
    case_record = _latest(store)

    assert undo(store, case_record.id).ok
    assert sorted((i.material_name, i.quantity) for i in StockLedger(store).all()) == [
        ("Edora 8 DR", 2), ("Solia S 60", 1),
    ]
    assert HistoryRepo(store).get(case_record.id) is None

    again = undo(store, case_record.id)
    assert again.status == NOT_FOUND
    assert len(StockLedger(store).all()) == 2


def test_undo_import_deletes_every_imported_item(store, tmp_path):
    path = tmp_path / "stok.xlsx"
    pd.DataFrame({
        "MaterialName": ["Solia S 60", "Edora 8 DR"],
        "SerialLotNumber": ["A1", "B2"],
        "Quantity": [1, 1],
    }).to_excel(path, index=False)
    keep = add_stock(store, "Intica 7 VR-T", "C3", 1)
    import_stock(store, str(path))
    assert len(StockLedger(store).all()) == 3

    undo(store, _latest(store).id)
    assert [i.id for i in StockLedger(store).all()] == [keep.id]


def test_checklist_records_are_not_undoable(store):
    HistoryRepo(store).append(HistoryRecord("checklist", "Kontrol listesi tamamlandı - 1/1 hasta kontrol edildi"))
    record = _latest(store)
    assert undo(store, record.id).status == NOT_UNDOABLE
    assert HistoryRepo(store).get(record.id) is not None


def test_incomplete_payload_skips_reinsertion(store):
    repo = HistoryRepo(store)
    repo.append(HistoryRecord(STOCK_REMOVE, "eski kayıt", ItemDetails(StockItem("", "X", 1))))
    repo.append(HistoryRecord(STOCK_REMOVE, "detaysız"))
    for record in repo.all():
        assert undo(store, record.id).ok
    assert StockLedger(store).all() == []
    assert repo.all() == []


def test_failed_undo_keeps_the_record(store, monkeypatch):
    add_stock(store, "Solia S 60", "ABC123", 1)
    record = _latest(store)

    def boom(self, item_id):
        raise RuntimeError("disk dolu")

    monkeypatch.setattr(StockLedger, "delete_by_id", boom)
    res = undo(store, record.id)
    assert res.status == FAILED
    assert "disk dolu" in res.message
    assert HistoryRepo(store).get(record.id) is not None


def test_list_history_filters(store):
    repo = HistoryRepo(store)
    repo.append(HistoryRecord(STOCK_ADD, "a", date="2025-01-05"))
    repo.append(HistoryRecord(STOCK_REMOVE, "b", date="2025-02-10"))
    repo.append(HistoryRecord(STOCK_ADD, "c", date="2025-03-15"))

    assert [r.description for r in list_history(store)] == ["c", "b", "a"]
    assert [r.description for r in list_history(store, STOCK_ADD)] == ["c", "a"]
    assert [r.description for r in list_history(store, start="2025-02-10", end="15.03.2025")] == ["c", "b"]
    with pytest.raises(ValidationError):
        list_history(store, "bilinmeyen")


def test_get_history(store):
    add_stock(store, "Solia S 60", "ABC123", 1)
    record = _latest(store)
    assert get_history(store, record.id).description == record.description
    assert get_history(store, "yok") is None
