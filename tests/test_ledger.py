from stok.domain.models import StockItem
from stok.infra.repositories import ChecklistRepo, StockLedger
from stok.infra.store import CHECKLISTS, STOCK, MemoryStore
from stok.usecases.checklist import toggle_patient


def _item(name="Solia S 60", serial="ABC123", qty=5, **kw):
    return StockItem(material_name=name, serial_lot_number=serial, quantity=qty, **kw)


def test_add_then_remove_everything_leaves_item_absent(store):
    ledger = StockLedger(store)
    ledger.add(_item(qty=3))
    applied = ledger.remove([{"material_name": "Solia S 60", "serial_lot_number": "ABC123", "quantity": 5}])
    assert applied == 1
    assert ledger.all() == []


def test_partial_remove_decrements(store):
    ledger = StockLedger(store)
    item = _item(qty=5)
    ledger.add(item)
    ledger.remove([{"material_name": "Solia S 60", "serial_lot_number": "ABC123", "quantity": 2}])
    assert ledger.get(item.id).quantity == 3


def test_remove_skips_unmatched_and_non_positive_entries(store):
    ledger = StockLedger(store)
    ledger.add(_item(qty=5))
    applied = ledger.remove([
        {"material_name": "Yok", "serial_lot_number": "X", "quantity": 1},
        {"material_name": "Solia S 60", "serial_lot_number": "ABC123", "quantity": 0},
    ])
    assert applied == 0
    assert ledger.all()[0].quantity == 5


def test_check_duplicate_ignores_case(store):
    ledger = StockLedger(store)
    ledger.add(_item())
    assert ledger.check_duplicate("solia s 60", "abc123")
    assert ledger.check_duplicate("SOLIA S 60", "ABC123")
    assert not ledger.check_duplicate("Solia S 60", "ABC124")


def test_remove_matches_like_duplicate_check_by_default(store):
    ledger = StockLedger(store)
    ledger.add(_item(qty=2))
    ledger.remove([{"material_name": "solia s 60", "serial_lot_number": "abc123", "quantity": 2}])
    assert ledger.all() == []


def test_case_sensitive_remove_policy():
    ledger = StockLedger(MemoryStore(), case_sensitive_remove=True)
    ledger.add(_item(qty=2))
    assert ledger.remove([{"material_name": "solia s 60", "serial_lot_number": "abc123", "quantity": 2}]) == 0
    assert ledger.find("solia s 60", "abc123") is None
    assert ledger.find("Solia S 60", "ABC123") is not None


def test_remove_hits_first_match_in_ledger_order(store):
    ledger = StockLedger(store)
    first, second = _item(qty=1), _item(qty=4)
    ledger.add_many([first, second])
    assert list(ledger.index().values()) == [[first.id, second.id]]
    ledger.remove([_item(qty=1)])
    assert [i.id for i in ledger.all()] == [second.id]


def test_update_and_delete_by_id(store):
    ledger = StockLedger(store)
    item = _item()
    ledger.add(item)
    assert ledger.update_by_id(item.id, item.copy(quantity=9))
    assert ledger.get(item.id).quantity == 9
    assert not ledger.update_by_id("missing", item)
    assert ledger.delete_by_id(item.id)
    assert not ledger.delete_by_id(item.id)
    assert ledger.all() == []


def test_ledger_returns_copies(store):
    ledger = StockLedger(store)
    item = _item(qty=5)
    ledger.add(item)
    item.quantity = 99
    ledger.all()[0].quantity = 42
    assert ledger.all()[0].quantity == 5


def test_rows_without_id_get_a_stable_one(store):
    store.set(STOCK, [{"material_name": "Solia S 60", "serial_lot_number": "ABC123", "quantity": 2}])
    ledger = StockLedger(store)
    first = ledger.all()[0].id
    assert first and ledger.all()[0].id == first
    assert store.get(STOCK)[0]["id"] == first
    assert ledger.delete_by_id(first)
    assert ledger.all() == []


def test_checklist_patients_without_id_can_be_toggled(store):
    store.set(CHECKLISTS, [{"title": "Liste", "patients": [{"name": "Ali"}]}])
    patient_id = ChecklistRepo(store).active().patients[0].id
    assert toggle_patient(store, patient_id).checked
