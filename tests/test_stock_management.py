import pytest

from stok.domain.errors import ValidationError
from stok.domain.models import STOCK_ADD, STOCK_DELETE, STOCK_EDIT, STOCK_REMOVE, EditDetails, ItemDetails
from stok.infra.repositories import HistoryRepo, StockLedger
from stok.usecases.session import login
from stok.usecases.stock_management import (
    add_stock,
    delete_stock,
    edit_stock,
    register_movement,
    remove_stock,
)


def test_add_stock_records_history(store):
    login(store, "Ayşe")
    item = add_stock(store, " Solia S 60 ", "ABC123", "3", expiry_date="10.03.2026", ubb_code="U1")

    assert StockLedger(store).all() == [item]
    assert item.material_name == "Solia S 60"
    assert item.expiry_date == "2026-03-10"
    (record,) = HistoryRepo(store).all()
    assert record.type == STOCK_ADD
    assert record.description == "Solia S 60 eklendi (3 adet) - Ayşe"
    assert isinstance(record.details, ItemDetails)
    assert record.details.item.id == item.id


@pytest.mark.parametrize(
    "name,serial,qty",
    [("", "ABC", 1), ("Solia", "  ", 1), ("Solia", "ABC", 0), ("Solia", "ABC", -3), ("Solia", "ABC", "iki")],
)
def test_add_stock_validation(store, name, serial, qty):
    with pytest.raises(ValidationError):
        add_stock(store, name, serial, qty)
    assert StockLedger(store).all() == []
    assert HistoryRepo(store).all() == []


def test_add_stock_rejects_duplicates_ignoring_case(store):
    add_stock(store, "Solia S 60", "ABC123", 1)
    with pytest.raises(ValidationError, match="zaten stokta"):
        add_stock(store, "SOLIA s 60", "abc123", 1)
    assert len(StockLedger(store).all()) == 1


def test_remove_stock(store):
    add_stock(store, "Solia S 60", "ABC123", 3)
    removed = remove_stock(store, "solia s 60", "ABC123", 2)

    assert removed.quantity == 2
    assert StockLedger(store).all()[0].quantity == 1
    assert HistoryRepo(store).all()[0].type == STOCK_REMOVE

    remove_stock(store, "Solia S 60", "ABC123", 1)
    assert StockLedger(store).all() == []


def test_remove_stock_requires_presence_and_quantity(store):
    add_stock(store, "Solia S 60", "ABC123", 1)
    with pytest.raises(ValidationError, match="Yetersiz stok"):
        remove_stock(store, "Solia S 60", "ABC123", 2)
    with pytest.raises(ValidationError, match="bulunamadı"):
        remove_stock(store, "Solia S 60", "NOPE", 1)
    assert StockLedger(store).all()[0].quantity == 1
    assert len(HistoryRepo(store).all()) == 1


def test_register_movement_direction_follows_current_user(store):
    login(store, "Ayşe")
    kind, item = register_movement(store, "Solia S 60", "ABC123", 2, from_="Depo", to="Ayşe")
    assert kind == "add"
    assert (item.from_, item.to) == ("Depo", "Ayşe")

    kind, item = register_movement(store, "Solia S 60", "ABC123", 1, from_="Ayşe", to="Hastane")
    assert kind == "remove"
    assert StockLedger(store).all()[0].quantity == 1

    with pytest.raises(ValidationError, match="kendi adınızı"):
        register_movement(store, "Solia S 60", "ABC123", 1, from_="Depo", to="Hastane")


def test_register_movement_needs_login(store):
    with pytest.raises(ValidationError):
        register_movement(store, "Solia S 60", "ABC123", 1, to="Ayşe")


def test_delete_stock(store):
    item = add_stock(store, "Solia S 60", "ABC123", 4)
    deleted = delete_stock(store, item.id)
    assert deleted.quantity == 4
    assert StockLedger(store).all() == []
    record = HistoryRepo(store).all()[0]
    assert record.type == STOCK_DELETE
    assert record.description.startswith("Solia S 60 silindi (4 adet)")
    with pytest.raises(ValidationError):
        delete_stock(store, item.id)


def test_edit_stock_keeps_blank_fields(store):
    item = add_stock(store, "Solia S 60", "ABC123", 4, ubb_code="U1", expiry_date="2026-01-01")
    new = edit_stock(store, item.id, serial_lot_number="", quantity=7)

    assert (new.id, new.serial_lot_number, new.ubb_code, new.expiry_date, new.quantity) == (
        item.id, "ABC123", "U1", "2026-01-01", 7,
    )
    record = HistoryRepo(store).all()[0]
    assert record.type == STOCK_EDIT
    assert isinstance(record.details, EditDetails)
    assert record.details.old.quantity == 4
    assert record.details.new.quantity == 7


def test_edit_stock_rejects_bad_values(store):
    a = add_stock(store, "Solia S 60", "A", 1)
    add_stock(store, "Solia S 60", "B", 1)
    with pytest.raises(ValidationError):
        edit_stock(store, a.id, quantity=0)
    with pytest.raises(ValidationError):
        edit_stock(store, a.id, serial_lot_number="b")
    with pytest.raises(ValidationError):
        edit_stock(store, "missing", quantity=1)
    assert StockLedger(store).get(a.id).serial_lot_number == "A"


@pytest.mark.parametrize("raw", ["31.02.2025", "99.99.2025", "a.b.c"])
def test_add_stock_rejects_impossible_expiry(store, raw):
    with pytest.raises(ValidationError):
        add_stock(store, "Solia S 60", "ABC123", 1, expiry_date=raw)
    assert StockLedger(store).all() == []
