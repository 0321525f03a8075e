import pytest

from stok.domain.errors import ValidationError
from stok.domain.models import CASE, CaseDetails
from stok.infra.repositories import CaseRepo, HistoryRepo, StockLedger
from stok.usecases.case_entry import autofill_material, list_cases, register_case
from stok.usecases.stock_management import add_stock


@pytest.fixture
def stocked(store):
    add_stock(store, "Solia S 60", "ABC123", 2, ubb_code="U-LEAD")
    add_stock(store, "Edora 8 DR", "998877", 1)
    return store


def _m(name, serial, qty):
    return {"material_name": name, "serial_lot_number": serial, "quantity": qty}


def test_register_case_consumes_stock(stocked):
    case = register_case(
        stocked, "Ankara Şehir", "Yılmaz", "Ali Veli",
        [_m("solia s 60", "abc123", 1), _m("Edora 8 DR", "998877", "1"), _m("", "", "")],
        notes="acil",
    )

    assert len(case.materials) == 2
    assert [(i.material_name, i.quantity) for i in StockLedger(stocked).all()] == [("Solia S 60", 1)]
    assert CaseRepo(stocked).get(case.id).patient_name == "Ali Veli"
    record = HistoryRepo(stocked).all()[0]
    assert record.type == CASE
    assert record.description == "Vaka kaydı - Ankara Şehir - Dr. Yılmaz"
    assert isinstance(record.details, CaseDetails)
    assert record.details.case.id == case.id
    assert list_cases(stocked)[0].id == case.id


@pytest.mark.parametrize(
    "hospital,doctor,patient,materials,message",
    [
        ("", "D", "P", [_m("Solia S 60", "ABC123", 1)], "zorunlu"),
        ("H", "D", "P", [], "En az bir"),
        ("H", "D", "P", [_m("Solia S 60", "", 1)], "eksiksiz"),
        ("H", "D", "P", [_m("Solia S 60", "NOPE", 1)], "bulunamadı"),
        ("H", "D", "P", [_m("Solia S 60", "ABC123", 3)], "Yetersiz"),
        ("H", "D", "P", [_m("Solia S 60", "ABC123", 2), _m("SOLIA S 60", "abc123", 1)], "Yetersiz"),
    ],
)
def test_register_case_validation_leaves_everything_untouched(stocked, hospital, doctor, patient, materials, message):
    before = StockLedger(stocked).all()
    history_before = len(HistoryRepo(stocked).all())
    with pytest.raises(ValidationError, match=message):
        register_case(stocked, hospital, doctor, patient, materials)
    assert StockLedger(stocked).all() == before
    assert CaseRepo(stocked).all() == []
    assert len(HistoryRepo(stocked).all()) == history_before


def test_autofill_material(stocked):
    assert autofill_material(stocked, "abc").serial_lot_number == "ABC123"
    assert autofill_material(stocked, "99").material_name == "Edora 8 DR"
    assert autofill_material(stocked, "8").serial_lot_number == "998877"
    assert autofill_material(stocked, "zzz") is None
    assert autofill_material(stocked, "  ") is None


def test_autofill_requires_single_match(store):
    add_stock(store, "Solia S 60", "LOT-1", 1)
    add_stock(store, "Solia S 53", "LOT-2", 1)
    assert autofill_material(store, "lot") is None
