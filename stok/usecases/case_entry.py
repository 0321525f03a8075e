# stok/usecases/case_entry.py
"""
UC: Register an implant case.

Validation happens before anything is written: required header fields, at
least one complete material line, and for every material a stocked item
with enough quantity. Only then is stock decremented, the case stored and a
``case`` history entry appended.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Tuple

from stok.adapters.parsers import normalize_date, parse_quantity
from stok.domain.errors import ValidationError
from stok.domain.models import CASE, CaseDetails, CaseMaterial, CaseRecord, HistoryRecord, StockItem, today_iso
from stok.infra.logger import log_system_event, log_transaction
from stok.infra.repositories import CaseRepo, HistoryRepo, StockLedger
from stok.infra.store import KeyValueStore


def _material(entry: Any) -> CaseMaterial:
    if isinstance(entry, CaseMaterial):
        return entry
    if isinstance(entry, dict):
        return CaseMaterial(
            material_name=str(entry.get("material_name") or "").strip(),
            serial_lot_number=str(entry.get("serial_lot_number") or "").strip(),
            quantity=parse_quantity(entry.get("quantity")),
            ubb_code=str(entry.get("ubb_code") or "").strip(),
        )
    raise ValidationError(f"Geçersiz malzeme satırı: {entry!r}")


def _complete(materials: Iterable[Any]) -> List[CaseMaterial]:
    return [
        m for m in (_material(e) for e in materials)
        if m.material_name and m.serial_lot_number and m.quantity > 0
    ]


def register_case(
    store: KeyValueStore,
    hospital_name: str,
    doctor_name: str,
    patient_name: str,
    materials: Iterable[Any],
    notes: Optional[str] = None,
    date: Optional[str] = None,
) -> CaseRecord:
    """Validates and stores a case, taking its materials out of stock.

    Raises:
        ValidationError: missing hospital/doctor/patient, no complete
            material, material not stocked, or not enough quantity.
    """
    log_system_event("case_register_start", {"hospital": hospital_name, "doctor": doctor_name})
    try:
        hospital, doctor, patient = ((v or "").strip() for v in (hospital_name, doctor_name, patient_name))
        if not (hospital and doctor and patient):
            raise ValidationError("Lütfen tüm zorunlu alanları doldurun")
        materials = list(materials)
        if not materials:
            raise ValidationError("En az bir malzeme ekleyin")
        valid = _complete(materials)
        if not valid:
            raise ValidationError("Lütfen malzeme bilgilerini eksiksiz doldurun")

        ledger = StockLedger(store)
        items = ledger.all()
        by_id = {i.id: i for i in items}
        idx = ledger.index(items)

        # total requested per stocked pair
        wanted: Dict[Tuple[str, str], int] = OrderedDict()
        not_in_stock: List[str] = []
        for m in valid:
            key = ledger.key(m.material_name, m.serial_lot_number)
            if not idx.get(key):
                not_in_stock.append(f"{m.material_name} ({m.serial_lot_number})")
                continue
            wanted[key] = wanted.get(key, 0) + m.quantity
        if not_in_stock:
            raise ValidationError(f"Bu malzemeler stokta bulunamadı: {', '.join(not_in_stock)}")

        insufficient: List[str] = []
        for key, qty in wanted.items():
            item = by_id[idx[key][0]]
            if item.quantity < qty:
                insufficient.append(f"{item.material_name} (Stok: {item.quantity}, İstenilen: {qty})")
        if insufficient:
            raise ValidationError(f"Yetersiz stok: {', '.join(insufficient)}")

        ledger.remove(valid)
        day = normalize_date(date) or today_iso()
        case = CaseRecord(
            hospital_name=hospital,
            doctor_name=doctor,
            patient_name=patient,
            materials=valid,
            date=day,
            notes=(notes or "").strip() or None,
        )
        CaseRepo(store).add(case)
        HistoryRepo(store).append(HistoryRecord(
            type=CASE,
            description=f"Vaka kaydı - {hospital} - Dr. {doctor}",
            details=CaseDetails(CaseRecord.from_dict(case.to_dict())),
            date=day,
        ))

        log_transaction("case_register", case.to_dict(), result={"materials": len(valid)})
        log_system_event("case_register_success", {"id": case.id, "materials": len(valid)})
        return case
    except Exception as e:
        log_transaction("case_register", {"hospital": hospital_name, "doctor": doctor_name}, error=str(e))
        log_system_event("case_register_error", {"error": str(e)}, level="error")
        raise


def autofill_material(store: KeyValueStore, partial_serial: str) -> Optional[StockItem]:
    """The only stocked item whose serial/lot contains ``partial_serial``.

    Case-insensitive; None when the text is blank or matches zero or
    several items.
    """
    needle = (partial_serial or "").strip().casefold()
    if not needle:
        return None
    matches = [i for i in StockLedger(store).all() if needle in i.serial_lot_number.casefold()]
    return matches[0] if len(matches) == 1 else None


def list_cases(store: KeyValueStore) -> List[CaseRecord]:
    """Stored cases, newest first."""
    return sorted(CaseRepo(store).all(), key=lambda c: c.date, reverse=True)
