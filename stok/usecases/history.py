# stok/usecases/history.py
"""
UC: History listing and undo.

Undo reverses one record and then deletes it:

    stock-add      -> delete the added item(s) by id
    stock-remove   -> re-insert the removed item (fresh id, today, no from/to)
    stock-delete   -> same as stock-remove
    stock-edit     -> restore the old values if the item still exists
    case           -> re-insert every consumed material
    checklist      -> not undoable, the record stays

Re-insertion bypasses the duplicate check. Payload entries without a
material name or with a non-positive quantity are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from stok.adapters.parsers import normalize_date
from stok.domain.errors import ValidationError
from stok.domain.models import (
    CASE,
    CHECKLIST,
    HISTORY_TYPES,
    STOCK_ADD,
    STOCK_DELETE,
    STOCK_EDIT,
    STOCK_REMOVE,
    CaseDetails,
    EditDetails,
    HistoryRecord,
    ItemDetails,
    ItemListDetails,
    StockItem,
    new_id,
    today_iso,
)
from stok.infra.logger import log_history, log_system_event, log_transaction
from stok.infra.repositories import HistoryRepo, StockLedger
from stok.infra.store import KeyValueStore

UNDONE = "undone"
NOT_FOUND = "not_found"
NOT_UNDOABLE = "not_undoable"
FAILED = "failed"


@dataclass
class UndoResult:
    status: str
    message: str
    record: Optional[HistoryRecord] = None

    @property
    def ok(self) -> bool:
        return self.status == UNDONE


def list_history(
    store: KeyValueStore,
    record_type: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> List[HistoryRecord]:
    """History newest first, optionally filtered by type and an inclusive date window."""
    if record_type and record_type not in HISTORY_TYPES:
        raise ValidationError(f"Bilinmeyen geçmiş türü: {record_type}")
    start_iso = normalize_date(start) if start else ""
    end_iso = normalize_date(end) if end else ""
    if (start and not start_iso) or (end and not end_iso):
        raise ValidationError("Geçersiz tarih aralığı")

    out = []
    for record in HistoryRepo(store).all():
        if record_type and record.type != record_type:
            continue
        day = record.date[:10]
        if start_iso and day < start_iso:
            continue
        if end_iso and day > end_iso:
            continue
        out.append(record)
    return out


def get_history(store: KeyValueStore, record_id: str) -> Optional[HistoryRecord]:
    return HistoryRepo(store).get(record_id)


def _reinsert(ledger: StockLedger, item: StockItem) -> None:
    if item.material_name and item.quantity > 0:
        ledger.add(item.copy(id=new_id(), date_added=today_iso(), from_="", to=""))


def _apply(ledger: StockLedger, record: HistoryRecord) -> None:
    details = record.details
    if record.type == STOCK_ADD:
        if isinstance(details, ItemDetails):
            ledger.delete_by_id(details.item.id)
        elif isinstance(details, ItemListDetails):
            for item in details.items:
                ledger.delete_by_id(item.id)
    elif record.type in (STOCK_REMOVE, STOCK_DELETE):
        if isinstance(details, ItemDetails):
            _reinsert(ledger, details.item)
    elif record.type == STOCK_EDIT:
        if isinstance(details, EditDetails) and ledger.get(details.old.id) is not None:
            ledger.update_by_id(details.old.id, details.old)
    elif record.type == CASE:
        if isinstance(details, CaseDetails):
            for m in details.case.materials:
                _reinsert(ledger, StockItem(
                    material_name=m.material_name,
                    serial_lot_number=m.serial_lot_number,
                    quantity=m.quantity,
                    ubb_code=m.ubb_code,
                ))


def undo(store: KeyValueStore, record_id: str) -> UndoResult:
    """Reverses one history record.

    Never raises: a missing record, a checklist record and an unexpected
    failure are reported through ``UndoResult.status``. On failure the
    record is kept so the undo can be retried.
    """
    history = HistoryRepo(store)
    record = history.get(record_id)
    if record is None:
        log_history("undo_not_found", record_id, "")
        return UndoResult(NOT_FOUND, "Geçmiş kaydı bulunamadı")
    if record.type == CHECKLIST:
        return UndoResult(NOT_UNDOABLE, "Kontrol listesi kayıtları geri alınamaz", record)

    log_history("undo_start", record.id, record.type)
    try:
        _apply(StockLedger(store), record)
        history.remove(record.id)
    except Exception as e:
        log_transaction("history_undo", {"id": record.id, "type": record.type}, error=str(e))
        log_system_event("history_undo_error", {"id": record.id, "error": str(e)}, level="error")
        return UndoResult(FAILED, f"Geri alma başarısız: {e}", record)

    log_transaction("history_undo", {"id": record.id, "type": record.type}, result="success")
    return UndoResult(UNDONE, "İşlem geri alındı", record)
