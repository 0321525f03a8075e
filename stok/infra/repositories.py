# stok/infra/repositories.py
"""
Repositories over the key-value store.

Classes:
- StockLedger
- CaseRepo
- HistoryRepo
- ChecklistRepo
- UserRepo

Every mutating call is a full read-modify-write of one collection. The
repositories never validate: workflows check input first and then expect
these calls to succeed.
"""

from __future__ import annotations

import json
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from stok.config import DEFAULTS
from stok.domain.models import CaseRecord, ChecklistRecord, HistoryRecord, StockItem, new_id
from .logger import log_history, log_ledger
from .store import CASES, CHECKLISTS, HISTORY, STOCK, USER, KeyValueStore


# -------------------------
# Helpers
# -------------------------

def _fold(s: Any) -> str:
    return str(s or "").casefold()


def _rows(store: KeyValueStore, collection: str) -> List[Dict[str, Any]]:
    """Stored records of a collection.

    Rows (and checklist patients) saved without an id get one here and the
    collection is written back, so the id stays the same on later reads.
    """
    rows = store.get(collection)
    missing = False
    for row in rows:
        if not row.get("id"):
            row["id"] = new_id()
            missing = True
        for patient in row.get("patients") or []:
            if isinstance(patient, dict) and not patient.get("id"):
                patient["id"] = new_id()
                missing = True
    if missing:
        store.set(collection, rows)
    return rows


def _entry_fields(entry: Any) -> Tuple[str, str, int]:
    """(material_name, serial_lot_number, quantity) of a dict or object entry."""
    if isinstance(entry, dict):
        name, serial, qty = entry.get("material_name"), entry.get("serial_lot_number"), entry.get("quantity")
    else:
        name = getattr(entry, "material_name", None)
        serial = getattr(entry, "serial_lot_number", None)
        qty = getattr(entry, "quantity", None)
    try:
        qty = int(qty)
    except (TypeError, ValueError):
        qty = 0
    return str(name or ""), str(serial or ""), qty


# -------------------------
# Stock ledger
# -------------------------

class StockLedger:
    def __init__(self, store: KeyValueStore, case_sensitive_remove: Optional[bool] = None):
        self.store = store
        if case_sensitive_remove is None:
            case_sensitive_remove = DEFAULTS.case_sensitive_remove
        self.case_sensitive_remove = case_sensitive_remove

    def all(self) -> List[StockItem]:
        return [StockItem.from_dict(r) for r in _rows(self.store, STOCK)]

    def _save(self, items: Iterable[StockItem]) -> None:
        self.store.set(STOCK, [i.to_dict() for i in items])

    def get(self, item_id: str) -> Optional[StockItem]:
        return next((i for i in self.all() if i.id == item_id), None)

    def add(self, item: StockItem) -> None:
        items = self.all()
        items.append(item)
        self._save(items)
        log_ledger("add", item.material_name, item.serial_lot_number, item.quantity, id=item.id)

    def add_many(self, new_items: Iterable[StockItem]) -> None:
        new_items = list(new_items)
        if not new_items:
            return
        items = self.all()
        items.extend(new_items)
        self._save(items)
        for item in new_items:
            log_ledger("add", item.material_name, item.serial_lot_number, item.quantity, id=item.id)

    def check_duplicate(self, material_name: str, serial_lot_number: str) -> bool:
        """True when an item with the same name and serial exists, ignoring case."""
        key = (_fold(material_name), _fold(serial_lot_number))
        return any((_fold(i.material_name), _fold(i.serial_lot_number)) == key for i in self.all())

    def key(self, material_name: str, serial_lot_number: str) -> Tuple[str, str]:
        if self.case_sensitive_remove:
            return (str(material_name or ""), str(serial_lot_number or ""))
        return (_fold(material_name), _fold(serial_lot_number))

    def index(self, items: Optional[List[StockItem]] = None) -> Dict[Tuple[str, str], List[str]]:
        """Maps (material_name, serial_lot_number) to item ids in ledger order.

        Keys follow the remove match policy. The first id of each list is the
        item ``remove`` and ``find`` pick when the pair is stored more than once.
        """
        if items is None:
            items = self.all()
        idx: Dict[Tuple[str, str], List[str]] = OrderedDict()
        for item in items:
            idx.setdefault(self.key(item.material_name, item.serial_lot_number), []).append(item.id)
        return idx

    def find(self, material_name: str, serial_lot_number: str) -> Optional[StockItem]:
        items = self.all()
        ids = self.index(items).get(self.key(material_name, serial_lot_number))
        if not ids:
            return None
        return next(i for i in items if i.id == ids[0])

    def remove(self, entries: Iterable[Any]) -> int:
        """Decrements stock for each entry; items reaching zero are deleted.

        Entries without a matching item are skipped. Returns the number of
        entries applied.
        """
        items = self.all()
        by_id = {i.id: i for i in items}
        idx = self.index(items)
        applied = 0
        for entry in entries:
            name, serial, qty = _entry_fields(entry)
            if qty <= 0:
                continue
            ids = idx.get(self.key(name, serial))
            if not ids:
                log_ledger("remove_skipped", name, serial, qty)
                continue
            item = by_id[ids[0]]
            item.quantity -= qty
            applied += 1
            if item.quantity <= 0:
                ids.pop(0)
                del by_id[item.id]
                log_ledger("remove_deleted", name, serial, qty, id=item.id)
            else:
                log_ledger("remove", name, serial, qty, id=item.id, remaining=item.quantity)
        self._save(i for i in items if i.id in by_id)
        return applied

    def update_by_id(self, item_id: str, new_item: StockItem) -> bool:
        items = self.all()
        for pos, item in enumerate(items):
            if item.id == item_id:
                items[pos] = new_item
                self._save(items)
                log_ledger("update", new_item.material_name, new_item.serial_lot_number, new_item.quantity, id=item_id)
                return True
        return False

    def delete_by_id(self, item_id: str) -> bool:
        items = self.all()
        kept = [i for i in items if i.id != item_id]
        if len(kept) == len(items):
            return False
        self._save(kept)
        log_ledger("delete", "", "", id=item_id)
        return True

    def clear(self) -> None:
        self._save([])
        log_ledger("clear", "", "")


# -------------------------
# Cases
# -------------------------

class CaseRepo:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def all(self) -> List[CaseRecord]:
        return [CaseRecord.from_dict(r) for r in _rows(self.store, CASES)]

    def add(self, case: CaseRecord) -> None:
        rows = _rows(self.store, CASES)
        rows.append(case.to_dict())
        self.store.set(CASES, rows)

    def get(self, case_id: str) -> Optional[CaseRecord]:
        return next((c for c in self.all() if c.id == case_id), None)


# -------------------------
# History (newest first)
# -------------------------

class HistoryRepo:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def all(self) -> List[HistoryRecord]:
        return [HistoryRecord.from_dict(r) for r in _rows(self.store, HISTORY)]

    def append(self, record: HistoryRecord) -> None:
        rows = _rows(self.store, HISTORY)
        rows.insert(0, record.to_dict())
        self.store.set(HISTORY, rows)
        log_history("append", record.id, record.type, description=record.description)

    def get(self, record_id: str) -> Optional[HistoryRecord]:
        return next((r for r in self.all() if r.id == record_id), None)

    def remove(self, record_id: str) -> bool:
        rows = _rows(self.store, HISTORY)
        kept = [r for r in rows if r.get("id") != record_id]
        if len(kept) == len(rows):
            return False
        self.store.set(HISTORY, kept)
        log_history("remove", record_id, "")
        return True

    def clear(self) -> None:
        self.store.set(HISTORY, [])


# -------------------------
# Checklists
# -------------------------

class ChecklistRepo:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def all(self) -> List[ChecklistRecord]:
        return [ChecklistRecord.from_dict(r) for r in _rows(self.store, CHECKLISTS)]

    def add(self, checklist: ChecklistRecord) -> None:
        rows = _rows(self.store, CHECKLISTS)
        rows.append(checklist.to_dict())
        self.store.set(CHECKLISTS, rows)

    def update(self, checklist: ChecklistRecord) -> bool:
        rows = _rows(self.store, CHECKLISTS)
        for pos, row in enumerate(rows):
            if row.get("id") == checklist.id:
                rows[pos] = checklist.to_dict()
                self.store.set(CHECKLISTS, rows)
                return True
        return False

    def remove(self, checklist_id: str) -> bool:
        rows = _rows(self.store, CHECKLISTS)
        kept = [r for r in rows if r.get("id") != checklist_id]
        if len(kept) == len(rows):
            return False
        self.store.set(CHECKLISTS, kept)
        return True

    def active(self) -> Optional[ChecklistRecord]:
        return next((c for c in self.all() if not c.is_completed), None)


# -------------------------
# Current user (scalar)
# -------------------------

class UserRepo:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def get(self) -> Optional[Dict[str, str]]:
        raw = self.store.get_scalar(USER)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    def save(self, username: str) -> Dict[str, str]:
        data = {"username": username, "login_date": datetime.now().isoformat(timespec="seconds")}
        self.store.set_scalar(USER, json.dumps(data, ensure_ascii=False))
        return data

    def clear(self) -> None:
        self.store.delete_scalar(USER)
