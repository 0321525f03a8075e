# stok/domain/models.py
"""
Domain models (dataclasses).

Important:
- The store only keeps plain dictionaries (JSON). Every model knows how to
  go to and come back from a dict via ``to_dict`` / ``from_dict``.
- ``from_dict`` is lenient: missing keys get empty defaults, so records
  written by older versions still load.
- History payloads are a tagged union (``ItemDetails``, ``ItemListDetails``,
  ``EditDetails``, ``CaseDetails``, ``ChecklistDetails``) serialised with a
  ``kind`` key.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from typing import Any, ClassVar, Dict, List, Optional, Union


def new_id() -> str:
    return uuid.uuid4().hex


def today_iso() -> str:
    return date.today().isoformat()


def _text(val: Any) -> str:
    if val is None:
        return ""
    return str(val)


def _opt_text(val: Any) -> Optional[str]:
    if val is None:
        return None
    s = str(val)
    return s or None


def _int(val: Any) -> int:
    try:
        return int(val)
    except (TypeError, ValueError):
        return 0


# -------------------------
# Stock
# -------------------------

@dataclass
class StockItem:
    """One lot/serial of a material held in stock."""
    material_name: str
    serial_lot_number: str
    quantity: int
    ubb_code: str = ""
    expiry_date: str = ""          # "" or YYYY-MM-DD
    date_added: str = field(default_factory=today_iso)
    from_: str = ""                # provenance ("Kimden")
    to: str = ""                   # destination ("Kime")
    material_code: Optional[str] = None
    id: str = field(default_factory=new_id)

    def copy(self, **changes: Any) -> "StockItem":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["from"] = d.pop("from_")
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StockItem":
        return cls(
            id=_text(d.get("id")) or new_id(),
            material_name=_text(d.get("material_name")),
            serial_lot_number=_text(d.get("serial_lot_number")),
            quantity=_int(d.get("quantity")),
            ubb_code=_text(d.get("ubb_code")),
            expiry_date=_text(d.get("expiry_date")),
            date_added=_text(d.get("date_added")) or today_iso(),
            from_=_text(d.get("from")),
            to=_text(d.get("to")),
            material_code=_opt_text(d.get("material_code")),
        )


# -------------------------
# Case
# -------------------------

@dataclass
class CaseMaterial:
    material_name: str
    serial_lot_number: str
    quantity: int
    ubb_code: str = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CaseMaterial":
        return cls(
            material_name=_text(d.get("material_name")),
            serial_lot_number=_text(d.get("serial_lot_number")),
            quantity=_int(d.get("quantity")),
            ubb_code=_text(d.get("ubb_code")),
        )


@dataclass
class CaseRecord:
    """An implant case and the materials it consumed."""
    hospital_name: str
    doctor_name: str
    patient_name: str
    materials: List[CaseMaterial] = field(default_factory=list)
    date: str = field(default_factory=today_iso)
    notes: Optional[str] = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CaseRecord":
        return cls(
            id=_text(d.get("id")) or new_id(),
            date=_text(d.get("date")),
            hospital_name=_text(d.get("hospital_name")),
            doctor_name=_text(d.get("doctor_name")),
            patient_name=_text(d.get("patient_name")),
            notes=_opt_text(d.get("notes")),
            materials=[CaseMaterial.from_dict(m) for m in d.get("materials") or [] if isinstance(m, dict)],
        )


# -------------------------
# Checklist
# -------------------------

@dataclass
class ChecklistPatient:
    name: str
    note: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    hospital: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    checked: bool = False
    id: str = field(default_factory=new_id)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ChecklistPatient":
        return cls(
            id=_text(d.get("id")) or new_id(),
            name=_text(d.get("name")),
            note=_opt_text(d.get("note")),
            phone=_opt_text(d.get("phone")),
            city=_opt_text(d.get("city")),
            hospital=_opt_text(d.get("hospital")),
            date=_opt_text(d.get("date")),
            time=_opt_text(d.get("time")),
            checked=bool(d.get("checked")),
        )


@dataclass
class ChecklistRecord:
    title: str
    patients: List[ChecklistPatient] = field(default_factory=list)
    created_date: str = field(default_factory=today_iso)
    completed_date: Optional[str] = None
    is_completed: bool = False
    id: str = field(default_factory=new_id)

    @property
    def checked_count(self) -> int:
        return sum(1 for p in self.patients if p.checked)

    @property
    def unchecked_count(self) -> int:
        return len(self.patients) - self.checked_count

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ChecklistRecord":
        return cls(
            id=_text(d.get("id")) or new_id(),
            title=_text(d.get("title")),
            created_date=_text(d.get("created_date")),
            completed_date=_opt_text(d.get("completed_date")),
            is_completed=bool(d.get("is_completed")),
            patients=[ChecklistPatient.from_dict(p) for p in d.get("patients") or [] if isinstance(p, dict)],
        )


# -------------------------
# History
# -------------------------

STOCK_ADD = "stock-add"
STOCK_REMOVE = "stock-remove"
STOCK_DELETE = "stock-delete"
STOCK_EDIT = "stock-edit"
CASE = "case"
CHECKLIST = "checklist"

HISTORY_TYPES = (STOCK_ADD, STOCK_REMOVE, STOCK_DELETE, STOCK_EDIT, CASE, CHECKLIST)

# Labels shown in listings
HISTORY_LABELS = {
    STOCK_ADD: "Stok Ekleme",
    STOCK_REMOVE: "Stok Çıkarma",
    STOCK_DELETE: "Stok Silme",
    STOCK_EDIT: "Stok Düzenleme",
    CASE: "Vaka",
    CHECKLIST: "Kontrol Listesi",
}


@dataclass
class ItemDetails:
    """A single stock item (add, remove, delete)."""
    item: StockItem
    kind: ClassVar[str] = "item"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "item": self.item.to_dict()}


@dataclass
class ItemListDetails:
    """Several stock items added at once (spreadsheet import)."""
    items: List[StockItem]
    kind: ClassVar[str] = "items"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "items": [i.to_dict() for i in self.items]}


@dataclass
class EditDetails:
    """Item before and after a point update."""
    old: StockItem
    new: StockItem
    kind: ClassVar[str] = "edit"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "old": self.old.to_dict(), "new": self.new.to_dict()}


@dataclass
class CaseDetails:
    case: CaseRecord
    kind: ClassVar[str] = "case"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "case": self.case.to_dict()}


@dataclass
class ChecklistDetails:
    checklist: ChecklistRecord
    kind: ClassVar[str] = "checklist"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "checklist": self.checklist.to_dict()}


HistoryDetails = Union[ItemDetails, ItemListDetails, EditDetails, CaseDetails, ChecklistDetails]


def details_from_dict(d: Any) -> Optional[HistoryDetails]:
    """Rebuilds a payload from its dict form; ``None`` when it is unusable."""
    if not isinstance(d, dict):
        return None
    kind = d.get("kind")
    if kind == ItemDetails.kind and isinstance(d.get("item"), dict):
        return ItemDetails(StockItem.from_dict(d["item"]))
    if kind == ItemListDetails.kind and isinstance(d.get("items"), list):
        return ItemListDetails([StockItem.from_dict(i) for i in d["items"] if isinstance(i, dict)])
    if kind == EditDetails.kind and isinstance(d.get("old"), dict) and isinstance(d.get("new"), dict):
        return EditDetails(StockItem.from_dict(d["old"]), StockItem.from_dict(d["new"]))
    if kind == CaseDetails.kind and isinstance(d.get("case"), dict):
        return CaseDetails(CaseRecord.from_dict(d["case"]))
    if kind == ChecklistDetails.kind and isinstance(d.get("checklist"), dict):
        return ChecklistDetails(ChecklistRecord.from_dict(d["checklist"]))
    return None


@dataclass
class HistoryRecord:
    type: str
    description: str
    details: Optional[HistoryDetails] = None
    date: str = field(default_factory=today_iso)
    id: str = field(default_factory=new_id)

    @property
    def label(self) -> str:
        return HISTORY_LABELS.get(self.type, self.type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "type": self.type,
            "description": self.description,
            "details": self.details.to_dict() if self.details is not None else None,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HistoryRecord":
        return cls(
            id=_text(d.get("id")) or new_id(),
            date=_text(d.get("date")),
            type=_text(d.get("type")),
            description=_text(d.get("description")),
            details=details_from_dict(d.get("details")),
        )
