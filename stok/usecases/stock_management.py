# stok/usecases/stock_management.py
"""
UC: Stock movements.
- add_stock(): validates, rejects duplicates, appends the item
- remove_stock(): checks presence and quantity, then decrements
- register_movement(): "Kimden/Kime" form; the current user decides the side
- delete_stock() / edit_stock(): point operations by id

Every successful call appends one history record carrying a snapshot of the
item, so it can be undone later.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from stok.adapters.parsers import normalize_date
from stok.domain.errors import ValidationError
from stok.domain.models import (
    STOCK_ADD,
    STOCK_DELETE,
    STOCK_EDIT,
    STOCK_REMOVE,
    EditDetails,
    HistoryRecord,
    ItemDetails,
    StockItem,
    today_iso,
)
from stok.infra.logger import log_system_event, log_transaction
from stok.infra.repositories import HistoryRepo, StockLedger
from stok.infra.store import KeyValueStore
from .session import current_user, signature


def _required(**fields: Any) -> Dict[str, str]:
    out = {k: str(v or "").strip() for k, v in fields.items()}
    if any(not v for v in out.values()):
        raise ValidationError("Lütfen zorunlu alanları doldurun")
    return out


def _quantity(val: Any) -> int:
    try:
        qty = int(str(val).strip())
    except (TypeError, ValueError):
        raise ValidationError("Geçerli bir miktar girin") from None
    if qty <= 0:
        raise ValidationError("Geçerli bir miktar girin")
    return qty


def _expiry(val: Any) -> str:
    raw = str(val or "").strip()
    iso = normalize_date(raw)
    if raw and not iso:
        raise ValidationError(f"Geçersiz son kullanma tarihi: {raw}")
    return iso


def add_stock(
    store: KeyValueStore,
    material_name: str,
    serial_lot_number: str,
    quantity: Any,
    ubb_code: str = "",
    expiry_date: str = "",
    from_: str = "",
    to: str = "",
    material_code: Optional[str] = None,
    date: Optional[str] = None,
) -> StockItem:
    """Adds a new lot/serial to stock and records a ``stock-add`` entry.

    Raises:
        ValidationError: missing name/serial, quantity <= 0, or the pair is
            already stocked (case-insensitive).
    """
    log_system_event("stock_add_start", {"material_name": material_name, "serial_lot_number": serial_lot_number})
    try:
        req = _required(material_name=material_name, serial_lot_number=serial_lot_number)
        qty = _quantity(quantity)
        ledger = StockLedger(store)
        if ledger.check_duplicate(req["material_name"], req["serial_lot_number"]):
            raise ValidationError("Bu malzeme ve seri/lot numarası zaten stokta kayıtlı!")

        day = normalize_date(date) or today_iso()
        item = StockItem(
            material_name=req["material_name"],
            serial_lot_number=req["serial_lot_number"],
            quantity=qty,
            ubb_code=(ubb_code or "").strip(),
            expiry_date=_expiry(expiry_date),
            date_added=day,
            from_=(from_ or "").strip(),
            to=(to or "").strip(),
            material_code=(material_code or "").strip() or None,
        )
        ledger.add(item)
        HistoryRepo(store).append(HistoryRecord(
            type=STOCK_ADD,
            description=f"{item.material_name} eklendi ({qty} adet){signature(store)}",
            details=ItemDetails(item.copy()),
            date=day,
        ))

        log_transaction("stock_add", item.to_dict(), result="success")
        return item
    except Exception as e:
        log_transaction("stock_add", {"material_name": material_name, "serial_lot_number": serial_lot_number}, error=str(e))
        log_system_event("stock_add_error", {"error": str(e)}, level="error")
        raise


def remove_stock(
    store: KeyValueStore,
    material_name: str,
    serial_lot_number: str,
    quantity: Any,
    from_: str = "",
    to: str = "",
    date: Optional[str] = None,
) -> StockItem:
    """Takes ``quantity`` units of the matching item out of stock.

    Returns a snapshot of what left the stock (the matched item with the
    removed quantity). The item is deleted when nothing is left.
    """
    log_system_event("stock_remove_start", {"material_name": material_name, "serial_lot_number": serial_lot_number})
    try:
        req = _required(material_name=material_name, serial_lot_number=serial_lot_number)
        qty = _quantity(quantity)
        ledger = StockLedger(store)
        item = ledger.find(req["material_name"], req["serial_lot_number"])
        if item is None:
            raise ValidationError(f"Stokta bulunamadı: {req['material_name']} ({req['serial_lot_number']})")
        if item.quantity < qty:
            raise ValidationError(
                f"Yetersiz stok: {item.material_name} ({item.serial_lot_number}) - mevcut {item.quantity}, istenen {qty}"
            )

        ledger.remove([{"material_name": item.material_name, "serial_lot_number": item.serial_lot_number, "quantity": qty}])
        day = normalize_date(date) or today_iso()
        removed = item.copy(quantity=qty, from_=(from_ or "").strip() or item.from_, to=(to or "").strip() or item.to)
        HistoryRepo(store).append(HistoryRecord(
            type=STOCK_REMOVE,
            description=f"{item.material_name} çıkarıldı ({qty} adet){signature(store)}",
            details=ItemDetails(removed),
            date=day,
        ))

        log_transaction("stock_remove", removed.to_dict(), result={"remaining": item.quantity - qty})
        return removed
    except Exception as e:
        log_transaction("stock_remove", {"material_name": material_name, "serial_lot_number": serial_lot_number}, error=str(e))
        log_system_event("stock_remove_error", {"error": str(e)}, level="error")
        raise


def register_movement(
    store: KeyValueStore,
    material_name: str,
    serial_lot_number: str,
    quantity: Any,
    from_: str = "",
    to: str = "",
    ubb_code: str = "",
    expiry_date: str = "",
    date: Optional[str] = None,
) -> Tuple[str, StockItem]:
    """Applies a movement form.

    ``to`` equal to the current user adds stock; otherwise ``from_`` equal
    to the current user removes it. Returns ``("add" | "remove", item)``.
    """
    user = current_user(store)
    if not user:
        raise ValidationError("Önce giriş yapın")
    if (to or "").strip() == user:
        return "add", add_stock(
            store, material_name, serial_lot_number, quantity,
            ubb_code=ubb_code, expiry_date=expiry_date, from_=from_, to=to, date=date,
        )
    if (from_ or "").strip() == user:
        return "remove", remove_stock(store, material_name, serial_lot_number, quantity, from_=from_, to=to, date=date)
    raise ValidationError("Lütfen kimden veya kime alanına kendi adınızı yazın")


def delete_stock(store: KeyValueStore, item_id: str) -> StockItem:
    """Removes an item entirely and records a ``stock-delete`` entry."""
    log_system_event("stock_delete_start", {"id": item_id})
    try:
        ledger = StockLedger(store)
        item = ledger.get(item_id)
        if item is None:
            raise ValidationError(f"Malzeme bulunamadı: {item_id}")
        ledger.delete_by_id(item_id)
        HistoryRepo(store).append(HistoryRecord(
            type=STOCK_DELETE,
            description=f"{item.material_name} silindi ({item.quantity} adet){signature(store)}",
            details=ItemDetails(item),
        ))
        log_transaction("stock_delete", item.to_dict(), result="success")
        return item
    except Exception as e:
        log_transaction("stock_delete", {"id": item_id}, error=str(e))
        log_system_event("stock_delete_error", {"error": str(e)}, level="error")
        raise


def edit_stock(
    store: KeyValueStore,
    item_id: str,
    serial_lot_number: Optional[str] = None,
    ubb_code: Optional[str] = None,
    expiry_date: Optional[str] = None,
    quantity: Any = None,
) -> StockItem:
    """Updates the editable fields of one item; blank values keep the old ones.

    Records a ``stock-edit`` entry holding the item before and after.
    """
    log_system_event("stock_edit_start", {"id": item_id})
    try:
        ledger = StockLedger(store)
        old = ledger.get(item_id)
        if old is None:
            raise ValidationError(f"Malzeme bulunamadı: {item_id}")

        serial = (serial_lot_number or "").strip() or old.serial_lot_number
        changes: Dict[str, Any] = {
            "serial_lot_number": serial,
            "ubb_code": (ubb_code or "").strip() or old.ubb_code,
            "expiry_date": _expiry(expiry_date) or old.expiry_date,
        }
        if quantity not in (None, ""):
            changes["quantity"] = _quantity(quantity)
        new = old.copy(**changes)

        if serial.casefold() != old.serial_lot_number.casefold() and ledger.check_duplicate(old.material_name, serial):
            raise ValidationError("Bu malzeme ve seri/lot numarası zaten stokta kayıtlı!")

        ledger.update_by_id(item_id, new)
        HistoryRepo(store).append(HistoryRecord(
            type=STOCK_EDIT,
            description=f"{old.material_name} düzenlendi{signature(store)}",
            details=EditDetails(old=old, new=new),
        ))
        log_transaction("stock_edit", {"old": old.to_dict(), "new": new.to_dict()}, result="success")
        return new
    except Exception as e:
        log_transaction("stock_edit", {"id": item_id}, error=str(e))
        log_system_event("stock_edit_error", {"error": str(e)}, level="error")
        raise
