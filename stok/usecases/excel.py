# stok/usecases/excel.py
"""
UC: Stock spreadsheet interchange.
- import_stock(path): whole file parsed first, duplicates skipped per row,
  the rest added in one write with one ``stock-add`` history entry
- export_stock(path): writes the current ledger to XLSX
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple

from stok.adapters.spreadsheet import Source, load_stock_from_xlsx, write_stock_xlsx
from stok.config import DEFAULTS
from stok.domain.errors import ValidationError
from stok.domain.models import STOCK_ADD, HistoryRecord, ItemListDetails, StockItem
from stok.infra.logger import log_system_event, log_transaction, print_system
from stok.infra.repositories import HistoryRepo, StockLedger
from stok.infra.store import KeyValueStore
from .session import signature


def import_stock(store: KeyValueStore, source: Source) -> Dict[str, Any]:
    """Imports a stock XLSX.

    Rows whose (material_name, serial_lot_number) pair is already stocked,
    or repeated inside the file, are skipped (case-insensitive).

    Returns:
        {"file", "added", "skipped", "items"}

    Raises:
        SpreadsheetError: the file cannot be read; nothing is applied.
        ValidationError: no valid row, or every row is a duplicate.
    """
    path = str(source)
    log_system_event("stock_import_start", {"file_path": path})
    try:
        rows = load_stock_from_xlsx(source)
        if not rows:
            raise ValidationError("Excel dosyasında geçerli veri bulunamadı")

        ledger = StockLedger(store)
        seen: Set[Tuple[str, str]] = {
            (i.material_name.casefold(), i.serial_lot_number.casefold()) for i in ledger.all()
        }
        added: List[StockItem] = []
        for item in rows:
            key = (item.material_name.casefold(), item.serial_lot_number.casefold())
            if key in seen:
                continue
            seen.add(key)
            added.append(item)
        skipped = len(rows) - len(added)
        if not added:
            raise ValidationError("Tüm malzemeler zaten stokta kayıtlı")

        ledger.add_many(added)
        note = f" ({skipped} adet atlandı)" if skipped else ""
        HistoryRepo(store).append(HistoryRecord(
            type=STOCK_ADD,
            description=f"Excel'den {len(added)} adet malzeme içe aktarıldı{note}{signature(store)}",
            details=ItemListDetails([i.copy() for i in added]),
        ))

        print_system(f">> {len(added)} malzeme içe aktarıldı, {skipped} atlandı.")
        result = {"file": path, "added": len(added), "skipped": skipped, "items": added}
        log_transaction("stock_import", {"file": path, "rows_count": len(rows)}, result={"added": len(added), "skipped": skipped})
        log_system_event("stock_import_success", {"file_path": path, "added": len(added), "skipped": skipped})
        return result
    except Exception as e:
        log_transaction("stock_import", {"file": path}, error=str(e))
        log_system_event("stock_import_error", {"file_path": path, "error": str(e)}, level="error")
        raise


def export_stock(store: KeyValueStore, path: Optional[str] = None) -> Dict[str, Any]:
    """Writes every stocked item to ``path`` (default ``stok_listesi.xlsx``)."""
    path = path or DEFAULTS.export_filename
    log_system_event("stock_export_start", {"file_path": path})
    try:
        items = StockLedger(store).all()
        if not items:
            raise ValidationError("Dışa aktarılacak stok verisi yok")
        write_stock_xlsx(items, path)
        log_transaction("stock_export", {"file": path}, result={"rows": len(items)})
        return {"file": path, "rows": len(items)}
    except Exception as e:
        log_transaction("stock_export", {"file": path}, error=str(e))
        log_system_event("stock_export_error", {"file_path": path, "error": str(e)}, level="error")
        raise
