"""
XLSX loaders and writer for stock lists and patient checklists.

These functions:
- read the first worksheet with pandas (row 0 is always the header);
- normalise header cells (accents, case, punctuation) and match them
  against aliases;
- return domain objects (``StockItem`` / ``ChecklistPatient``).

Stock file contract:
- header names are matched first (the export headers ``Malzeme``,
  ``Malzeme Açıklaması``, ``Açıklama``, ``Miktar`` and the mobile headers
  ``MaterialName``, ``SerialLotNumber``, ``UbbCode``, ``ExpiryDate``,
  ``Quantity``);
- when no material-name header is found the legacy positional layout is
  used: code (col 1), name (col 2), packed description (col 3),
  quantity (col 4).

Any read failure raises ``SpreadsheetError`` before anything is returned,
so an import applies a whole file or nothing.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Sequence, Union

import pandas as pd

from stok.config import DEFAULTS
from stok.domain.errors import SpreadsheetError
from stok.domain.models import ChecklistPatient, StockItem
from stok.infra.logger import log_file_operation
from .parsers import (
    cell_text,
    format_description,
    format_sheet_date,
    format_sheet_time,
    normalize_date,
    parse_description,
    parse_quantity,
)

Source = Union[str, Path, BinaryIO]


# ---------------------------
# normalisation helpers
# ---------------------------

_ACCENTS = dict(zip("áàâãäéèêëíìîïıóòôõöúùûüçşğ", "aaaaaeeeeiiiiiooooouuuucsg"))


def _slug(s: Any) -> str:
    """Normalises a header: lower case, no accents, no non-alphanumerics."""
    if s is None:
        return ""
    s = str(s).strip().replace("İ", "i").lower()
    s = "".join(_ACCENTS.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


STOCK_ALIASES = {
    # export headers
    "sira": "row_no",
    "malzeme": "material_code",
    "malzeme kodu": "material_code",
    "malzeme aciklamasi": "material_name",
    "aciklama": "description",
    "miktar": "quantity",
    # mobile headers
    "materialcode": "material_code",
    "materialname": "material_name",
    "material name": "material_name",
    "seriallotnumber": "serial_lot_number",
    "seri lot no": "serial_lot_number",
    "ubbcode": "ubb_code",
    "ubb": "ubb_code",
    "expirydate": "expiry_date",
    "skt": "expiry_date",
    "quantity": "quantity",
    "description": "description",
    # recognised, not stored
    "location": "ignored",
    "categorykey": "ignored",
    "categoryname": "ignored",
    "manufacturer": "ignored",
}

# legacy positional layout
POSITIONAL_COLUMNS = {"material_code": 1, "material_name": 2, "description": 3, "quantity": 4}

EXPORT_COLUMNS = ["Sıra", "Malzeme", "Malzeme Açıklaması", "Açıklama", "Miktar"]
EXPORT_WIDTHS = [8, 15, 30, 50, 10]


def _describe(source: Source) -> str:
    return str(source) if isinstance(source, (str, Path)) else getattr(source, "name", "<stream>")


def _read_rows(source: Source) -> List[List[Any]]:
    """Reads the first worksheet as raw rows (header row included)."""
    try:
        df = pd.read_excel(source, sheet_name=0, header=None, dtype=object)
    except FileNotFoundError as e:
        raise SpreadsheetError(f"Dosya okunamadı: {_describe(source)}") from e
    except Exception as e:
        raise SpreadsheetError(f"Excel dosyası okunamadı: {e}") from e
    return [list(r) for r in df.itertuples(index=False, name=None)]


def _get(row: Sequence[Any], pos: Optional[int]) -> Any:
    if pos is None or pos >= len(row):
        return None
    return row[pos]


def _stock_columns(header: Sequence[Any]) -> Optional[Dict[str, int]]:
    """Column positions by header name, or None when the names are unknown."""
    cols: Dict[str, int] = {}
    for pos, cell in enumerate(header):
        key = STOCK_ALIASES.get(_slug(cell))
        if key and key not in cols:
            cols[key] = pos
    if "material_name" not in cols:
        return None
    if "quantity" not in cols:
        raise SpreadsheetError("Excel dosyasında Miktar/Quantity sütunu bulunamadı.")
    return cols


# ---------------------------
# public loaders (XLSX)
# ---------------------------

def load_stock_from_xlsx(source: Source, origin: Optional[str] = None) -> List[StockItem]:
    """Reads a stock XLSX and returns one new ``StockItem`` per valid row.

    Rows without a material name or with a quantity <= 0 are skipped.
    Every item gets a fresh id, today's ``date_added`` and
    ``from_ = origin`` (default ``"Excel İçe Aktarma"``).
    """
    rows = _read_rows(source)
    if not rows:
        return []
    header, body = rows[0], rows[1:]
    cols = _stock_columns(header)
    if cols is None:
        if len(header) <= max(POSITIONAL_COLUMNS.values()):
            raise SpreadsheetError("Excel dosyasında MaterialName sütunu bulunamadı.")
        cols = dict(POSITIONAL_COLUMNS)

    origin = DEFAULTS.import_source if origin is None else origin
    out: List[StockItem] = []
    for row in body:
        name = cell_text(_get(row, cols.get("material_name")))
        quantity = parse_quantity(_get(row, cols.get("quantity")))
        if not name or quantity <= 0:
            continue
        packed = parse_description(_get(row, cols.get("description")))
        serial = cell_text(_get(row, cols.get("serial_lot_number"))) or packed.serial_lot_number
        ubb = cell_text(_get(row, cols.get("ubb_code"))) or packed.ubb_code
        expiry = normalize_date(_get(row, cols.get("expiry_date"))) or packed.expiry_date
        code = cell_text(_get(row, cols.get("material_code")))
        out.append(StockItem(
            material_name=name,
            serial_lot_number=serial,
            quantity=quantity,
            ubb_code=ubb,
            expiry_date=expiry,
            from_=origin,
            to="",
            material_code=code or None,
        ))
    log_file_operation("import", _describe(source), rows_processed=len(out), kind="stock")
    return out


def load_checklist_from_xlsx(source: Source) -> List[ChecklistPatient]:
    """Reads a patient XLSX (name, note, phone, city, hospital, date, time).

    Columns are positional; rows without a name are skipped.
    """
    rows = _read_rows(source)
    out: List[ChecklistPatient] = []
    for row in rows[1:]:
        name = cell_text(_get(row, 0))
        if not name:
            continue
        out.append(ChecklistPatient(
            name=name,
            note=cell_text(_get(row, 1)) or None,
            phone=cell_text(_get(row, 2)) or None,
            city=cell_text(_get(row, 3)) or None,
            hospital=cell_text(_get(row, 4)) or None,
            date=format_sheet_date(_get(row, 5)) or None,
            time=format_sheet_time(_get(row, 6)) or None,
        ))
    log_file_operation("import", _describe(source), rows_processed=len(out), kind="checklist")
    return out


# ---------------------------
# writer (XLSX)
# ---------------------------

def stock_rows(items: Sequence[StockItem]) -> List[Dict[str, Any]]:
    """Export rows in the fixed column order."""
    return [
        {
            "Sıra": pos,
            "Malzeme": item.material_code or "",
            "Malzeme Açıklaması": item.material_name,
            "Açıklama": format_description(item.serial_lot_number, item.expiry_date, item.ubb_code),
            "Miktar": item.quantity,
        }
        for pos, item in enumerate(items, start=1)
    ]


def write_stock_xlsx(items: Sequence[StockItem], path: Union[str, Path], sheet_name: Optional[str] = None) -> str:
    """Writes the stock list to ``path`` and returns the path."""
    sheet_name = sheet_name or DEFAULTS.export_sheet
    df = pd.DataFrame(stock_rows(items), columns=EXPORT_COLUMNS)
    try:
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=sheet_name, index=False)
            worksheet = writer.sheets[sheet_name]
            for column, width in zip(worksheet.columns, EXPORT_WIDTHS):
                worksheet.column_dimensions[column[0].column_letter].width = width
    except OSError as e:
        raise SpreadsheetError(f"Excel dosyası yazılamadı: {e}") from e
    log_file_operation("export", str(path), rows_processed=len(items))
    return str(path)
