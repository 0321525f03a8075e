"""
Parsing helpers for spreadsheet cells.

The stock sheets pack lot/serial, expiry and UBB code into one description
cell, with backslash-separated, prefix-tagged segments:

    LOT:AB123\\SKT:10.03.2025\\UBB:0123456789

This module reads and writes that mini-grammar and normalises the other
cell kinds found in the sheets (quantities, day-fraction times, dates).
"""

from __future__ import annotations

import math
import numbers
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Optional

_INT_RE = re.compile(r"^\s*[-+]?\d+")
_SEGMENT_RE = re.compile(r"^(LOT|SERI|SKT|UBB):(.+)$", re.IGNORECASE)
_HMS_RE = re.compile(r"^(\d{1,2}:\d{2}):\d{2}$")
_DIGITS_RE = re.compile(r"^\d+$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")

DESCRIPTION_SEPARATOR = "\\"


@dataclass
class PackedDescription:
    serial_lot_number: str = ""
    expiry_date: str = ""     # YYYY-MM-DD
    ubb_code: str = ""


def is_blank(val: Any) -> bool:
    if val is None:
        return True
    if isinstance(val, float) and math.isnan(val):
        return True
    # pandas NA / NaT
    if type(val).__name__ in ("NAType", "NaTType"):
        return True
    return isinstance(val, str) and not val.strip()


def cell_text(val: Any) -> str:
    """Text of a cell: trimmed; integral floats lose their ``.0``."""
    if is_blank(val):
        return ""
    if isinstance(val, bool):
        return str(val)
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    if isinstance(val, datetime):
        return val.date().isoformat() if val.time() == time(0, 0) else val.isoformat(sep=" ")
    return str(val).strip()


def parse_quantity(val: Any) -> int:
    """Leading integer of a quantity cell; 0 when there is none.

    Examples:
        "5"     → 5
        5.0     → 5
        "3 adet" → 3
        "abc"   → 0
    """
    if is_blank(val) or isinstance(val, bool):
        return 0
    if isinstance(val, numbers.Real):
        if isinstance(val, float) and math.isinf(val):
            return 0
        return int(val)
    m = _INT_RE.match(str(val))
    return int(m.group(0)) if m else 0


def tr_date_to_iso(txt: str) -> str:
    """``DD.MM.YYYY`` or ``DD/MM/YYYY`` to ``YYYY-MM-DD``; "" unless it is a real date."""
    parts = [p.strip() for p in re.split(r"[/.]", (txt or "").strip())]
    if len(parts) != 3 or len(parts[2]) != 4:
        return ""
    try:
        d = datetime.strptime(".".join(parts), "%d.%m.%Y").date()
    except ValueError:
        return ""
    return d.isoformat()


def iso_to_tr_date(iso: str) -> str:
    """``YYYY-MM-DD`` to ``DD.MM.YYYY``; the input is returned when it is not ISO."""
    try:
        d = date.fromisoformat((iso or "").strip()[:10])
    except ValueError:
        return iso or ""
    return f"{d.day:02d}.{d.month:02d}.{d.year}"


def parse_description(txt: Any) -> PackedDescription:
    """Splits a packed description cell into its fields.

    Each backslash-separated segment is matched case-insensitively against
    ``LOT:``/``SERI:`` (serial or lot), ``SKT:`` (expiry) and ``UBB:``.
    Unknown segments are ignored. When no serial/lot segment is found the
    whole cell becomes the serial/lot number.

    Args:
        txt: Cell content.

    Returns:
        A ``PackedDescription`` (empty strings for missing fields).
    """
    cell = cell_text(txt)
    out = PackedDescription()
    for part in cell.split(DESCRIPTION_SEPARATOR):
        m = _SEGMENT_RE.match(part.strip())
        if not m:
            continue
        tag, value = m.group(1).upper(), m.group(2).strip()
        if tag in ("LOT", "SERI"):
            out.serial_lot_number = value
        elif tag == "SKT":
            out.expiry_date = tr_date_to_iso(value)
        else:
            out.ubb_code = value
    if not out.serial_lot_number and cell:
        out.serial_lot_number = cell
    return out


def format_description(serial_lot_number: str, expiry_date: str = "", ubb_code: str = "") -> str:
    """Inverse of ``parse_description``.

    All-digit serials are written as ``SERI:``, anything else as ``LOT:``.
    """
    parts = []
    if serial_lot_number:
        tag = "SERI" if _DIGITS_RE.match(serial_lot_number) else "LOT"
        parts.append(f"{tag}:{serial_lot_number}")
    if expiry_date:
        parts.append(f"SKT:{iso_to_tr_date(expiry_date)}")
    if ubb_code:
        parts.append(f"UBB:{ubb_code}")
    return DESCRIPTION_SEPARATOR.join(parts)


def format_sheet_time(val: Any) -> str:
    """Normalises a time cell to ``HH:MM``.

    - number (or numeric text) below 1: fraction of a day
    - time/datetime cell: its hour and minute
    - other text: ``HH:MM:SS`` loses its seconds, anything else is kept
    """
    if is_blank(val):
        return ""
    if isinstance(val, (time, datetime)):
        return f"{val.hour:02d}:{val.minute:02d}"
    num: Optional[float]
    try:
        num = float(val)
    except (TypeError, ValueError):
        num = None
    if num is not None and not math.isnan(num) and 0 <= num < 1:
        total_minutes = round(num * 24 * 60) % (24 * 60)
        return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"
    txt = cell_text(val)
    m = _HMS_RE.match(txt)
    return m.group(1) if m else txt


def format_sheet_date(val: Any) -> str:
    """Date cell as ``DD.MM.YYYY`` when it is a real date, else its text."""
    if isinstance(val, (datetime, date)):
        return f"{val.day:02d}.{val.month:02d}.{val.year}"
    return cell_text(val)


def normalize_date(val: Any) -> str:
    """Any accepted date input as ``YYYY-MM-DD``; "" when blank or unreadable.

    Accepts date/datetime objects, ISO text and ``DD.MM.YYYY`` / ``DD/MM/YYYY``.
    """
    if isinstance(val, (datetime, date)):
        return f"{val.year:04d}-{val.month:02d}-{val.day:02d}"
    txt = cell_text(val)
    if not txt:
        return ""
    if _ISO_DATE_RE.match(txt):
        try:
            return date.fromisoformat(txt[:10]).isoformat()
        except ValueError:
            return ""
    return tr_date_to_iso(txt)
