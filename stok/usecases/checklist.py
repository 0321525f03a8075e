# stok/usecases/checklist.py
"""
UC: Patient checklist.
- import_checklist(path, replace=False): creates the active checklist
- toggle_patient(patient_id)
- complete_checklist(confirm): seals the active checklist into history
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Optional

from stok.adapters.spreadsheet import Source, load_checklist_from_xlsx
from stok.config import DEFAULTS
from stok.domain.errors import ValidationError
from stok.domain.models import CHECKLIST, ChecklistDetails, ChecklistPatient, ChecklistRecord, HistoryRecord, today_iso
from stok.infra.logger import log_system_event, log_transaction, print_system
from stok.infra.repositories import ChecklistRepo, HistoryRepo
from stok.infra.store import KeyValueStore


def _title(day: date) -> str:
    return f"{DEFAULTS.checklist_title} - {day.day:02d}.{day.month:02d}.{day.year}"


def active_checklist(store: KeyValueStore) -> Optional[ChecklistRecord]:
    return ChecklistRepo(store).active()


def import_checklist(store: KeyValueStore, source: Source, replace: bool = False) -> ChecklistRecord:
    """Loads patients from an XLSX into a new active checklist.

    Raises:
        SpreadsheetError: unreadable file.
        ValidationError: no patient rows, or an active checklist exists and
            ``replace`` is False.
    """
    path = str(source)
    log_system_event("checklist_import_start", {"file_path": path, "replace": replace})
    try:
        repo = ChecklistRepo(store)
        current = repo.active()
        if current is not None and not replace:
            raise ValidationError("Zaten aktif bir kontrol listesi var")

        patients = load_checklist_from_xlsx(source)
        if not patients:
            raise ValidationError("Excel dosyasında hasta bulunamadı")

        if current is not None:
            repo.remove(current.id)
            log_system_event("checklist_discarded", {"id": current.id}, level="warning")
        checklist = ChecklistRecord(title=_title(date.today()), patients=patients)
        repo.add(checklist)
        print_system(f">> {len(patients)} hasta yüklendi.")

        log_transaction("checklist_import", {"file": path}, result={"patients": len(patients)})
        return checklist
    except Exception as e:
        log_transaction("checklist_import", {"file": path}, error=str(e))
        log_system_event("checklist_import_error", {"file_path": path, "error": str(e)}, level="error")
        raise


def toggle_patient(store: KeyValueStore, patient_id: str) -> ChecklistPatient:
    """Flips the ``checked`` flag of one patient of the active checklist."""
    repo = ChecklistRepo(store)
    checklist = repo.active()
    if checklist is None:
        raise ValidationError("Aktif kontrol listesi yok")
    patient = next((p for p in checklist.patients if p.id == patient_id), None)
    if patient is None:
        raise ValidationError(f"Hasta bulunamadı: {patient_id}")
    patient.checked = not patient.checked
    repo.update(checklist)
    log_transaction("checklist_toggle", {"patient_id": patient_id}, result={"checked": patient.checked})
    return patient


def complete_checklist(
    store: KeyValueStore,
    confirm: Optional[Callable[[int], bool]] = None,
) -> Optional[ChecklistRecord]:
    """Seals the active checklist and writes a ``checklist`` history entry.

    When some patients are unchecked ``confirm(unchecked_count)`` is asked
    first; a False answer (or no callback) leaves everything untouched and
    returns None.
    """
    log_system_event("checklist_complete_start")
    try:
        repo = ChecklistRepo(store)
        checklist = repo.active()
        if checklist is None:
            raise ValidationError("Aktif kontrol listesi yok")

        unchecked = checklist.unchecked_count
        if unchecked and not (confirm is not None and confirm(unchecked)):
            log_system_event("checklist_complete_declined", {"unchecked": unchecked})
            return None

        checklist.is_completed = True
        checklist.completed_date = today_iso()
        repo.update(checklist)

        checked, total = checklist.checked_count, len(checklist.patients)
        HistoryRepo(store).append(HistoryRecord(
            type=CHECKLIST,
            description=f"Kontrol listesi tamamlandı - {checked}/{total} hasta kontrol edildi",
            details=ChecklistDetails(ChecklistRecord.from_dict(checklist.to_dict())),
            date=checklist.completed_date,
        ))

        log_transaction("checklist_complete", {"id": checklist.id}, result={"checked": checked, "total": total})
        return checklist
    except Exception as e:
        log_transaction("checklist_complete", {}, error=str(e))
        log_system_event("checklist_complete_error", {"error": str(e)}, level="error")
        raise
