# stok/usecases/session.py
"""
UC: Session and settings.
- login(name) / logout() / current_user()
- storage_info(): record counts per collection
- clear_stock() / clear_history() / clear_all()
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from stok.domain.errors import ValidationError
from stok.infra.logger import log_system_event, log_transaction
from stok.infra.repositories import CaseRepo, ChecklistRepo, HistoryRepo, StockLedger, UserRepo
from stok.infra.store import KeyValueStore


def login(store: KeyValueStore, username: str) -> Dict[str, str]:
    """Stores ``username`` as the current user."""
    name = (username or "").strip()
    if not name:
        raise ValidationError("Kullanıcı adı boş olamaz")
    user = UserRepo(store).save(name)
    log_system_event("login", {"username": name})
    return user


def logout(store: KeyValueStore) -> None:
    UserRepo(store).clear()
    log_system_event("logout")


def current_user(store: KeyValueStore) -> Optional[str]:
    """Name of the logged-in user, or None."""
    user = UserRepo(store).get()
    if not user:
        return None
    return user.get("username") or None


def signature(store: KeyValueStore) -> str:
    """`` - user`` suffix for history descriptions ("" when nobody is logged in)."""
    user = current_user(store)
    return f" - {user}" if user else ""


def storage_info(store: KeyValueStore) -> Dict[str, Any]:
    checklists = ChecklistRepo(store).all()
    return {
        "stock_count": len(StockLedger(store).all()),
        "cases_count": len(CaseRepo(store).all()),
        "history_count": len(HistoryRepo(store).all()),
        "checklists_count": len(checklists),
        "active_checklist": any(not c.is_completed for c in checklists),
        "user": current_user(store),
    }


def clear_stock(store: KeyValueStore) -> None:
    StockLedger(store).clear()
    log_transaction("clear_stock", {}, result="success")


def clear_history(store: KeyValueStore) -> None:
    HistoryRepo(store).clear()
    log_transaction("clear_history", {}, result="success")


def clear_all(store: KeyValueStore) -> None:
    """Wipes every collection and the current user."""
    store.clear()
    log_transaction("clear_all", {}, result="success")
    log_system_event("data_cleared", level="warning")
