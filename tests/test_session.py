import pytest

from stok.domain.errors import ValidationError
from stok.usecases.session import (
    clear_all,
    clear_history,
    clear_stock,
    current_user,
    login,
    logout,
    signature,
    storage_info,
)
from stok.usecases.stock_management import add_stock


def test_login_logout(store):
    assert current_user(store) is None
    assert signature(store) == ""
    login(store, "  Ayşe ")
    assert current_user(store) == "Ayşe"
    assert signature(store) == " - Ayşe"
    logout(store)
    assert current_user(store) is None
    with pytest.raises(ValidationError):
        login(store, "   ")


def test_storage_info_and_clearing(store):
    login(store, "Ayşe")
    add_stock(store, "Solia S 60", "A", 1)
    add_stock(store, "Solia S 60", "B", 1)
    info = storage_info(store)
    assert (info["stock_count"], info["history_count"], info["cases_count"]) == (2, 2, 0)
    assert info["user"] == "Ayşe" and not info["active_checklist"]

    clear_history(store)
    assert storage_info(store)["history_count"] == 0
    clear_stock(store)
    assert storage_info(store)["stock_count"] == 0
    clear_all(store)
    assert storage_info(store)["user"] is None
