import json
import sqlite3

from stok.infra.migrations import apply_migrations
from stok.infra.repositories import HistoryRepo, UserRepo
from stok.infra.store import CASES, STOCK, SqliteStore
from stok.domain.models import STOCK_ADD, HistoryRecord, ItemDetails, StockItem


def test_migrations_are_idempotent(tmp_path):
    db = str(tmp_path / "stok.db")
    assert apply_migrations(db) == 2
    assert apply_migrations(db) == 2
    with sqlite3.connect(db) as conn:
        cols = [r[1] for r in conn.execute("PRAGMA table_info(collection)")]
    assert cols == ["name", "payload", "updated_at"]


def test_sqlite_store_roundtrip(tmp_path):
    db = str(tmp_path / "stok.db")
    store = SqliteStore(db)
    assert store.get(STOCK) == []

    store.set(STOCK, [{"material_name": "Şırınga", "quantity": 2}])
    store.set(STOCK, [{"material_name": "Solia S 60", "quantity": 1}])
    assert SqliteStore(db).get(STOCK) == [{"material_name": "Solia S 60", "quantity": 1}]

    with sqlite3.connect(db) as conn:
        payload = conn.execute("SELECT payload FROM collection WHERE name = ?", (STOCK,)).fetchone()[0]
    assert json.loads(payload)[0]["material_name"] == "Solia S 60"


def test_sqlite_scalars_and_clear(tmp_path):
    store = SqliteStore(str(tmp_path / "stok.db"))
    store.set_scalar("user", "x")
    assert store.get_scalar("user") == "x"
    store.delete_scalar("user")
    assert store.get_scalar("user") is None

    store.set(CASES, [{"id": "1"}])
    store.set_scalar("user", "y")
    store.clear()
    assert store.get(CASES) == []
    assert store.get_scalar("user") is None


def test_history_is_newest_first_and_survives_reload(tmp_path):
    db = str(tmp_path / "stok.db")
    repo = HistoryRepo(SqliteStore(db))
    old = HistoryRecord(STOCK_ADD, "ilk", ItemDetails(StockItem("A", "1", 1)))
    new = HistoryRecord(STOCK_ADD, "ikinci")
    repo.append(old)
    repo.append(new)

    records = HistoryRepo(SqliteStore(db)).all()
    assert [r.description for r in records] == ["ikinci", "ilk"]
    assert isinstance(records[1].details, ItemDetails)
    assert records[1].details.item.material_name == "A"
    assert records[0].details is None


def test_user_repo(store):
    users = UserRepo(store)
    assert users.get() is None
    users.save("Ayşe")
    assert users.get()["username"] == "Ayşe"
    users.clear()
    assert users.get() is None
