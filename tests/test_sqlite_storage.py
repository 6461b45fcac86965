from __future__ import annotations

from datetime import datetime, timezone

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.errors import PersistenceFailure


def test_seen_snapshot_is_replaced_on_save(tmp_path) -> None:
    storage = SQLiteStorage(str(tmp_path / "state.db"))
    storage.init_db()
    first = datetime(2024, 1, 1, tzinfo=timezone.utc)
    second = datetime(2024, 1, 2, tzinfo=timezone.utc)

    storage.save_seen([("a1", first), ("a2", second)])
    assert storage.load_seen() == [("a1", first), ("a2", second)]

    storage.save_seen([("a2", second)])
    assert storage.load_seen() == [("a2", second)]


def test_peak_is_upserted(tmp_path) -> None:
    storage = SQLiteStorage(str(tmp_path / "state.db"))
    storage.init_db()

    assert storage.get_peak() is None
    storage.set_peak(12)
    storage.set_peak(30)
    assert storage.get_peak() == 30


def test_unopenable_database_raises_persistence_failure(tmp_path) -> None:
    storage = SQLiteStorage(str(tmp_path / "missing" / "dir" / "state.db"))
    with pytest.raises(PersistenceFailure):
        storage.init_db()
