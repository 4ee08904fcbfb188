# backend/tests/test_scripts.py
from unittest.mock import MagicMock

import pytest

from scripts.import_hospitals import import_rows, load_rows, normalize_website
from scripts.trigger_batches import run_cycles


def test_normalize_website():
    assert normalize_website("klinikum.example") == "https://klinikum.example"
    assert normalize_website("http://klinikum.example/") == "http://klinikum.example/"
    assert normalize_website("  ") is None


def test_import_from_csv(tmp_path, store):
    seed = tmp_path / "hospitals.csv"
    seed.write_text(
        "name,website,city\n"
        "Klinikum Nord,klinikum-nord.example,Hamburg\n"
        "Klinikum Nord Duplikat,https://klinikum-nord.example/,Hamburg\n"
        ",https://ohne-name.example,Berlin\n"
        "Landklinik,,Husum\n",
        encoding="utf-8",
    )

    inserted, skipped = import_rows(store, load_rows(str(seed)))

    assert (inserted, skipped) == (2, 2)
    assert store.has_website("https://klinikum-nord.example")
    assert [h.name for h in store.list_discovery_candidates(10)] == ["Klinikum Nord"]

    # re-import is a no-op for known websites
    assert import_rows(store, load_rows(str(seed))) == (1, 3)


def test_import_from_json(tmp_path, store):
    seed = tmp_path / "hospitals.json"
    seed.write_text('{"hospitals": [{"name": "Klinik Süd", "url": "klinik-sued.example", "ort": "München"}]}', encoding="utf-8")

    assert import_rows(store, load_rows(str(seed))) == (1, 0)
    (h,) = store.list_discovery_candidates(10)
    assert (h.name, h.website, h.city) == ("Klinik Süd", "https://klinik-sued.example", "München")


def test_load_rows_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_rows(str(tmp_path / "missing.csv"))


def _response(payload, status=200):
    r = MagicMock()
    r.status_code = status
    r.content = b"{}"
    r.json.return_value = payload
    return r


def test_run_cycles_stops_when_nothing_left():
    session = MagicMock()
    session.post.side_effect = [
        _response({"success": True, "processed": 5, "found": 2, "errors": 0}),
        _response({"success": True, "processed": 0, "found": 0, "errors": 0}),
        _response({"success": True, "processed": 5}),
    ]
    sleep = MagicMock()

    summaries = run_cycles("discovery", 3, 2.0, batch_size=5, session=session, sleep=sleep)

    assert len(summaries) == 2
    assert session.post.call_count == 2
    sleep.assert_called_once_with(2.0)
    _, kwargs = session.post.call_args
    assert kwargs["json"] == {"batchSize": 5}
    assert "x-cron-secret" in kwargs["headers"]


def test_run_cycles_raises_on_failure():
    session = MagicMock()
    session.post.return_value = _response({"success": False, "error": "Unauthorized"}, status=401)

    with pytest.raises(RuntimeError, match="Unauthorized"):
        run_cycles("scrape", 2, 0, session=session, sleep=MagicMock())


def test_run_cycles_rejects_unknown_kind():
    with pytest.raises(ValueError):
        run_cycles("reindex", 1, 0, session=MagicMock())
