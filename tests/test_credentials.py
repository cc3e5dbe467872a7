from __future__ import annotations

from opptrack.client.credentials import CredentialStore


def test_save_load_clear(tmp_path):
    store = CredentialStore(tmp_path / "nested" / "credentials.json")
    assert store.load() is None

    assert store.save("tok-1") is True
    assert store.load() == "tok-1"

    store.clear()
    store.clear()
    assert store.load() is None


def test_corrupt_file_reads_as_signed_out(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text("{not json", encoding="utf-8")
    assert CredentialStore(path).load() is None

    path.write_text('["tok"]', encoding="utf-8")
    assert CredentialStore(path).load() is None


def test_unwritable_location_degrades_to_false(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    # Parent "directory" is a regular file, so mkdir fails.
    store = CredentialStore(blocker / "credentials.json")
    assert store.save("tok") is False
    assert store.load() is None
