"""Tests for the language lookup."""

from fastapi.testclient import TestClient

from linguaroom.models.language import DEFAULT_LANGUAGES, Language, seed_languages


def test_seed_is_idempotent(db):
    assert seed_languages(db) == len(DEFAULT_LANGUAGES)
    assert seed_languages(db) == 0
    assert db.query(Language).count() == len(DEFAULT_LANGUAGES)


def test_seed_keeps_existing_rows(db):
    db.add(Language(code="es", name="Español", flag_emoji=None))
    db.commit()
    assert seed_languages(db) == len(DEFAULT_LANGUAGES) - 1
    assert db.query(Language).filter(Language.code == "es").one().name == "Español"


def test_list_sorted_by_name(client: TestClient, db):
    seed_languages(db)
    resp = client.get("/api/languages")
    assert resp.status_code == 200
    names = [lang["name"] for lang in resp.json()]
    assert names == sorted(names)
    spanish = next(lang for lang in resp.json() if lang["code"] == "es")
    assert spanish["name"] == "Spanish"
    assert spanish["flag_emoji"] == "🇪🇸"


def test_empty_table(client: TestClient):
    assert client.get("/api/languages").json() == []
