import pytest

from fieldveil.storage.jsonl import JsonlDocumentStore, matches


@pytest.fixture()
def store(tmp_path):
    store = JsonlDocumentStore(tmp_path / "users.jsonl")
    store.insert({"name": "ann", "roles": ["admin"], "address": {"city": "Lima"}})
    store.insert({"name": "bob", "roles": ["support", "admin"], "address": {"city": "Quito"}})
    return store


def test_insert_persists_lines(store, tmp_path):
    lines = (tmp_path / "users.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert len(JsonlDocumentStore(tmp_path / "users.jsonl")) == 2


def test_find_by_equality_and_dotted_path(store):
    assert [doc["name"] for doc in store.find({})] == ["ann", "bob"]
    assert [doc["name"] for doc in store.find({"address.city": "Quito"})] == ["bob"]
    assert store.find({"address.zip": "1"}) == []


def test_list_values_match_by_membership(store):
    assert [doc["name"] for doc in store.find({"roles": "admin"})] == ["ann", "bob"]
    assert [doc["name"] for doc in store.find({"roles": "support"})] == ["bob"]
    assert store.find({"roles": ["admin"]})[0]["name"] == "ann"


def test_projection_and_find_one(store):
    assert store.find_one({"name": "bob"}, ["name"]) == {"name": "bob"}
    assert store.find_one({"name": "cid"}) is None


def test_results_are_copies(store):
    first = store.find_one({"name": "ann"})
    first["address"]["city"] = "changed"
    assert store.find_one({"name": "ann"})["address"]["city"] == "Lima"


def test_invalid_lines_are_rejected(tmp_path):
    path = tmp_path / "broken.jsonl"
    path.write_text('{"name": "ok"}\n\n[1, 2]\n', encoding="utf-8")
    with pytest.raises(ValueError, match="Line 3"):
        JsonlDocumentStore(path).find({})
    path.write_text("{oops\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid JSON"):
        JsonlDocumentStore(path).find({})


def test_missing_file_is_empty(tmp_path):
    assert JsonlDocumentStore(tmp_path / "none.jsonl").find({}) == []


def test_matches_requires_every_condition():
    doc = {"a": 1, "b": {"c": 2}}
    assert matches(doc, {"a": 1, "b.c": 2})
    assert not matches(doc, {"a": 1, "b.c": 3})
    assert not matches(doc, {"a.x": 1})
