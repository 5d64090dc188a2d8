# test_mock_firestore.py
# Unit tests for the in-memory Firestore and Auth mocks

# Covers the subset of the Firestore API the routers rely on: CRUD, query
# filtering and ordering, cursors, batches, JSON persistence, and MockAuth.

# @see: api/mock_firestore.py - Implementation under test

import pytest

from api.mock_firestore import MockAuth, MockFirestoreClient, MockNotFound


@pytest.fixture
def db():
    """Fresh MockFirestoreClient instance for each test."""
    return MockFirestoreClient()


def test_document_set_and_get(db):
    doc_ref = db.collection("peddlers").document("p1")

    doc_ref.set({"name": "Bakso Pak Jono", "rating": 4.5, "isActive": True})

    snapshot = doc_ref.get()
    assert snapshot.exists
    assert snapshot.id == "p1"
    assert snapshot.to_dict() == {"name": "Bakso Pak Jono", "rating": 4.5, "isActive": True}
    assert snapshot.get("name") == "Bakso Pak Jono"


def test_nested_field_get(db):
    db.collection("peddlers").document("p1").set({"location": {"lat": -6.38, "lon": 106.82}})

    assert db.collection("peddlers").document("p1").get().get("location.lat") == -6.38


def test_snapshot_is_a_copy(db):
    doc_ref = db.collection("peddlers").document("p1")
    doc_ref.set({"tags": ["bakso"]})

    doc_ref.get().to_dict()["tags"].append("mie")

    assert doc_ref.get().to_dict() == {"tags": ["bakso"]}


def test_update_merges_and_requires_document(db):
    doc_ref = db.collection("peddlers").document("p1")
    doc_ref.set({"name": "Original", "count": 1})

    doc_ref.update({"count": 2})

    assert doc_ref.get().to_dict() == {"name": "Original", "count": 2}
    with pytest.raises(MockNotFound):
        db.collection("peddlers").document("missing").update({"count": 1})


def test_set_merge(db):
    doc_ref = db.collection("peddlers").document("p1")
    doc_ref.set({"name": "A", "status": "inactive"})

    doc_ref.set({"status": "active"}, merge=True)

    assert doc_ref.get().to_dict() == {"name": "A", "status": "active"}


def test_delete(db):
    doc_ref = db.collection("peddlers").document("p1")
    doc_ref.set({"name": "A"})

    doc_ref.delete()

    snapshot = doc_ref.get()
    assert not snapshot.exists
    assert snapshot.to_dict() is None


def test_add_generates_id(db):
    _, doc_ref = db.collection("reviews").add({"rating": 5})

    assert doc_ref.id
    assert doc_ref.get().to_dict() == {"rating": 5}


def test_where_operators(db):
    reviews = db.collection("reviews")
    for i, rating in enumerate([1, 3, 5]):
        reviews.document(f"r{i}").set({"rating": rating, "tags": ["pedas"] if i else []})

    assert [d.id for d in reviews.where("rating", ">=", 3).stream()] == ["r1", "r2"]
    assert [d.id for d in reviews.where("rating", "in", [1, 5]).stream()] == ["r0", "r2"]
    assert [d.id for d in reviews.where("tags", "array_contains", "pedas").stream()] == ["r1", "r2"]
    assert [d.id for d in reviews.where("missing", "<", 3).stream()] == []


def test_unsupported_operator(db):
    with pytest.raises(ValueError):
        db.collection("reviews").where("rating", "~", 1)


def test_order_limit_and_cursor(db):
    reviews = db.collection("reviews")
    for doc_id, created in [("a", "2025-01-01"), ("b", "2025-01-03"), ("c", "2025-01-02")]:
        reviews.document(doc_id).set({"createdAt": created})
    reviews.document("undated").set({"rating": 5})

    ordered = reviews.order_by("createdAt", direction="DESCENDING")
    cursor = reviews.document("b").get()

    assert [d.id for d in ordered.stream()] == ["b", "c", "a"]
    assert [d.id for d in ordered.limit(2).get()] == ["b", "c"]
    assert [d.id for d in ordered.start_after(cursor).stream()] == ["c", "a"]


def test_queries_are_immutable(db):
    reviews = db.collection("reviews")
    reviews.document("r1").set({"rating": 1})

    filtered = reviews.where("rating", "==", 5)

    assert len(list(reviews.stream())) == 1
    assert list(filtered.stream()) == []


def test_batch_applies_on_commit(db):
    peddlers = db.collection("peddlers")
    peddlers.document("keep").set({"n": 1})
    peddlers.document("drop").set({"n": 2})

    batch = db.batch()
    batch.update(peddlers.document("keep"), {"n": 10})
    batch.delete(peddlers.document("drop"))
    batch.set(peddlers.document("new"), {"n": 3})
    assert peddlers.document("drop").get().exists

    batch.commit()

    assert peddlers.document("keep").get().to_dict() == {"n": 10}
    assert not peddlers.document("drop").get().exists
    assert peddlers.document("new").get().exists


def test_persistence_round_trip(tmp_path):
    db_file = tmp_path / "mock_db.json"
    MockFirestoreClient(db_file=str(db_file)).collection("users").document("u1").set({"name": "Siti"})

    reloaded = MockFirestoreClient(db_file=str(db_file))

    assert reloaded.collection("users").document("u1").get().to_dict() == {"name": "Siti"}


def test_clear(db):
    db.collection("users").document("u1").set({"name": "Siti"})

    db.clear()

    assert list(db.collection("users").stream()) == []


class TestMockAuth:
    def test_create_and_lookup(self):
        auth = MockAuth()

        user = auth.create_user(email="siti@example.com", password="rahasia123", display_name="Siti")

        assert auth.get_user(user.uid).display_name == "Siti"
        assert auth.get_user_by_email("siti@example.com").uid == user.uid

    def test_duplicate_email(self):
        auth = MockAuth()
        auth.create_user(email="siti@example.com", password="rahasia123")

        with pytest.raises(MockAuth.EmailAlreadyExistsError):
            auth.create_user(email="siti@example.com", password="lain12345")

    def test_check_password(self):
        auth = MockAuth()
        auth.create_user(email="siti@example.com", password="rahasia123")

        assert auth.check_password("siti@example.com", "rahasia123") is True
        assert auth.check_password("siti@example.com", "salah") is False
        assert auth.check_password("nobody@example.com", "rahasia123") is False

    def test_update_and_delete(self):
        auth = MockAuth()
        user = auth.create_user(email="siti@example.com", password="rahasia123")

        auth.update_user(user.uid, display_name="Siti A.")
        assert auth.get_user(user.uid).display_name == "Siti A."

        auth.delete_user(user.uid)
        with pytest.raises(MockAuth.UserNotFoundError):
            auth.get_user(user.uid)
        with pytest.raises(MockAuth.UserNotFoundError):
            auth.delete_user(user.uid)
