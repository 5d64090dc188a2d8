"""
============================================================================
FILE: mock_firestore.py
LOCATION: api/mock_firestore.py
============================================================================

PURPOSE:
    In-memory stand-ins for the Firestore client and Firebase Auth used when
    USE_REAL_FIREBASE is false (local development and tests).

ROLE IN PROJECT:
    - Lets every router run without a Firebase project
    - Optionally persists to a JSON file (MOCK_DB_FILE) between restarts
    - Mimics the subset of Auth the account flows call, including a
      password check that the real SDK delegates to the REST sign-in API

KEY COMPONENTS:
    - MockFirestoreClient: collection(), batch()
    - MockCollectionReference / MockQuery: where, order_by, limit,
      start_after, stream, get
    - MockDocumentReference / MockDocumentSnapshot: CRUD and to_dict()
    - MockWriteBatch: Buffered set/update/delete applied on commit()
    - MockAuth / MockUserRecord: create, lookup, update, delete, password check

DEPENDENCIES:
    - External: None
    - Internal: None

USAGE:
    from api.mock_firestore import MockFirestoreClient

    client = MockFirestoreClient()
    client.collection("peddlers").document("uid-1").set({"name": "Pak Budi"})
============================================================================
"""
import copy
import json
import os
import uuid
from typing import Any, Dict, List, Optional


_OPERATORS = {
    "==": lambda val, value: val == value,
    "!=": lambda val, value: val != value,
    "<": lambda val, value: val is not None and val < value,
    "<=": lambda val, value: val is not None and val <= value,
    ">": lambda val, value: val is not None and val > value,
    ">=": lambda val, value: val is not None and val >= value,
    "in": lambda val, value: bool(value) and val in value,
    "array_contains": lambda val, value: isinstance(val, list) and value in val,
}


class MockNotFound(Exception):
    """Raised by update() on a missing document, like google NotFound."""


class MockDocumentSnapshot:
    def __init__(self, ref, data, exists=True):
        self._ref = ref
        self.id = ref.id
        self._data = copy.deepcopy(data) if data is not None else None
        self.exists = exists

    def to_dict(self):
        return self._data

    def get(self, field_path):
        if not self.exists or not self._data:
            return None
        curr = self._data
        for part in field_path.split("."):
            if isinstance(curr, dict) and part in curr:
                curr = curr[part]
            else:
                return None
        return curr

    @property
    def reference(self):
        return self._ref


class MockDocumentReference:
    def __init__(self, collection, document_id):
        self.parent = collection
        self.id = document_id

    @property
    def path(self):
        return f"{self.parent.path}/{self.id}"

    def get(self, transaction=None):
        data = self.parent._docs.get(self.id)
        return MockDocumentSnapshot(self, data, exists=data is not None)

    def set(self, data: Dict[str, Any], merge=False):
        docs = self.parent._docs
        if merge and self.id in docs:
            docs[self.id].update(copy.deepcopy(data))
        else:
            docs[self.id] = copy.deepcopy(data)
        self.parent._save()

    def update(self, data: Dict[str, Any]):
        if self.id not in self.parent._docs:
            raise MockNotFound(f"No document to update: {self.path}")
        self.parent._docs[self.id].update(copy.deepcopy(data))
        self.parent._save()

    def delete(self):
        self.parent._docs.pop(self.id, None)
        self.parent._save()


class MockQuery:
    def __init__(self, collection, filters=None, limit=None, order_by=None):
        self.collection = collection
        self.filters = list(filters or [])
        self.limit_val = limit
        self.order_by_val = order_by
        self.start_after_id = None

    def _copy(self):
        query = MockQuery(
            self.collection,
            filters=self.filters,
            limit=self.limit_val,
            order_by=self.order_by_val,
        )
        query.start_after_id = self.start_after_id
        return query

    def where(self, field, op, value):
        if op not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {op}")
        query = self._copy()
        query.filters.append((field, op, value))
        return query

    def order_by(self, field, direction="ASCENDING"):
        query = self._copy()
        query.order_by_val = (field, direction)
        return query

    def limit(self, count):
        query = self._copy()
        query.limit_val = count
        return query

    def start_after(self, snapshot):
        query = self._copy()
        query.start_after_id = snapshot.id
        return query

    def _matches(self, data):
        for field, op, value in self.filters:
            if not _OPERATORS[op](data.get(field), value):
                return False
        return True

    def stream(self):
        results = [
            MockDocumentSnapshot(self.collection.document(doc_id), data)
            for doc_id, data in self.collection._docs.items()
            if data is not None and self._matches(data)
        ]

        if self.order_by_val:
            field, direction = self.order_by_val
            # Firestore drops documents missing the order_by field
            results = [doc for doc in results if doc._data.get(field) is not None]
            results.sort(
                key=lambda doc: doc._data[field],
                reverse=direction == "DESCENDING",
            )

        if self.start_after_id is not None:
            ids = [doc.id for doc in results]
            if self.start_after_id in ids:
                results = results[ids.index(self.start_after_id) + 1:]

        if self.limit_val is not None:
            results = results[: self.limit_val]

        return iter(results)

    def get(self, transaction=None) -> List[MockDocumentSnapshot]:
        return list(self.stream())


class MockCollectionReference(MockQuery):
    def __init__(self, client, path):
        super().__init__(self)
        self.client = client
        self.path = path
        self.id = path.split("/")[-1]
        self._docs = self.client._db_data.setdefault(path, {})

    def document(self, document_id=None):
        if not document_id:
            document_id = uuid.uuid4().hex[:20]
        return MockDocumentReference(self, document_id)

    def add(self, data: Dict[str, Any]):
        doc_ref = self.document()
        doc_ref.set(data)
        return None, doc_ref

    def _save(self):
        self.client._save_db()


class MockWriteBatch:
    """Buffers writes and applies them together on commit()."""

    def __init__(self):
        self._ops = []

    def set(self, ref, data, merge=False):
        self._ops.append(lambda: ref.set(data, merge=merge))

    def update(self, ref, data):
        self._ops.append(lambda: ref.update(data))

    def delete(self, ref):
        self._ops.append(ref.delete)

    def commit(self):
        ops, self._ops = self._ops, []
        for op in ops:
            op()
        return []


class MockFirestoreClient:
    def __init__(self, db_file: Optional[str] = None):
        self.db_file = db_file
        self._db_data: Dict[str, Dict[str, dict]] = {}
        self.reload()

    def reload(self):
        if self.db_file and os.path.exists(self.db_file):
            with open(self.db_file, "r", encoding="utf-8") as f:
                self._db_data = json.load(f)
        else:
            self._db_data = {}

    def _save_db(self):
        if not self.db_file:
            return
        with open(self.db_file, "w", encoding="utf-8") as f:
            json.dump(self._db_data, f, indent=2, default=str)

    def collection(self, name):
        return MockCollectionReference(self, name)

    def batch(self):
        return MockWriteBatch()

    def clear(self):
        self._db_data.clear()
        self._save_db()


def get_mock_db():
    """Create a mock Firestore client, persisted when MOCK_DB_FILE is set."""
    return MockFirestoreClient(db_file=os.getenv("MOCK_DB_FILE") or None)


class MockUserRecord:
    def __init__(self, uid, email, display_name=None, phone_number=None, disabled=False):
        self.uid = uid
        self.email = email
        self.display_name = display_name
        self.phone_number = phone_number
        self.disabled = disabled


class MockAuthError(Exception):
    pass


class MockEmailAlreadyExistsError(MockAuthError):
    pass


class MockUserNotFoundError(MockAuthError):
    pass


class MockAuth:
    # Exposed like firebase_admin.auth.EmailAlreadyExistsError
    EmailAlreadyExistsError = MockEmailAlreadyExistsError
    UserNotFoundError = MockUserNotFoundError

    def __init__(self):
        self._users: Dict[str, MockUserRecord] = {}
        self._passwords: Dict[str, str] = {}

    def create_user(self, email=None, password=None, display_name=None, phone_number=None, **kwargs):
        if not email:
            raise ValueError("Email required")
        if any(u.email == email for u in self._users.values()):
            raise self.EmailAlreadyExistsError("Email already exists")

        uid = f"mock-user-{uuid.uuid4().hex[:12]}"
        user = MockUserRecord(uid, email, display_name, phone_number)
        self._users[uid] = user
        self._passwords[uid] = password
        return user

    def get_user(self, uid):
        if uid not in self._users:
            raise self.UserNotFoundError("User not found")
        return self._users[uid]

    def get_user_by_email(self, email):
        for user in self._users.values():
            if user.email == email:
                return user
        raise self.UserNotFoundError("User not found")

    def update_user(self, uid, **kwargs):
        user = self.get_user(uid)
        for field in ("display_name", "disabled", "email", "phone_number"):
            if field in kwargs:
                setattr(user, field, kwargs[field])
        return user

    def delete_user(self, uid):
        if uid not in self._users:
            raise self.UserNotFoundError("User not found")
        del self._users[uid]
        self._passwords.pop(uid, None)

    def check_password(self, email, password) -> bool:
        try:
            user = self.get_user_by_email(email)
        except self.UserNotFoundError:
            return False
        return self._passwords.get(user.uid) == password
