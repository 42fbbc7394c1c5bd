# petqr/conftest.py
"""
Shared pytest fixtures.

The app runs with the 'testing' config, which never touches Firebase:
Firestore and Storage are replaced by the in-memory fakes below.
"""
import copy
import uuid
from datetime import datetime

import pytest
from flask_jwt_extended import create_access_token, create_refresh_token

from petqr import create_app
from petqr.models.profile import UserProfile


# --- Firestore fake ---
def _sort_key(value):
    """Firestore orders mixed types: booleans, numbers, timestamps, strings."""
    if isinstance(value, bool):
        return (0, value)
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, datetime):
        return (2, value)
    return (3, str(value))


class FakeDocumentSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, store, collection_path, doc_id):
        self._store = store
        self._collection_path = collection_path
        self.id = doc_id

    @property
    def _docs(self):
        return self._store.setdefault(self._collection_path, {})

    def get(self):
        return FakeDocumentSnapshot(self, copy.deepcopy(self._docs.get(self.id)))

    def set(self, data):
        self._docs[self.id] = copy.deepcopy(data)

    def update(self, data):
        if self.id not in self._docs:
            raise KeyError(f"No document to update: {self._collection_path}/{self.id}")
        self._docs[self.id].update(copy.deepcopy(data))

    def delete(self):
        self._docs.pop(self.id, None)

    def collection(self, name):
        return FakeCollectionReference(self._store, f"{self._collection_path}/{self.id}/{name}")


class FakeQuery:
    def __init__(self, store, path, filters=None, order=None, limit_to=None):
        self._store = store
        self._path = path
        self._filters = filters or []
        self._order = order
        self._limit = limit_to

    def _copy(self, **changes):
        params = dict(filters=list(self._filters), order=self._order, limit_to=self._limit)
        params.update(changes)
        return FakeQuery(self._store, self._path, **params)

    def where(self, field, op, value):
        if op != '==':
            raise NotImplementedError(f"FakeQuery only supports '==', got {op!r}")
        return self._copy(filters=self._filters + [(field, value)])

    def order_by(self, field, direction="ASCENDING"):
        return self._copy(order=(field, str(direction).upper().startswith("DESC")))

    def limit(self, count):
        return self._copy(limit_to=count)

    def stream(self):
        docs = self._store.get(self._path, {})
        rows = [
            (doc_id, data) for doc_id, data in docs.items()
            if all(data.get(field) == value for field, value in self._filters)
        ]
        if self._order:
            field, descending = self._order
            rows = [row for row in rows if row[1].get(field) is not None]
            rows.sort(key=lambda row: _sort_key(row[1][field]), reverse=descending)
        if self._limit is not None:
            rows = rows[:self._limit]
        return iter([
            FakeDocumentSnapshot(FakeDocumentReference(self._store, self._path, doc_id), copy.deepcopy(data))
            for doc_id, data in rows
        ])


class FakeCollectionReference(FakeQuery):
    def __init__(self, store, path):
        super().__init__(store, path)

    def document(self, doc_id=None):
        return FakeDocumentReference(self._store, self._path, doc_id or uuid.uuid4().hex)


class FakeFirestore:
    """Collections keyed by path ('pets', 'pets/<id>/locations', ...)."""

    def __init__(self):
        self.store = {}

    def collection(self, name):
        return FakeCollectionReference(self.store, name)

    def rows(self, path):
        return self.store.get(path, {})


# --- Storage fake ---
class FakeBlob:
    def __init__(self, name):
        self.name = name
        self.content = None
        self.content_type = None
        self.public = False

    def upload_from_file(self, stream, content_type=None):
        self.content = stream.read()
        self.content_type = content_type

    def make_public(self):
        self.public = True

    @property
    def public_url(self):
        return f"https://storage.example/{self.name}"


class FakeBucket:
    def __init__(self):
        self.blobs = {}

    def blob(self, name):
        return self.blobs.setdefault(name, FakeBlob(name))


class FakeGeocoder:
    """Stands in for GeocodingService; returns a fixed (city, country)."""

    def __init__(self, city="São Paulo", country="Brasil"):
        self.result = (city, country)
        self.calls = []

    def reverse(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        return self.result


# --- fixtures ---
@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def bucket():
    return FakeBucket()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def app(db, bucket, geocoder):
    app = create_app('testing', db=db, bucket=bucket)
    app.services['geocoding'] = geocoder
    app.services['pet_info'].geocoding_service = geocoder
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create a profile row and return its uid."""
    def _make_user(user_id="user-1", email=None, is_admin=False, created_at=None):
        profile = UserProfile(user_id=user_id, email=email or f"{user_id}@example.com", is_admin=is_admin)
        if created_at is not None:
            profile.created_at = created_at
        app.services['profiles'].profiles_ref.document(user_id).set(profile.to_dict())
        return user_id
    return _make_user


@pytest.fixture
def auth_headers(app):
    """Authorization header carrying a fresh access token for `user_id`."""
    def _auth_headers(user_id):
        with app.app_context():
            token = create_access_token(identity=user_id)
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture
def token_pair(app):
    def _token_pair(user_id):
        with app.app_context():
            return create_access_token(identity=user_id), create_refresh_token(identity=user_id)
    return _token_pair


@pytest.fixture
def pet_form():
    return {
        "pet_name": "Rex",
        "owner_name": "João",
        "phone": "(11) 99999-9999",
        "address": "Rua das Flores, 100",
        "notes": "Dócil, usa coleira azul",
        "reward": "150.00",
    }


@pytest.fixture
def make_pet(app, pet_form):
    """Persist a pet through PetService and return the PetRecord."""
    def _make_pet(owner_id=None, **overrides):
        return app.services['pets'].create_pet({**pet_form, **overrides}, owner_id=owner_id)
    return _make_pet
