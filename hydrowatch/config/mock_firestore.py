"""
In-process stand-in for the Firestore client used in local development and tests.

Covers the subset of the client API HydroWatch uses:
collection().document().create/set/get/update/delete, where/order_by/limit/stream,
ArrayUnion/ArrayRemove/SERVER_TIMESTAMP transforms and dotted field paths.

When a path is given, the whole database is written to a JSON file after
every mutation so data survives restarts.
"""

import copy
import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from firebase_admin import firestore
from google.api_core.exceptions import AlreadyExists, NotFound

logger = logging.getLogger(__name__)

_DATETIME_KEY = "__datetime__"


def _json_default(value):
    if isinstance(value, datetime):
        return {_DATETIME_KEY: value.isoformat()}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _json_object_hook(obj):
    if len(obj) == 1 and _DATETIME_KEY in obj:
        return datetime.fromisoformat(obj[_DATETIME_KEY])
    return obj


def _get_path(data: Dict, field_path: str) -> Tuple[bool, Any]:
    current: Any = data
    for part in field_path.split("."):
        if not isinstance(current, dict) or part not in current:
            return False, None
        current = current[part]
    return True, current


def _set_path(data: Dict, field_path: str, value: Any) -> None:
    parts = field_path.split(".")
    current = data
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value


def _apply_transform(existing: Any, value: Any) -> Any:
    if value is firestore.SERVER_TIMESTAMP:
        return datetime.now(timezone.utc)
    if isinstance(value, firestore.ArrayUnion):
        result = list(existing) if isinstance(existing, list) else []
        for item in value.values:
            if item not in result:
                result.append(copy.deepcopy(item))
        return result
    if isinstance(value, firestore.ArrayRemove):
        result = list(existing) if isinstance(existing, list) else []
        return [item for item in result if item not in value.values]
    if isinstance(value, dict):
        base = existing if isinstance(existing, dict) else {}
        return {key: _apply_transform(base.get(key), item) for key, item in value.items()}
    return copy.deepcopy(value)


_OPERATORS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "in": lambda a, b: a in b,
    "array_contains": lambda a, b: isinstance(a, list) and b in a,
}


class MockDocumentSnapshot:
    def __init__(self, reference: "MockDocumentReference", data: Optional[Dict]):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict]:
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field_path: str) -> Any:
        found, value = _get_path(self._data or {}, field_path)
        return copy.deepcopy(value) if found else None


class MockDocumentReference:
    def __init__(self, db: "MockFirestore", collection: str, document_id: str):
        self._db = db
        self._collection = collection
        self.id = document_id

    @property
    def path(self) -> str:
        return f"{self._collection}/{self.id}"

    def create(self, document_data: Dict) -> None:
        with self._db._lock:
            docs = self._db._store.setdefault(self._collection, {})
            if self.id in docs:
                raise AlreadyExists(f"Document already exists: {self.path}")
            docs[self.id] = _apply_transform(None, document_data)
            self._db._save()

    def set(self, document_data: Dict, merge: bool = False) -> None:
        with self._db._lock:
            docs = self._db._store.setdefault(self._collection, {})
            existing = docs.get(self.id) if merge else None
            docs[self.id] = _apply_transform(existing, document_data)
            self._db._save()

    def update(self, field_updates: Dict) -> None:
        with self._db._lock:
            docs = self._db._store.setdefault(self._collection, {})
            if self.id not in docs:
                raise NotFound(f"No document to update: {self.path}")
            doc = docs[self.id]
            for field_path, value in field_updates.items():
                _, existing = _get_path(doc, field_path)
                _set_path(doc, field_path, _apply_transform(existing, value))
            self._db._save()

    def get(self) -> MockDocumentSnapshot:
        with self._db._lock:
            data = self._db._store.get(self._collection, {}).get(self.id)
            return MockDocumentSnapshot(self, copy.deepcopy(data))

    def delete(self) -> None:
        with self._db._lock:
            self._db._store.get(self._collection, {}).pop(self.id, None)
            self._db._save()


class MockQuery:
    def __init__(self, db: "MockFirestore", collection: str):
        self._db = db
        self._collection = collection
        self._filters: List[Tuple[str, str, Any]] = []
        self._orders: List[Tuple[str, str]] = []
        self._limit: Optional[int] = None

    def _copy(self) -> "MockQuery":
        clone = MockQuery(self._db, self._collection)
        clone._filters = list(self._filters)
        clone._orders = list(self._orders)
        clone._limit = self._limit
        return clone

    def where(self, field_path: str, op_string: str, value: Any) -> "MockQuery":
        if op_string not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {op_string}")
        clone = self._copy()
        clone._filters.append((field_path, op_string, value))
        return clone

    def order_by(self, field_path: str, direction: str = firestore.Query.ASCENDING) -> "MockQuery":
        clone = self._copy()
        clone._orders.append((field_path, direction))
        return clone

    def limit(self, count: int) -> "MockQuery":
        clone = self._copy()
        clone._limit = count
        return clone

    def stream(self) -> Iterator[MockDocumentSnapshot]:
        with self._db._lock:
            items = list(copy.deepcopy(self._db._store.get(self._collection, {})).items())

        matched = []
        for doc_id, data in items:
            keep = True
            for field_path, op_string, value in self._filters:
                found, current = _get_path(data, field_path)
                if not found or not _OPERATORS[op_string](current, value):
                    keep = False
                    break
            if keep:
                matched.append((doc_id, data))

        # Firestore drops documents that lack an ordered field
        for field_path, direction in reversed(self._orders):
            matched = [item for item in matched if _get_path(item[1], field_path)[0]]
            matched.sort(
                key=lambda item: _get_path(item[1], field_path)[1],
                reverse=direction == firestore.Query.DESCENDING,
            )

        if self._limit is not None:
            matched = matched[: self._limit]

        for doc_id, data in matched:
            yield MockDocumentSnapshot(MockDocumentReference(self._db, self._collection, doc_id), data)

    def get(self) -> List[MockDocumentSnapshot]:
        return list(self.stream())


class MockCollectionReference(MockQuery):
    @property
    def id(self) -> str:
        return self._collection

    def document(self, document_id: Optional[str] = None) -> MockDocumentReference:
        return MockDocumentReference(self._db, self._collection, document_id or uuid.uuid4().hex[:20])


class MockFirestore:
    """Dictionary-backed database: {collection: {document_id: data}}."""

    def __init__(self, path: Optional[str] = None):
        self._path = path
        self._lock = threading.RLock()
        self._store: Dict[str, Dict[str, Dict]] = {}
        self._load()

    def collection(self, name: str) -> MockCollectionReference:
        return MockCollectionReference(self, name)

    def collections(self) -> List[MockCollectionReference]:
        with self._lock:
            return [MockCollectionReference(self, name) for name in self._store]

    def reset(self) -> None:
        with self._lock:
            self._store = {}
            self._save()

    def _load(self) -> None:
        if not self._path or not os.path.exists(self._path):
            return
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                self._store = json.load(f, object_hook=_json_object_hook)
            logger.info(f"[MOCK DB] Loaded {sum(len(d) for d in self._store.values())} documents from {self._path}")
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[MOCK DB] Could not load {self._path}, starting empty: {e}")
            self._store = {}

    def _save(self) -> None:
        if not self._path:
            return
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(self._store, f, default=_json_default, indent=2)


_mock_db: Optional[MockFirestore] = None


def get_mock_db(path: Optional[str] = None) -> MockFirestore:
    """Get or create the process-wide mock database."""
    global _mock_db
    if _mock_db is None:
        _mock_db = MockFirestore(path)
    return _mock_db
