"""
Persistence for the front desk.

The Store keeps five collections in memory and writes each one back as a
JSON array under a fixed key after every mutation. Where the arrays live is
up to the storage backend: a directory of JSON files (default), a plain dict,
or a MongoDB collection.
"""
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, TypeAdapter, ValidationError

from schemas import Appointment, Invoice, Message, Order, Patient

logger = logging.getLogger(__name__)

COLLECTIONS: Dict[str, Type[BaseModel]] = {
    "patients": Patient,
    "orders": Order,
    "invoices": Invoice,
    "appointments": Appointment,
    "messages": Message,
}

_ADAPTERS: Dict[str, TypeAdapter] = {name: TypeAdapter(List[model]) for name, model in COLLECTIONS.items()}


# -----------------------------
# Storage backends
# -----------------------------
class MemoryStorage:
    def __init__(self, items: Optional[Dict[str, str]] = None):
        self.items: Dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value


class FileStorage:
    """One ``<key>.json`` file per collection inside ``directory``."""

    def __init__(self, directory):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)


class MongoStorage:
    """Keeps each collection's JSON text in a document keyed by name."""

    def __init__(self, collection):
        self.collection = collection

    def get_item(self, key: str) -> Optional[str]:
        doc = self.collection.find_one({"_id": key})
        if not doc:
            return None
        return doc.get("value")

    def set_item(self, key: str, value: str) -> None:
        self.collection.replace_one({"_id": key}, {"_id": key, "value": value}, upsert=True)


def build_storage(settings):
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        return FileStorage(settings.DATA_DIR)
    if backend == "mongo":
        from pymongo import MongoClient

        if not settings.MONGO_URL:
            raise ValueError("MONGO_URL is required for the mongo storage backend")
        client = MongoClient(settings.MONGO_URL)
        return MongoStorage(client[settings.DATABASE_NAME]["storage"])
    raise ValueError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")


# -----------------------------
# Store
# -----------------------------
class Store:
    def __init__(self, storage):
        self.storage = storage
        # held across each mutation and its save; reentrant
        self.lock = threading.RLock()
        self.patients: List[Patient] = []
        self.orders: List[Order] = []
        self.invoices: List[Invoice] = []
        self.appointments: List[Appointment] = []
        self.messages: List[Message] = []

    def load(self) -> "Store":
        with self.lock:
            for name, model in COLLECTIONS.items():
                setattr(self, name, self._load_collection(name, model))
        return self

    def _load_collection(self, name: str, model: Type[BaseModel]) -> List[Any]:
        raw = self.storage.get_item(name)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Collection %s is not valid JSON, starting empty", name)
            return []
        if not isinstance(data, list):
            logger.warning("Collection %s is not a list, starting empty", name)
            return []

        records = []
        for item in data:
            try:
                records.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping malformed %s record: %s", name, e.errors()[0].get("msg"))
        return records

    def save(self) -> None:
        with self.lock:
            for name in COLLECTIONS:
                # NaN/inf become null, as in a browser's JSON.stringify
                payload = _ADAPTERS[name].dump_json(getattr(self, name), by_alias=True).decode("utf-8")
                try:
                    self.storage.set_item(name, payload)
                except Exception:
                    logger.exception("Failed to persist %s", name)
                    raise

    def find(self, collection: str, record_id: str) -> Optional[Any]:
        for r in getattr(self, collection):
            if r.id == record_id:
                return r
        return None

    def remove(self, collection: str, record_id: str) -> bool:
        with self.lock:
            records = getattr(self, collection)
            kept = [r for r in records if r.id != record_id]
            if len(kept) == len(records):
                return False
            setattr(self, collection, kept)
            return True
