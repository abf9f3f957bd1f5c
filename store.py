"""
Entity store adapter.

Reads and writes whole entities to MongoDB collections. Reads never raise:
when the collection can't be read, or is empty, the caller's fallback data is
returned and the result says so. Writes report success or failure and queue
failed writes in a local outbox so they can be replayed later.
"""

import json
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from bson.errors import InvalidDocument
from pymongo.errors import PyMongoError

import database
from config import OUTBOX_PATH
from defaults import DEFAULT_SETTINGS, INITIAL_CARS
from schemas import SETTINGS_COLLECTION

logger = logging.getLogger(__name__)

FRESH = "fresh"
FALLBACK = "fallback"
EMPTY = "collection empty"

# Document key of the settings singleton
SINGLETON_KEY = "current"

STORE_ERRORS = (PyMongoError, InvalidDocument)

T = TypeVar("T")
Record = Dict[str, Any]


@dataclass
class StoreResult(Generic[T]):
    data: T
    status: str = FRESH
    reason: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.status == FALLBACK


@dataclass
class WriteResult:
    ok: bool
    queued: bool = False
    error: Optional[str] = None


class Outbox:
    """String-keyed cache of writes that didn't reach the database.

    Each key is a collection name. List writes queued for the same
    collection are merged by id, later fields winning; a singleton write
    replaces whatever was queued. With a `path` the cache survives restarts.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._lock = threading.RLock()
        self._entries: Dict[str, str] = {}
        if path and os.path.exists(path):
            with open(path, encoding="utf-8") as fh:
                self._entries = json.load(fh)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def put(self, key: str, value: Union[List[Record], Record]) -> None:
        with self._lock:
            queued = self.get(key)
            if isinstance(value, list) and isinstance(queued, list):
                value = _merge_by_id(queued, value)
            self._entries[key] = json.dumps(value, default=str)
            self._persist()

    def get(self, key: str) -> Optional[Union[List[Record], Record]]:
        with self._lock:
            raw = self._entries.get(key)
        return json.loads(raw) if raw is not None else None

    def settle(self, key: str, written: Union[List[Record], Record]) -> None:
        """Drop what a successful write of `written` has made redundant."""
        with self._lock:
            queued = self.get(key)
            if queued is None or isinstance(written, list) != isinstance(queued, list):
                return
            if not isinstance(written, list):
                # the singleton was replaced wholesale
                self.discard(key)
                return
            written_ids = {str(item["id"]) for item in written}
            remaining = [item for item in queued if str(item["id"]) not in written_ids]
            if remaining:
                self._entries[key] = json.dumps(remaining, default=str)
                self._persist()
            else:
                self.discard(key)

    def discard(self, key: str) -> None:
        with self._lock:
            if self._entries.pop(key, None) is not None:
                self._persist()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._persist()

    def flush(self, db=None) -> Dict[str, WriteResult]:
        """Replay queued writes; entries that succeed are removed."""
        results = {}
        for key in self.keys():
            value = self.get(key)
            if value is not None:
                results[key] = save(key, value, db=db, outbox=self, queue=False)
        return results

    def _persist(self) -> None:
        if not self.path:
            return
        with self._lock:
            with open(self.path, "w", encoding="utf-8") as fh:
                json.dump(self._entries, fh)


def _merge_by_id(queued: List[Record], incoming: List[Record]) -> List[Record]:
    merged = {str(item["id"]): item for item in queued}
    for item in incoming:
        item_id = str(item["id"])
        merged[item_id] = {**merged.get(item_id, {}), **item}
    return list(merged.values())


default_outbox = Outbox(OUTBOX_PATH)


def _resolve(db):
    return database.db if db is None else db


def _to_record(doc: Record) -> Record:
    record = {"id": str(doc["_id"])}
    record.update({k: v for k, v in doc.items() if k not in ("_id", "id")})
    return record


def fetch_all(collection: str, fallback: Optional[List[Record]] = None, db=None) -> StoreResult[List[Record]]:
    """Read every document of `collection` as `{"id": <key>, **fields}`."""
    fallback = [] if fallback is None else fallback
    db = _resolve(db)
    if db is None:
        return StoreResult(fallback, FALLBACK, "database not configured")
    try:
        records = [_to_record(doc) for doc in db[collection].find()]
    except STORE_ERRORS as e:
        logger.error("Failed to read collection %s, using fallback data: %s", collection, e)
        return StoreResult(fallback, FALLBACK, f"read failed: {e}")

    if not records:
        logger.info("Collection %s is empty, using fallback data", collection)
        return StoreResult(fallback, FALLBACK, EMPTY)
    return StoreResult(records)


def fetch_or_default(key: str, fallback: Union[List[Record], Record], db=None) -> StoreResult:
    """Like fetch_all, except the settings collection yields its single document."""
    if key != SETTINGS_COLLECTION:
        return fetch_all(key, fallback, db=db)

    db = _resolve(db)
    if db is None:
        return StoreResult(fallback, FALLBACK, "database not configured")
    try:
        doc = db[key].find_one()
    except STORE_ERRORS as e:
        logger.error("Failed to read %s, using default settings: %s", key, e)
        return StoreResult(fallback, FALLBACK, f"read failed: {e}")

    if doc is None:
        logger.info("%s is empty, using default settings", key)
        return StoreResult(fallback, FALLBACK, EMPTY)
    return StoreResult({k: v for k, v in doc.items() if k != "_id"})


def save(
    key: str,
    value: Union[List[Record], Record],
    db=None,
    outbox: Optional[Outbox] = None,
    queue: bool = True,
) -> WriteResult:
    """Persist `value` under collection `key`.

    A list is upserted item by item, merging into existing documents keyed by
    each item's id. A single object replaces the singleton document.
    """
    if isinstance(value, list):
        missing = [item for item in value if not item.get("id")]
        if missing:
            raise ValueError(f"{len(missing)} record(s) for {key} have no id")

    outbox = default_outbox if outbox is None else outbox
    db = _resolve(db)
    error = None
    if db is None:
        error = "database not configured"
    else:
        try:
            _write(db[key], value)
        except STORE_ERRORS as e:
            error = str(e)

    if error is not None:
        logger.error("Failed to save %s: %s", key, error)
        if queue:
            outbox.put(key, value)
            logger.info("Queued write for %s in outbox", key)
        return WriteResult(ok=False, queued=queue, error=error)

    # what was just written no longer needs replaying
    outbox.settle(key, value)
    return WriteResult(ok=True)


def _write(coll, value: Union[List[Record], Record]) -> None:
    if isinstance(value, list):
        for item in value:
            fields = {k: v for k, v in item.items() if k != "id"}
            coll.update_one({"_id": item["id"]}, {"$set": fields}, upsert=True)
    else:
        coll.replace_one({"_id": SINGLETON_KEY}, dict(value), upsert=True)


def initialize_data(db=None) -> Dict[str, WriteResult]:
    """Seed the settings singleton and the car fleet when they are empty."""
    db = _resolve(db)
    if db is None:
        logger.warning("No database configured, skipping data initialisation")
        return {}

    seeded = {}
    try:
        if db[SETTINGS_COLLECTION].count_documents({}) == 0:
            seeded[SETTINGS_COLLECTION] = save(SETTINGS_COLLECTION, DEFAULT_SETTINGS, db=db)
            logger.info("Initialised %s", SETTINGS_COLLECTION)
        if db["cars"].count_documents({}) == 0:
            seeded["cars"] = save("cars", INITIAL_CARS, db=db)
            logger.info("Initialised cars from seed data")
    except STORE_ERRORS as e:
        logger.error("Data initialisation failed: %s", e)
    return seeded
