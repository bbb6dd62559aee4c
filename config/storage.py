"""
Key-value persistence management.

Provides the durable store behind the catalog, the in-progress inspection
form and the role preference. load() never raises: failures are logged and
the caller's default is returned. load_strict() raises StorageError instead,
for callers that must not mistake a failed read for an absent key. Writes
are best-effort.
"""

import json
import os
import tempfile
import threading
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import structlog
from supabase import create_client, Client

from config.settings import settings
from exceptions import StorageError

logger = structlog.get_logger(__name__)


# Storage keys
PRODUCTS_KEY = "products"
INSPECTION_FORM_KEY = "inspection_form"
ROLE_KEY = "current_role"

_MISSING = object()


def _drop_binary(value: Any) -> Any:
    """JSON fallback encoder: binary payloads are never persisted."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return None
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_storable(value: Any) -> Any:
    """Serialize to plain JSON types, replacing binary payloads with None."""
    return json.loads(json.dumps(value, default=_drop_binary))


class KeyValueStore:
    """
    Base key-value store.

    Subclasses implement _read/_write/_delete and may raise freely;
    the public methods log and absorb failures.
    """

    backend = "abstract"

    def _read(self, key: str) -> Any:
        raise NotImplementedError

    def _write(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def _delete(self, key: str) -> None:
        raise NotImplementedError

    def load(self, key: str, default: Any = None) -> Any:
        """
        Load a value.

        Args:
            key: Storage key
            default: Returned when the key is absent or unreadable

        Returns:
            Stored JSON value or default
        """
        try:
            return self.load_strict(key, default)
        except StorageError:
            return default

    def load_strict(self, key: str, default: Any = None) -> Any:
        """
        Load a value, telling an absent key apart from a failed read.

        Args:
            key: Storage key
            default: Returned only when the key is absent

        Returns:
            Stored JSON value or default

        Raises:
            StorageError: If the backend could not be read
        """
        try:
            value = self._read(key)
        except Exception as e:
            logger.error(
                "storage_load_failed",
                key=key,
                backend=self.backend,
                error=str(e)
            )
            raise StorageError(key, str(e))

        if value is _MISSING:
            return default
        return value

    def save(self, key: str, value: Any) -> bool:
        """
        Save a value.

        Args:
            key: Storage key
            value: JSON-serializable value (binary payloads are dropped)

        Returns:
            True if written, False if the write failed
        """
        try:
            self._write(key, to_storable(value))
            logger.debug("storage_saved", key=key, backend=self.backend)
            return True
        except Exception as e:
            logger.error(
                "storage_save_failed",
                key=key,
                backend=self.backend,
                error=str(e)
            )
            return False

    def remove(self, key: str) -> bool:
        """Remove a key. Missing keys are not an error."""
        try:
            self._delete(key)
            return True
        except Exception as e:
            logger.error(
                "storage_remove_failed",
                key=key,
                backend=self.backend,
                error=str(e)
            )
            return False


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. Used by tests and throwaway sessions."""

    backend = "memory"

    def __init__(self, initial: Optional[dict] = None):
        self._data: dict[str, Any] = {
            k: to_storable(v) for k, v in (initial or {}).items()
        }

    def _read(self, key: str) -> Any:
        if key not in self._data:
            return _MISSING
        # Hand out copies so callers cannot mutate stored state
        return to_storable(self._data[key])

    def _write(self, key: str, value: Any) -> None:
        self._data[key] = value

    def _delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Store backed by a single JSON document on disk.

    Writes go to a temp file first and are swapped in with os.replace.
    """

    backend = "file"

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_document(self) -> dict:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as fh:
            document = json.load(fh)
        if not isinstance(document, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return document

    def _write_document(self, document: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _read(self, key: str) -> Any:
        with self._lock:
            return self._read_document().get(key, _MISSING)

    def _write(self, key: str, value: Any) -> None:
        with self._lock:
            document = self._read_document()
            document[key] = value
            self._write_document(document)

    def _delete(self, key: str) -> None:
        with self._lock:
            document = self._read_document()
            if key in document:
                del document[key]
                self._write_document(document)


class SupabaseKeyValueStore(KeyValueStore):
    """Store backed by a Supabase table with `key` and `value` (jsonb) columns."""

    backend = "supabase"

    def __init__(self, client: Client, table: str = "kv_store"):
        self.db = client
        self.table = table

    def _read(self, key: str) -> Any:
        result = (
            self.db.table(self.table)
            .select("value")
            .eq("key", key)
            .execute()
        )
        if not result.data:
            return _MISSING
        return result.data[0]["value"]

    def _write(self, key: str, value: Any) -> None:
        self.db.table(self.table).upsert({"key": key, "value": value}).execute()

    def _delete(self, key: str) -> None:
        self.db.table(self.table).delete().eq("key", key).execute()


@lru_cache()
def get_store() -> KeyValueStore:
    """
    Get cached key-value store for the configured backend.

    Call get_store.cache_clear() (or reset_store()) to rebuild.

    Returns:
        KeyValueStore
    """
    backend = settings.storage_backend

    if backend == "memory":
        store: KeyValueStore = InMemoryKeyValueStore()
    elif backend == "supabase":
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )
        store = SupabaseKeyValueStore(
            create_client(settings.supabase_url, settings.supabase_key),
            table=settings.supabase_kv_table
        )
    else:
        store = JsonFileKeyValueStore(settings.storage_path)

    logger.info("storage_ready", backend=store.backend)
    return store


def check_storage() -> dict:
    """
    Check store health by round-tripping a marker value.

    Returns:
        dict: Status with backend name
    """
    store = get_store()
    marker_key = "__health__"
    if store.save(marker_key, {"ok": True}) and store.load(marker_key) == {"ok": True}:
        store.remove(marker_key)
        return {"status": "healthy", "backend": store.backend}
    return {"status": "unhealthy", "backend": store.backend}


def reset_store():
    """Drop the cached store so the next call rebuilds it."""
    get_store.cache_clear()
    logger.info("storage_reset")
