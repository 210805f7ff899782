"""
Backend-as-a-service collaborator.

Every read and write against the hosted tables goes through a
``BackendClient``: select/get/insert/update/delete/count plus
``subscribe`` for realtime inserts. Two implementations are provided:

- ``InMemoryBackend``: seeded from a JSON fixture, used in development and tests
- ``RestBackend``: PostgREST-style HTTP API (``/rest/v1/<table>``)

Realtime delivery is in-process: records inserted through a client are
broadcast to that client's subscribers in insert order. Missed events are
never replayed.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime
from pathlib import Path
import copy
import itertools
import json
import logging
import threading

import requests

from ..exceptions import BackendError

logger = logging.getLogger(__name__)


TABLES = (
    "properties",
    "investment_projects",
    "professionals",
    "favorites",
    "conversations",
    "messages",
    "user_roles",
    "property_inquiries",
    "profiles",
    "advertisements",
)

Record = Dict[str, Any]
Callback = Callable[[Record], None]


class Subscription:
    """Handle returned by ``subscribe``; call ``unsubscribe`` to stop delivery."""

    def __init__(self, backend: "BackendClient", table: str, callback: Callback,
                 filters: Optional[Dict[str, Any]] = None):
        self.table = table
        self.callback = callback
        self.filters = filters or {}
        self._backend = backend
        self.active = True

    def matches(self, record: Record) -> bool:
        return all(_same(record.get(k), v) for k, v in self.filters.items())

    def unsubscribe(self):
        """Stop receiving events. Safe to call more than once."""
        if self.active:
            self.active = False
            self._backend._remove_subscription(self)


class BackendClient(ABC):
    """
    Abstract base class for backend collaborators.

    Subclasses implement the table operations; subscription bookkeeping
    and broadcast are shared.
    """

    def __init__(self):
        self._subscriptions: List[Subscription] = []
        self._sub_lock = threading.Lock()

    @abstractmethod
    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Record]:
        """Return records of ``table`` whose columns equal ``filters``."""

    @abstractmethod
    def insert(self, table: str, record: Record) -> Record:
        """Insert a record and return it as stored."""

    @abstractmethod
    def update(self, table: str, record_id: Any, changes: Record) -> Optional[Record]:
        """Apply ``changes`` to one record; None when it does not exist."""

    @abstractmethod
    def delete(self, table: str, record_id: Any) -> bool:
        """Delete one record; False when it does not exist."""

    def get(self, table: str, record_id: Any) -> Optional[Record]:
        """Fetch one record by id."""
        rows = self.select(table, {"id": record_id})
        return rows[0] if rows else None

    def count(self, table: str) -> int:
        """Number of records in ``table``."""
        return len(self.select(table))

    def ping(self) -> bool:
        """Whether the backend answers."""
        try:
            self.select("properties")
            return True
        except BackendError:
            return False

    # ---- realtime ----

    def subscribe(self, table: str, callback: Callback,
                  filters: Optional[Dict[str, Any]] = None) -> Subscription:
        """
        Register ``callback`` for records inserted into ``table``.

        Args:
            table: Table to watch
            callback: Called with each inserted record
            filters: Optional column equality filters

        Returns:
            Subscription handle
        """
        subscription = Subscription(self, table, callback, filters)
        with self._sub_lock:
            self._subscriptions.append(subscription)
        return subscription

    def _remove_subscription(self, subscription: Subscription):
        with self._sub_lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _broadcast(self, table: str, record: Record):
        with self._sub_lock:
            targets = [
                s for s in self._subscriptions
                if s.active and s.table == table and s.matches(record)
            ]
        for subscription in targets:
            try:
                subscription.callback(copy.deepcopy(record))
            except Exception as e:
                logger.error(f"Realtime callback failed on {table}: {e}", exc_info=True)


class InMemoryBackend(BackendClient):
    """
    Backend held in process memory.

    Ids are assigned from a per-table counter unless the record carries one.
    """

    def __init__(self, seed: Optional[Dict[str, List[Record]]] = None):
        super().__init__()
        self._tables: Dict[str, List[Record]] = {table: [] for table in TABLES}
        self._counters: Dict[str, itertools.count] = {}
        self._lock = threading.Lock()

        for table, rows in (seed or {}).items():
            self._tables[table] = [copy.deepcopy(row) for row in rows]

        for table, rows in self._tables.items():
            numeric_ids = [r["id"] for r in rows if isinstance(r.get("id"), int)]
            self._counters[table] = itertools.count(max(numeric_ids, default=0) + 1)

    @classmethod
    def from_json(cls, path: Path) -> "InMemoryBackend":
        """
        Build a backend seeded from a JSON file mapping table names to rows.

        A missing file yields an empty backend.
        """
        path = Path(path)
        if not path.exists():
            logger.warning(f"Seed file {path} not found, starting with empty tables")
            return cls()
        try:
            seed = json.loads(path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise BackendError(f"Invalid seed file {path}: {e}")
        return cls(seed)

    def _table(self, table: str) -> List[Record]:
        if table not in self._tables:
            raise BackendError(f"Unknown table '{table}'", table)
        return self._tables[table]

    def select(self, table, filters=None, order_by=None, descending=False):
        with self._lock:
            rows = [
                copy.deepcopy(r) for r in self._table(table)
                if all(_same(r.get(k), v) for k, v in (filters or {}).items())
            ]
        if order_by:
            rows.sort(key=lambda r: _sort_key(r.get(order_by)), reverse=descending)
        return rows

    def insert(self, table, record):
        with self._lock:
            rows = self._table(table)
            stored = copy.deepcopy(record)
            stored.setdefault("id", next(self._counters[table]))
            stored.setdefault("created_at", datetime.now().isoformat())
            rows.append(stored)
            result = copy.deepcopy(stored)
        self._broadcast(table, result)
        return result

    def update(self, table, record_id, changes):
        with self._lock:
            for row in self._table(table):
                if _same(row.get("id"), record_id):
                    row.update(copy.deepcopy(changes))
                    return copy.deepcopy(row)
        return None

    def delete(self, table, record_id):
        with self._lock:
            rows = self._table(table)
            for i, row in enumerate(rows):
                if _same(row.get("id"), record_id):
                    del rows[i]
                    return True
        return False


def _same(left: Any, right: Any) -> bool:
    """Compare ids and column values loosely so 1 and "1" match."""
    if left == right:
        return True
    if left is None or right is None:
        return False
    return str(left) == str(right)


def _sort_key(value: Any):
    """Order numbers before strings and None last, so mixed id columns sort."""
    if value is None:
        return (True, False, 0)
    if isinstance(value, str):
        return (False, True, value)
    return (False, False, value)


class RestBackend(BackendClient):
    """
    PostgREST-style HTTP backend.

    Equality filters are sent as ``column=eq.value`` and ordering as
    ``order=column.asc|desc``. Any transport or HTTP error raises
    ``BackendError``.
    """

    def __init__(self, base_url: str, api_key: str, timeout: float = 30.0):
        super().__init__()
        if not base_url:
            raise BackendError("BAAS_URL is not configured")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
        })

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _request(self, method: str, table: str, **kwargs) -> Any:
        try:
            resp = self.session.request(method, self._url(table), timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            if not resp.content:
                return []
            return resp.json()
        except requests.exceptions.HTTPError as e:
            logger.error(f"[{table}] HTTP {e.response.status_code}: {e}")
            raise BackendError(f"{method} {table} failed with HTTP {e.response.status_code}", table)
        except requests.exceptions.RequestException as e:
            logger.error(f"[{table}] Request failed: {e}")
            raise BackendError(f"{method} {table} failed: {e}", table)
        except ValueError:
            logger.error(f"[{table}] Invalid JSON response")
            raise BackendError(f"{method} {table} returned invalid JSON", table)

    @staticmethod
    def _filter_params(filters: Optional[Dict[str, Any]]) -> Dict[str, str]:
        params = {}
        for column, value in (filters or {}).items():
            if isinstance(value, bool):
                value = str(value).lower()
            params[column] = f"eq.{value}"
        return params

    def select(self, table, filters=None, order_by=None, descending=False):
        params = {"select": "*", **self._filter_params(filters)}
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        return self._request("GET", table, params=params)

    def insert(self, table, record):
        rows = self._request(
            "POST", table, json=record, headers={"Prefer": "return=representation"}
        )
        stored = rows[0] if isinstance(rows, list) and rows else dict(record)
        self._broadcast(table, stored)
        return stored

    def update(self, table, record_id, changes):
        rows = self._request(
            "PATCH", table,
            params=self._filter_params({"id": record_id}),
            json=changes,
            headers={"Prefer": "return=representation"},
        )
        return rows[0] if rows else None

    def delete(self, table, record_id):
        rows = self._request(
            "DELETE", table,
            params=self._filter_params({"id": record_id}),
            headers={"Prefer": "return=representation"},
        )
        return bool(rows)

    def count(self, table):
        return len(self._request("GET", table, params={"select": "id"}))


class ObjectStorage:
    """
    File storage returning public URLs.

    Keeps uploads in memory; the URL layout follows the hosted storage
    convention ``<base>/storage/v1/object/public/<bucket>/<path>``.
    """

    def __init__(self, public_base_url: str):
        self.public_base_url = public_base_url.rstrip("/")
        self._objects: Dict[str, bytes] = {}

    def upload(self, bucket: str, path: str, data: bytes) -> str:
        """Store ``data`` and return its public URL."""
        key = f"{bucket}/{path.lstrip('/')}"
        self._objects[key] = data
        return self.public_url(bucket, path)

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/storage/v1/object/public/{bucket}/{path.lstrip('/')}"

    def download(self, bucket: str, path: str) -> Optional[bytes]:
        return self._objects.get(f"{bucket}/{path.lstrip('/')}")


def create_backend(settings) -> BackendClient:
    """
    Build the backend configured in ``settings.BACKEND_TYPE``.

    Args:
        settings: Application settings

    Returns:
        BackendClient instance
    """
    backend_type = settings.BACKEND_TYPE.lower()
    if backend_type == "rest":
        logger.info(f"Using REST backend at {settings.BAAS_URL}")
        return RestBackend(settings.BAAS_URL, settings.BAAS_API_KEY, settings.BAAS_TIMEOUT)
    if backend_type == "memory":
        logger.info(f"Using in-memory backend seeded from {settings.SEED_DATA_PATH}")
        return InMemoryBackend.from_json(settings.SEED_DATA_PATH)
    raise ValueError(f"Unknown BACKEND_TYPE '{settings.BACKEND_TYPE}'")
