import logging
import os
import pickle
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path

from ..exceptions import DependencyError, OperationTimeoutError

logger = logging.getLogger(__name__)

_COLLECTIONS = ("vehicles", "contracts", "rent_requests", "status_history")


class Store:
    """
    In-memory record store with optional pickle persistence.

    Records are plain dicts. Writers never mutate a stored dict in place: they
    replace it, so a shallow snapshot of each collection is enough to roll a
    failed write back. ``path=None`` keeps everything in memory.
    """

    def __init__(self, path: str | os.PathLike | None = None):
        self.path = str(path) if path else None
        self.vehicles: dict[str, dict] = {}
        self.contracts: dict[str, dict] = {}
        self.rent_requests: dict[str, dict] = {}
        self.status_history: dict[str, list[dict]] = {}
        self._rw = threading.RLock()
        self._locks_guard = threading.Lock()
        self._vehicle_locks: dict[str, threading.Lock] = {}

        if self.path:
            logger.info("Using store file %s", self.path)
            self._load()

    # ---------- Persistence ----------
    def _load(self):
        """Load data from the pickle file, or start empty if unavailable or invalid."""
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "rb") as f:
                data = pickle.load(f)
        except (OSError, pickle.UnpicklingError, EOFError) as e:
            logger.warning("Store load failed (%s); starting empty", e)
            return

        if isinstance(data, dict) and all(isinstance(data.get(k, {}), dict) for k in _COLLECTIONS):
            for name in _COLLECTIONS:
                setattr(self, name, data.get(name) or {})
            logger.info(
                "Loaded store: vehicles=%d, contracts=%d, rent_requests=%d",
                len(self.vehicles), len(self.contracts), len(self.rent_requests),
            )
        else:
            # Incompatible format: back the old file up and start empty
            bak = self.path + ".bak"
            try:
                os.replace(self.path, bak)
                logger.warning("Incompatible store (%s); backed up to %s", type(data).__name__, bak)
            except OSError as e:
                logger.warning("Incompatible store (%s); backup failed: %s", type(data).__name__, e)

    def _dump(self):
        """Write the in-memory data to the pickle file safely (atomic replace)."""
        if not self.path:
            return
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path + ".tmp"
        payload = {name: getattr(self, name) for name in _COLLECTIONS}
        with open(tmp, "wb") as f:
            pickle.dump(payload, f, protocol=pickle.HIGHEST_PROTOCOL)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self.path)

    def save(self):
        with self._rw:
            self._dump()

    @contextmanager
    def transaction(self):
        """
        Apply a group of writes as a unit: either all of them are kept and
        persisted, or the in-memory state is restored and the error raised.
        """
        with self._rw:
            snapshot = {name: dict(getattr(self, name)) for name in _COLLECTIONS}
            try:
                yield self
                self._dump()
            except (OSError, pickle.PicklingError) as e:
                self._restore(snapshot)
                logger.error("Store write failed: %s", e)
                raise DependencyError(f"Error: could not persist changes ({e})") from e
            except BaseException:
                self._restore(snapshot)
                raise

    def _restore(self, snapshot: dict):
        for name, value in snapshot.items():
            setattr(self, name, value)

    # ---------- Locking ----------
    @contextmanager
    def vehicle_lock(self, vehicle_id: str, timeout: float | None = None):
        """
        Mutual exclusion per vehicle, held across check-then-act sequences
        (duplicate/conflict check followed by a write).
        """
        with self._locks_guard:
            lock = self._vehicle_locks.setdefault(str(vehicle_id), threading.Lock())
        acquired = lock.acquire(timeout=-1 if timeout is None else max(timeout, 0))
        if not acquired:
            raise OperationTimeoutError(
                f"Error: timed out waiting for vehicle {vehicle_id}",
                {"vehicle_id": str(vehicle_id)},
            )
        try:
            yield
        finally:
            lock.release()

    # ---------- Vehicles ----------
    def create_vehicle(self, data: dict) -> str:
        """Create a new vehicle record and return its ID."""
        with self.transaction():
            vid = str(data.get("vehicle_id") or uuid.uuid4())
            self.vehicles[vid] = {
                "vehicle_id": vid,
                "make": data.get("make", ""),
                "model": data.get("model", ""),
                "year": data.get("year"),
                "price_per_day": float(data.get("price_per_day") or 0),
                "currency": data.get("currency", "DZD"),
                "is_active": bool(data.get("is_active", True)),
            }
            return vid

    def get_vehicle(self, vehicle_id: str) -> dict | None:
        return self.vehicles.get(str(vehicle_id))

    # ---------- Contracts ----------
    def create_contract(self, data: dict) -> str:
        """Create a rental contract record (read-only for the request core)."""
        with self.transaction():
            cid = str(data.get("id") or uuid.uuid4())
            self.contracts[cid] = {
                "id": cid,
                "contract_number": data.get("contract_number") or f"CTR-{cid[:8].upper()}",
                "vehicle_id": str(data["vehicle_id"]),
                "client_name": data.get("client_name", ""),
                "start_date": str(data["start_date"]),
                "end_date": str(data["end_date"]),
                "status": str(data.get("status", "CONFIRMED")),
            }
            return cid

    def contracts_for_vehicle(self, vehicle_id: str) -> list[dict]:
        with self._rw:
            return [c for c in self.contracts.values() if c.get("vehicle_id") == str(vehicle_id)]

    # ---------- Rent requests ----------
    def insert_rent_request(self, record: dict, history_entry: dict) -> dict:
        """Store a new request together with its first history entry."""
        with self.transaction():
            pk = record["id"]
            self.rent_requests[pk] = dict(record)
            self.status_history[pk] = [dict(history_entry)]
            return self.rent_requests[pk]

    def get_rent_request(self, pk: str) -> dict | None:
        return self.rent_requests.get(str(pk))

    def find_by_request_id(self, request_id: str) -> dict | None:
        with self._rw:
            for r in self.rent_requests.values():
                if r.get("request_id") == request_id:
                    return r
        return None

    def request_id_exists(self, request_id: str) -> bool:
        return self.find_by_request_id(request_id) is not None

    def all_rent_requests(self) -> list[dict]:
        with self._rw:
            return list(self.rent_requests.values())

    def rent_requests_for_vehicle(self, vehicle_id: str) -> list[dict]:
        with self._rw:
            return [r for r in self.rent_requests.values() if r.get("vehicle_id") == str(vehicle_id)]

    def update_rent_request(self, pk: str, updates: dict) -> dict | None:
        """Replace a request with an updated copy; None if it does not exist."""
        with self.transaction():
            current = self.rent_requests.get(pk)
            if current is None:
                return None
            self.rent_requests[pk] = {**current, **updates}
            return self.rent_requests[pk]

    def commit_transition(self, pk: str, updates: dict, history_entry: dict) -> dict | None:
        """Apply a status change and append its history entry in one unit."""
        with self.transaction():
            current = self.rent_requests.get(pk)
            if current is None:
                return None
            self.rent_requests[pk] = {**current, **updates}
            self.status_history[pk] = [*self.status_history.get(pk, []), dict(history_entry)]
            return self.rent_requests[pk]

    def delete_rent_request(self, pk: str) -> bool:
        """Delete a request and its history."""
        with self.transaction():
            if pk not in self.rent_requests:
                return False
            del self.rent_requests[pk]
            self.status_history.pop(pk, None)
            return True

    def history_for(self, pk: str) -> list[dict]:
        with self._rw:
            return list(self.status_history.get(str(pk), []))
