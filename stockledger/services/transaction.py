"""
Tenant-scoped read-modify-write transactions.

Invariants:
- At most one writer per tenant at a time (per-tenant lock held from load
  to save). Different tenants never share a lock.
- The working snapshot is persisted only when the block exits normally.
  Any exception discards it, so the durable state is either the full set
  of changes or none of them.
- Reads take no lock and see the last committed snapshot.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from stockledger.config import settings
from stockledger.exceptions import ConcurrencyError
from stockledger.schemas.ledger import TenantSnapshot
from stockledger.services.store import SnapshotStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TenantLedger:
    def __init__(self, store: SnapshotStore, lock_timeout: float | None = None):
        self.store = store
        self.lock_timeout = settings.LOCK_TIMEOUT_SECONDS if lock_timeout is None else lock_timeout
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, tenant_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(tenant_id)
            if lock is None:
                lock = self._locks[tenant_id] = threading.Lock()
            return lock

    @contextmanager
    def transaction(self, tenant_id: str) -> Iterator[TenantSnapshot]:
        lock = self._lock_for(tenant_id)
        if not lock.acquire(timeout=self.lock_timeout):
            logger.warning("Timed out after %ss waiting for tenant %s write scope", self.lock_timeout, tenant_id)
            raise ConcurrencyError(tenant_id, "timed out waiting for write scope")
        try:
            snapshot, version = self.store.load_versioned(tenant_id)
            try:
                yield snapshot
            except Exception as exc:
                logger.info("Rolled back tenant %s transaction: %s", tenant_id, type(exc).__name__)
                raise
            new_version = self.store.save(tenant_id, snapshot, expected_version=version)
            logger.debug("Committed tenant %s at version %d", tenant_id, new_version)
        finally:
            lock.release()

    def with_tenant_transaction(self, tenant_id: str, fn: Callable[[TenantSnapshot], T]) -> T:
        with self.transaction(tenant_id) as snapshot:
            return fn(snapshot)

    def read(self, tenant_id: str) -> TenantSnapshot:
        return self.store.load(tenant_id)
