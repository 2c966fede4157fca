import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from stockledger.exceptions import ConcurrencyError, StoreError
from stockledger.models.snapshot import TenantSnapshotRecord
from stockledger.schemas.ledger import TenantSnapshot

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Durable get/put of one document per tenant.

    ``save`` is a compare-and-set on the version read by ``load_versioned``,
    so a writer in another process can never be silently overwritten.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def load_versioned(self, tenant_id: str) -> tuple[TenantSnapshot, int]:
        try:
            with self._session_factory() as db:
                record = db.get(TenantSnapshotRecord, tenant_id)
                if record is None:
                    return TenantSnapshot(tenant_id=tenant_id), 0
                return TenantSnapshot.model_validate_json(record.document), record.version
        except SQLAlchemyError as exc:
            logger.error("Failed to load snapshot for tenant %s: %s", tenant_id, exc)
            raise StoreError(f"Could not load tenant {tenant_id}") from exc

    def load(self, tenant_id: str) -> TenantSnapshot:
        return self.load_versioned(tenant_id)[0]

    def save(self, tenant_id: str, snapshot: TenantSnapshot, expected_version: int) -> int:
        """Persist ``snapshot`` and return the new version."""
        document = snapshot.model_dump_json()
        new_version = expected_version + 1
        try:
            with self._session_factory() as db:
                if expected_version == 0:
                    db.add(TenantSnapshotRecord(tenant_id=tenant_id, document=document, version=new_version))
                else:
                    result = db.execute(
                        update(TenantSnapshotRecord)
                        .where(
                            TenantSnapshotRecord.tenant_id == tenant_id,
                            TenantSnapshotRecord.version == expected_version,
                        )
                        .values(document=document, version=new_version)
                    )
                    if result.rowcount != 1:
                        db.rollback()
                        raise ConcurrencyError(tenant_id, f"snapshot changed since version {expected_version}")
                db.commit()
        except IntegrityError as exc:
            raise ConcurrencyError(tenant_id, "snapshot created concurrently") from exc
        except SQLAlchemyError as exc:
            logger.error("Failed to save snapshot for tenant %s: %s", tenant_id, exc)
            raise StoreError(f"Could not save tenant {tenant_id}") from exc
        return new_version
