from fastapi import Header, HTTPException

from stockledger.database import SessionLocal
from stockledger.schemas.identity import Actor
from stockledger.services.store import SnapshotStore
from stockledger.services.transaction import TenantLedger

# One lock registry per process
ledger = TenantLedger(SnapshotStore(SessionLocal))


def get_ledger() -> TenantLedger:
    """Dependency: the process-wide ledger."""
    return ledger


def get_actor(
    actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
    role: str | None = Header(default=None, alias="X-Actor-Role"),
    tenant_id: str | None = Header(default=None, alias="X-Tenant-Id"),
) -> Actor:
    """Dependency: identity verified upstream by the gateway."""
    if not actor_id or not tenant_id:
        raise HTTPException(401, "Not authenticated")
    return Actor(actor_id=actor_id, role=role or "staff", tenant_id=tenant_id)
