from pydantic import BaseModel


class Actor(BaseModel):
    """Verified caller identity. Trusted as-is; verification happens upstream."""

    actor_id: str
    role: str
    tenant_id: str  # licence key

    model_config = {"frozen": True}
