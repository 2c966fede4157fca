"""
Typed errors raised by the ledger core.

Every error carries a ``code`` class attribute so the HTTP layer (and any
other caller) can map it without parsing messages:

    LedgerError
    +-- ValidationError          malformed input, nothing mutated
    |   +-- UnitMismatchError    incompatible unit conversion
    +-- NotFoundError            absent, or owned by another tenant
    +-- InvalidStateError        transition out of a terminal state
    +-- InsufficientStockError   short ingredient, nothing deducted
    +-- ConcurrencyError         tenant write scope unavailable, retry
    +-- StoreError               durable store failed, opaque to callers
"""

from decimal import Decimal


class LedgerError(Exception):
    code: str = "LEDGER_ERROR"


class ValidationError(LedgerError):
    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class UnitMismatchError(ValidationError):
    code: str = "UNIT_MISMATCH"

    def __init__(self, from_unit: str, to_unit: str):
        self.from_unit = from_unit
        self.to_unit = to_unit
        super().__init__(f"Cannot convert {from_unit} to {to_unit}", field="unit")


class NotFoundError(LedgerError):
    code: str = "NOT_FOUND"

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidStateError(LedgerError):
    code: str = "INVALID_STATE"

    def __init__(self, entity: str, entity_id, status: str):
        self.entity = entity
        self.entity_id = entity_id
        self.status = status
        super().__init__(f"{entity} {entity_id} is already {status}")


class InsufficientStockError(LedgerError):
    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, stock_item_id: int, name: str, required: Decimal, available: Decimal):
        self.stock_item_id = stock_item_id
        self.name = name
        self.required = required
        self.available = available
        super().__init__(f"Insufficient stock for {name}. Available: {available}, required: {required}")


class ConcurrencyError(LedgerError):
    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, tenant_id: str, reason: str = "write scope busy"):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant {tenant_id}: {reason}")


class StoreError(LedgerError):
    code: str = "STORE_ERROR"
