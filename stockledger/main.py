import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stockledger.api import orders, recipes, reports, sales, stock
from stockledger.config import settings
from stockledger.database import init_db
from stockledger.exceptions import (
    ConcurrencyError,
    InsufficientStockError,
    InvalidStateError,
    LedgerError,
    NotFoundError,
    StoreError,
    ValidationError,
)

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Most specific first; UnitMismatchError is a ValidationError
_STATUS_CODES: list[tuple[type[LedgerError], int]] = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (InsufficientStockError, 409),
    (ConcurrencyError, 503),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="Tenant-scoped restaurant inventory: stock, orders, recipes, sales and reporting",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Store failure on %s: %s\n%s", request.url.path, exc, traceback.format_exc())
    return JSONResponse(status_code=500, content={"detail": "internal error", "code": exc.code})


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = next((code for cls, code in _STATUS_CODES if isinstance(exc, cls)), 500)
    content = {"detail": str(exc), "code": exc.code}
    if isinstance(exc, InsufficientStockError):
        content["stock_item_id"] = exc.stock_item_id
    if isinstance(exc, ValidationError) and exc.field:
        content["field"] = exc.field
    headers = {"Retry-After": "1"} if isinstance(exc, ConcurrencyError) else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return JSON for unhandled exceptions without leaking internals."""
    logger.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
    return JSONResponse(status_code=500, content={"detail": "internal error"})


app.include_router(stock.router, prefix="/api/v1")
app.include_router(orders.router, prefix="/api/v1")
app.include_router(recipes.router, prefix="/api/v1")
app.include_router(sales.router, prefix="/api/v1")
app.include_router(reports.router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "ok"}
