"""Order store API built with FastAPI.

This service stands in for the managed relational backend the storefront
writes orders to. It speaks the small PostgREST subset the storefront
uses: row inserts on ``/orders`` and ``/order_items``, ``eq.`` filters,
``order=<column>.<dir>`` sorting, ``Prefer: return=representation`` and
the ``apikey`` header. Persistence is delegated to ``repo.OrderStoreRepo``.
"""

import logging
import os
import time
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response
from pydantic import BaseModel, ConfigDict, Field
from pythonjsonlogger import jsonlogger
from sqlalchemy import text

from repo import OrderStoreRepo, engine, init_db

app = FastAPI(title="Order Store Service")

SERVICE_API_KEY = os.getenv("SERVICE_API_KEY", "")

logger = logging.getLogger("orderstore")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


@app.on_event("startup")
def _startup_db():
    # wait briefly until the DB accepts connections
    deadline = time.time() + 30
    while True:
        try:
            with engine.connect() as conn:
                conn.execute(text("select 1"))
            break
        except Exception:
            if time.time() > deadline:
                raise
            time.sleep(1)
    init_db()


def require_api_key(apikey: Annotated[Optional[str], Header()] = None):
    """Reject requests without the configured ``apikey`` header (when one is set)."""
    if SERVICE_API_KEY and apikey != SERVICE_API_KEY:
        raise HTTPException(status_code=401, detail="INVALID_API_KEY")


def _eq(value: Optional[str], column: str) -> Optional[str]:
    # PostgREST filter syntax: column=eq.<value>
    if value is None:
        return None
    if not value.startswith("eq."):
        raise HTTPException(status_code=400, detail=f"UNSUPPORTED_FILTER:{column}")
    return value[3:]


# ---- Schemas ----
class OrderIn(BaseModel):
    """Body of an order header insert."""

    user_id: str = Field(min_length=1)
    shipping_address: dict
    payment_method: str = Field(pattern=r"^(credit-card|cash)$")
    total_amount: Decimal = Field(ge=0, decimal_places=2)
    status: str = "pending"


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    shipping_address: dict
    payment_method: str
    total_amount: Decimal
    status: str
    created_at: datetime


class OrderItemIn(BaseModel):
    order_id: str
    product_id: str = Field(min_length=1)
    title: str
    price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0)


class OrderItemOut(OrderItemIn):
    model_config = ConfigDict(from_attributes=True)

    id: str


def _wants_representation(prefer: Optional[str]) -> bool:
    return bool(prefer) and "return=representation" in prefer


# ---- Endpoints ----
@app.get("/health")
def health():
    """Liveness/health probe endpoint.

    Returns:
        dict: A small JSON payload indicating service health.
    """
    return {"ok": True}


@app.post("/orders", status_code=201, dependencies=[Depends(require_api_key)])
def insert_order(
    req: OrderIn,
    prefer: Annotated[Optional[str], Header()] = None,
):
    """Insert an order header.

    Returns:
        list[OrderOut] | None: The inserted row (as a one-element list) when
        ``Prefer: return=representation`` is sent; otherwise no body.
    """
    row = OrderStoreRepo().insert_order(**req.model_dump())
    logger.info("order header inserted", extra={"order_id": row.id, "user_id": row.user_id})
    if not _wants_representation(prefer):
        return None
    return [OrderOut.model_validate(row).model_dump(mode="json")]


@app.post("/order_items", status_code=201, dependencies=[Depends(require_api_key)])
def insert_items(
    req: List[OrderItemIn],
    prefer: Annotated[Optional[str], Header()] = None,
):
    """Insert line items in one transaction.

    Raises:
        HTTPException: 409 when an item references an unknown order header;
        nothing is written in that case.
    """
    if not req:
        return []
    try:
        rows = OrderStoreRepo().insert_items([r.model_dump() for r in req])
    except LookupError as e:
        raise HTTPException(status_code=409, detail={"code": "FOREIGN_KEY_VIOLATION", "order_id": str(e.args[0])})
    logger.info("order items inserted", extra={"order_id": req[0].order_id, "count": len(rows)})
    if not _wants_representation(prefer):
        return None
    return [OrderItemOut.model_validate(r).model_dump(mode="json") for r in rows]


@app.get("/orders", response_model=List[OrderOut], dependencies=[Depends(require_api_key)])
def list_orders(user_id: Optional[str] = None, order: str = "created_at.desc"):
    """List order headers, optionally filtered with ``user_id=eq.<id>``.

    Only ``created_at`` ordering is supported, ascending or descending.
    """
    column, _, direction = order.partition(".")
    if column != "created_at" or direction not in ("asc", "desc", ""):
        raise HTTPException(status_code=400, detail="UNSUPPORTED_ORDER")
    rows = OrderStoreRepo().list_orders(user_id=_eq(user_id, "user_id"), newest_first=direction != "asc")
    return [OrderOut.model_validate(r) for r in rows]


@app.get("/order_items", response_model=List[OrderItemOut], dependencies=[Depends(require_api_key)])
def list_items(order_id: str):
    rows = OrderStoreRepo().list_items(_eq(order_id, "order_id"))
    return [OrderItemOut.model_validate(r) for r in rows]


@app.delete("/orders", status_code=204, dependencies=[Depends(require_api_key)])
def delete_order(id: str):
    """Delete one header (``id=eq.<uuid>``) together with its items."""
    order_id = _eq(id, "id")
    removed = OrderStoreRepo().delete_order(order_id)
    logger.info("order deleted", extra={"order_id": order_id, "removed": removed})
    return Response(status_code=204)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    try:
        response = await call_next(request)
    finally:
        logger.info("request handled", extra={"request_id": rid, "path": request.url.path, "method": request.method})
    response.headers["X-Request-ID"] = rid
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "9001")),
        workers=int(os.getenv("UVICORN_WORKERS", "2")),
        log_level=os.getenv("LOG_LEVEL", "info"),
    )
