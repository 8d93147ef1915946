"""Order confirmation service built with FastAPI.

``POST /send-order-confirmation`` renders the plain-text confirmation for
an order. No mail provider is wired in: the rendered message is written
to the structured log in its place, and the caller gets
``{success, message}`` back.
"""

import logging
import os
import uuid
from decimal import Decimal
from typing import List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pythonjsonlogger import jsonlogger

app = FastAPI(title="Notifications Service")

logger = logging.getLogger("notifications")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Item(_Camel):
    title: str
    price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0)


class ShippingAddress(_Camel):
    first_name: str
    last_name: str
    email: str
    address: str
    city: str
    state: str
    zip_code: str


class ConfirmationRequest(_Camel):
    """Body of the confirmation request, camelCase on the wire."""

    order_id: str
    customer_email: str = Field(min_length=3)
    customer_name: str
    total_amount: Decimal
    items: List[Item]
    shipping_address: ShippingAddress


class ConfirmationResponse(BaseModel):
    success: bool
    message: str


def _money(amount: Decimal) -> str:
    return f"${amount:.2f}"


def render_confirmation(req: ConfirmationRequest) -> str:
    """Render the plain-text confirmation message.

    Each line item shows its title, quantity and line total; the address
    block uses the shipping name, street, then ``city, state zip``.
    """
    ship = req.shipping_address
    lines = [f"Order Confirmation #{req.order_id}", "", f"Thank you for your order, {req.customer_name}!", "", "Items:"]
    lines += [f"{i.title} (Quantity: {i.quantity}) - {_money(i.price * i.quantity)}" for i in req.items]
    lines += [
        "",
        f"Total: {_money(req.total_amount)}",
        "",
        "Shipping Address:",
        f"{ship.first_name} {ship.last_name}",
        ship.address,
        f"{ship.city}, {ship.state} {ship.zip_code}",
        "",
        "We will notify you when your order ships.",
    ]
    return "\n".join(lines)


@app.exception_handler(RequestValidationError)
async def _invalid_request(request: Request, exc: RequestValidationError):
    logger.error(
        "order confirmation rejected",
        extra={"request_id": getattr(request.state, "request_id", "-"), "errors": len(exc.errors())},
    )
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Failed to send order confirmation email", "error": "INVALID_REQUEST"},
    )


@app.get("/health")
def health():
    return {"ok": True}


@app.post("/send-order-confirmation", response_model=ConfirmationResponse)
def send_order_confirmation(req: ConfirmationRequest, request: Request):
    """Render and "send" the confirmation for one order.

    Returns:
        ConfirmationResponse: ``success=True`` once the message is rendered
        and logged.
    """
    rid = getattr(request.state, "request_id", "-")
    try:
        body = render_confirmation(req)
    except (ArithmeticError, ValueError) as e:
        logger.error("order confirmation failed", extra={"request_id": rid, "order_id": req.order_id, "cause": repr(e)})
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Failed to send order confirmation email", "error": str(e)},
        )
    logger.info(
        "order confirmation rendered",
        extra={"request_id": rid, "order_id": req.order_id, "to": req.customer_email, "body": body},
    )
    return ConfirmationResponse(success=True, message="Order confirmation email sent successfully")


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
        port=int(os.getenv("PORT", "9002")),
        log_level=os.getenv("LOG_LEVEL", "info"),
    )
