"""Checkout form validation.

``validate`` runs the shipping schema and, for card payments, the card
schema, and folds every pydantic error into a single field-keyed map of
human-readable messages. Nothing short-circuits: all rules run on every
call, and an empty map means the form is valid.
"""

from typing import Mapping

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .domain import PaymentMethod
from .schemas import CardForm, ShippingForm


def _message(err: dict) -> str:
    # Messages raised by our own validators travel in ctx["error"]; type
    # errors from pydantic itself only have "msg".
    ctx = err.get("ctx") or {}
    if "error" in ctx:
        return str(ctx["error"])
    return err["msg"]


def _form_key(schema: type[BaseModel], loc: tuple) -> str:
    # Errors on defaulted (absent) fields carry the attribute name even with
    # loc_by_alias, so map back to the form's camelCase name ourselves.
    if not loc:
        return "__all__"
    name = str(loc[0])
    field = schema.model_fields.get(name)
    if field is not None and field.alias:
        return field.alias
    return name


def _collect(schema: type[BaseModel], values: Mapping) -> dict[str, str]:
    try:
        schema.model_validate(dict(values))
    except PydanticValidationError as exc:
        errors: dict[str, str] = {}
        for err in exc.errors():
            errors.setdefault(_form_key(schema, err["loc"]), _message(err))
        return errors
    return {}


def validate(form_values: Mapping, payment_method) -> dict[str, str]:
    """Validate checkout form values for the chosen payment method.

    Args:
        form_values: camelCase field name to string value.
        payment_method: ``PaymentMethod`` or its string value.

    Returns:
        dict[str, str]: field name to message; empty when the form is valid.
    """
    errors = _collect(ShippingForm, form_values)
    try:
        method = PaymentMethod(payment_method)
    except ValueError:
        errors["paymentMethod"] = "Unsupported payment method"
        return errors
    if method is PaymentMethod.CREDIT_CARD:
        errors.update(_collect(CardForm, form_values))
    return errors


def clear_field_error(errors: Mapping[str, str], field: str) -> dict[str, str]:
    """Return a copy of ``errors`` without the entry for ``field``."""
    return {k: v for k, v in errors.items() if k != field}
