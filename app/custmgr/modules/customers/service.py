"""
Customer / address service layer.

Every function works on the caller's session and never commits; the request
handler commits once, so an operation and its primary-address bookkeeping land
in the same transaction.

INVARIANTS (addresses of one customer):
- at most one address has is_primary set
- a customer's sole address is primary
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from flask import current_app
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.custmgr.modules.customers.models import Address, Customer, Transaction
from app.custmgr.modules.customers.validation import (
    ADDRESS_FIELDS,
    CUSTOMER_FIELDS,
    clean_optional,
    is_truthy,
    validate_customer_payload,
)

logger = logging.getLogger(__name__)

_REQUIRED_CUSTOMER_FIELDS = ("first_name", "last_name", "phone")


# ============================================================================
# Errors
# ============================================================================

class CustomerError(Exception):
    """Base for request-level failures; rendered as {"error": code, ...extra}."""

    status_code = 400

    def __init__(self, code: str, **extra: Any) -> None:
        super().__init__(code)
        self.code = code
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, **self.extra}


class ValidationFailed(CustomerError):
    def __init__(self, fields: list[str]) -> None:
        super().__init__("validation_failed", fields=fields)


class InvalidRequest(CustomerError):
    pass


class LinkedTransactions(CustomerError):
    def __init__(self, count: int) -> None:
        super().__init__("linked_transactions", count=count)


class NotFound(CustomerError):
    status_code = 404

    def __init__(self, code: str = "not_found") -> None:
        super().__init__(code)


class Conflict(CustomerError):
    status_code = 409


# ============================================================================
# Lookups
# ============================================================================

def get_customer_by_id(s: Session, customer_id: str) -> Customer | None:
    return s.get(Customer, customer_id)


def get_address_by_id(s: Session, address_id: str) -> Address | None:
    return s.get(Address, address_id)


def find_customer_by_email(s: Session, email: str) -> Customer | None:
    return s.scalars(select(Customer).where(Customer.email == email)).first()


def list_addresses(s: Session, customer_id: str) -> list[Address]:
    """Primary first, then newest."""
    return list(
        s.scalars(
            select(Address)
            .where(Address.customer_id == customer_id)
            .order_by(Address.is_primary.desc(), Address.created_at.desc(), Address.id.asc())
        ).all()
    )


def list_transactions(s: Session, customer_id: str) -> list[Transaction]:
    return list(
        s.scalars(
            select(Transaction)
            .where(Transaction.customer_id == customer_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.asc())
        ).all()
    )


def count_transactions(s: Session, customer_id: str) -> int:
    return int(
        s.execute(select(func.count(Transaction.id)).where(Transaction.customer_id == customer_id)).scalar_one()
    )


def customer_detail(s: Session, customer_id: str) -> dict[str, Any]:
    c = get_customer_by_id(s, customer_id)
    if not c:
        raise NotFound()
    addresses = list_addresses(s, c.id)
    data = c.to_dict()
    data["addresses"] = [a.to_dict() for a in addresses]
    data["transactions"] = [t.to_dict() for t in list_transactions(s, c.id)]
    data["address_count"] = len(addresses)
    data["onlyOneAddress"] = len(addresses) == 1
    return data


# ============================================================================
# Primary-address maintenance
# ============================================================================

def demote_siblings(s: Session, address: Address) -> int:
    """Clear is_primary on every other address of the same customer."""
    result = s.execute(
        update(Address)
        .where(Address.customer_id == address.customer_id, Address.id != address.id, Address.is_primary.is_(True))
        .values(is_primary=False, updated_at=datetime.utcnow())
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount:
        logger.debug("demoted %s sibling address(es) of customer=%s", result.rowcount, address.customer_id)
    return result.rowcount or 0


def promote_sole_address(s: Session, customer_id: str) -> Address | None:
    """If the customer has exactly one address, make sure it is primary."""
    remaining = list(s.scalars(select(Address).where(Address.customer_id == customer_id).limit(2)).all())
    if len(remaining) != 1:
        return None
    sole = remaining[0]
    if not sole.is_primary:
        sole.is_primary = True
        sole.updated_at = datetime.utcnow()
        logger.debug("promoted sole address=%s of customer=%s", sole.id, customer_id)
    return sole


def _maintain_primary(s: Session, address: Address) -> None:
    s.flush()
    if address.is_primary:
        demote_siblings(s, address)
    promote_sole_address(s, address.customer_id)


# ============================================================================
# Customers
# ============================================================================

def _ensure_email_free(s: Session, email: str | None, *, exclude_id: str | None = None) -> None:
    if not email:
        return
    existing = find_customer_by_email(s, email)
    if existing and existing.id != exclude_id:
        raise Conflict("email_exists")


def _customer_value(field: str, raw: Any) -> str | None:
    if field in _REQUIRED_CUSTOMER_FIELDS:
        return str(raw).strip()
    return clean_optional(raw)


def _new_address(customer_id: str, payload: Mapping[str, Any], *, is_primary: bool, now: datetime) -> Address:
    return Address(
        customer_id=customer_id,
        line1=str(payload.get("line1")).strip(),
        line2=clean_optional(payload.get("line2")),
        city=clean_optional(payload.get("city")),
        state=clean_optional(payload.get("state")),
        pincode=clean_optional(payload.get("pincode")),
        country=clean_optional(payload.get("country")) or current_app.config.get("DEFAULT_COUNTRY", "India"),
        is_primary=is_primary,
        created_at=now,
        updated_at=now,
    )


def create_customer(s: Session, payload: Mapping[str, Any]) -> dict[str, Any]:
    """
    Insert a customer and, when payload["address"] carries a line1, its primary address.

    The inline address is written inside a SAVEPOINT: if it fails the customer
    is kept and the result reports address_error instead of address_id.
    """
    errs = validate_customer_payload(payload, require_all=True)
    if errs:
        raise ValidationFailed(errs)

    email = clean_optional(payload.get("email"))
    _ensure_email_free(s, email)

    now = datetime.utcnow()
    c = Customer(
        first_name=_customer_value("first_name", payload.get("first_name")),
        last_name=_customer_value("last_name", payload.get("last_name")),
        phone=_customer_value("phone", payload.get("phone")),
        city=clean_optional(payload.get("city")),
        state=clean_optional(payload.get("state")),
        pincode=clean_optional(payload.get("pincode")),
        email=email,
        account_type=clean_optional(payload.get("account_type")),
        created_at=now,
        updated_at=now,
    )
    s.add(c)
    s.flush()
    logger.info("customer created id=%s", c.id)

    result: dict[str, Any] = {"id": c.id}
    address_payload = payload.get("address")
    if isinstance(address_payload, Mapping) and clean_optional(address_payload.get("line1")):
        try:
            with s.begin_nested():
                a = _new_address(c.id, address_payload, is_primary=True, now=now)
                s.add(a)
                s.flush()
            result["address_id"] = a.id
        except SQLAlchemyError:
            logger.exception("inline address for customer=%s could not be created", c.id)
            result["address_error"] = "address_create_failed"
    return result


def update_customer(s: Session, customer_id: str, payload: Mapping[str, Any]) -> Customer:
    errs = validate_customer_payload(payload, require_all=False)
    if errs:
        raise ValidationFailed(errs)

    changes = {k: _customer_value(k, payload[k]) for k in CUSTOMER_FIELDS if k in payload}
    if not changes:
        raise InvalidRequest("no_fields")

    c = get_customer_by_id(s, customer_id)
    if not c:
        raise NotFound()
    if "email" in changes:
        _ensure_email_free(s, changes["email"], exclude_id=c.id)

    for field, value in changes.items():
        setattr(c, field, value)
    c.updated_at = datetime.utcnow()
    s.flush()
    logger.info("customer updated id=%s fields=%s", c.id, ",".join(changes))
    return c


def delete_customer(s: Session, customer_id: str) -> None:
    linked = count_transactions(s, customer_id)
    if linked > 0:
        raise LinkedTransactions(linked)
    c = get_customer_by_id(s, customer_id)
    if not c:
        raise NotFound()
    s.delete(c)
    s.flush()
    logger.info("customer deleted id=%s", customer_id)


# ============================================================================
# Addresses
# ============================================================================

def customer_addresses(s: Session, customer_id: str) -> list[Address]:
    if not get_customer_by_id(s, customer_id):
        raise NotFound("customer_not_found")
    return list_addresses(s, customer_id)


def create_address(s: Session, customer_id: str, payload: Mapping[str, Any]) -> Address:
    if not clean_optional(payload.get("line1")):
        raise InvalidRequest("line1_required")
    if not get_customer_by_id(s, customer_id):
        raise NotFound("customer_not_found")

    a = _new_address(customer_id, payload, is_primary=is_truthy(payload.get("is_primary")), now=datetime.utcnow())
    s.add(a)
    _maintain_primary(s, a)
    logger.info("address created id=%s customer=%s primary=%s", a.id, customer_id, a.is_primary)
    return a


def update_address(s: Session, address_id: str, payload: Mapping[str, Any]) -> Address:
    changes: dict[str, Any] = {}
    for field in ADDRESS_FIELDS:
        if field in payload:
            changes[field] = clean_optional(payload[field])
    if "is_primary" in payload:
        changes["is_primary"] = is_truthy(payload["is_primary"])
    if not changes:
        raise InvalidRequest("no_fields")
    if "line1" in changes and not changes["line1"]:
        raise InvalidRequest("line1_required")

    a = get_address_by_id(s, address_id)
    if not a:
        raise NotFound()

    for field, value in changes.items():
        setattr(a, field, value)
    a.updated_at = datetime.utcnow()
    _maintain_primary(s, a)
    logger.info("address updated id=%s fields=%s", a.id, ",".join(changes))
    return a


def delete_address(s: Session, address_id: str) -> None:
    a = get_address_by_id(s, address_id)
    if not a:
        raise NotFound()
    customer_id = a.customer_id
    s.delete(a)
    s.flush()
    promote_sole_address(s, customer_id)
    logger.info("address deleted id=%s customer=%s", address_id, customer_id)
