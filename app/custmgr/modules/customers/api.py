from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.custmgr.db import db_session
from app.custmgr.modules.customers.query import list_customers
from app.custmgr.modules.customers.service import (
    CustomerError,
    ValidationFailed,
    create_address,
    create_customer,
    customer_addresses,
    customer_detail,
    delete_address,
    delete_customer,
    update_address,
    update_customer,
)
from app.custmgr.modules.customers.validation import parse_list_params

bp = Blueprint("customers", __name__)


def _payload() -> dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@bp.errorhandler(CustomerError)
def _customer_error(e: CustomerError):
    db_session().rollback()
    return jsonify(e.to_dict()), e.status_code


@bp.errorhandler(SQLAlchemyError)
def _db_error(e: SQLAlchemyError):
    db_session().rollback()
    if isinstance(e, IntegrityError) and "email" in str(e.orig).lower():
        # lost a race with a concurrent insert of the same email
        return jsonify({"error": "email_exists"}), 409
    current_app.logger.exception("DB error (request_id=%s)", getattr(g, "request_id", None))
    return jsonify({"error": "db_error"}), 500


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------

@bp.post("/customers")
def customers_create():
    s = db_session()
    result = create_customer(s, _payload())
    s.commit()
    return jsonify(result), 201


@bp.get("/customers")
def customers_list():
    params, errs = parse_list_params(request.args, max_page_size=current_app.config["MAX_PAGE_SIZE"])
    if errs:
        raise ValidationFailed(errs)
    s = db_session()
    total, data = list_customers(s, params)
    return jsonify({"total": total, "page": params.page, "pageSize": params.page_size, "data": data})


@bp.get("/customers/<customer_id>")
def customers_detail(customer_id: str):
    return jsonify(customer_detail(db_session(), customer_id))


@bp.put("/customers/<customer_id>")
def customers_update(customer_id: str):
    s = db_session()
    update_customer(s, customer_id, _payload())
    s.commit()
    return jsonify({"updated": True})


@bp.delete("/customers/<customer_id>")
def customers_delete(customer_id: str):
    s = db_session()
    delete_customer(s, customer_id)
    s.commit()
    return jsonify({"deleted": True})


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

@bp.get("/customers/<customer_id>/addresses")
def addresses_list(customer_id: str):
    addresses = customer_addresses(db_session(), customer_id)
    return jsonify([a.to_dict() for a in addresses])


@bp.post("/customers/<customer_id>/addresses")
def addresses_create(customer_id: str):
    s = db_session()
    a = create_address(s, customer_id, _payload())
    s.commit()
    return jsonify({"id": a.id}), 201


@bp.put("/addresses/<address_id>")
def addresses_update(address_id: str):
    s = db_session()
    update_address(s, address_id, _payload())
    s.commit()
    return jsonify({"updated": True})


@bp.delete("/addresses/<address_id>")
def addresses_delete(address_id: str):
    s = db_session()
    delete_address(s, address_id)
    s.commit()
    return jsonify({"deleted": True})
