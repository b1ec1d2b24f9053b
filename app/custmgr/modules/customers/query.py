"""
Customer listing: filters, allow-listed sorting, offset pagination and the
address-count enrichment step.
"""

from __future__ import annotations

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from app.custmgr.modules.customers.models import Address, Customer
from app.custmgr.modules.customers.validation import SORTABLE_COLUMNS, ListParams


def _filtered(params: ListParams) -> Select:
    stmt = select(Customer)
    if params.city:
        stmt = stmt.where(Customer.city == params.city)
    if params.state:
        stmt = stmt.where(Customer.state == params.state)
    if params.pincode:
        stmt = stmt.where(Customer.pincode == params.pincode)
    if params.search:
        stmt = stmt.where(
            or_(
                Customer.first_name.contains(params.search, autoescape=True),
                Customer.last_name.contains(params.search, autoescape=True),
                Customer.email.contains(params.search, autoescape=True),
                Customer.phone.contains(params.search, autoescape=True),
            )
        )
    if params.only_multiple_addresses:
        stmt = (
            stmt.join(Address, Address.customer_id == Customer.id)
            .group_by(Customer.id)
            .having(func.count(Address.id) > 1)
        )
    return stmt


def _order_by(params: ListParams):
    if params.sort_by not in SORTABLE_COLUMNS:
        raise ValueError(f"unsortable column: {params.sort_by}")
    column = getattr(Customer, params.sort_by)
    primary = column.asc() if params.sort_dir == "ASC" else column.desc()
    # id breaks ties so page boundaries are stable
    return primary, Customer.id.asc()


def count_customers(s: Session, params: ListParams) -> int:
    # Count over the filtered/grouped statement so HAVING is respected.
    inner = _filtered(params).with_only_columns(Customer.id).subquery()
    return int(s.execute(select(func.count()).select_from(inner)).scalar_one())


def address_counts(s: Session, customer_ids: list[str]) -> dict[str, int]:
    if not customer_ids:
        return {}
    rows = s.execute(
        select(Address.customer_id, func.count(Address.id))
        .where(Address.customer_id.in_(customer_ids))
        .group_by(Address.customer_id)
    ).all()
    return {cid: int(cnt) for cid, cnt in rows}


def list_customers(s: Session, params: ListParams) -> tuple[int, list[dict]]:
    """
    Return (total matching customers, one page of customer dicts).

    Each row carries address_count and onlyOneAddress from a second grouped query.
    """
    total = count_customers(s, params)

    offset = (params.page - 1) * params.page_size
    if offset >= total:
        # also keeps huge page numbers away from the driver's 64-bit OFFSET
        return total, []
    stmt = _filtered(params).order_by(*_order_by(params)).offset(offset).limit(params.page_size)
    customers = list(s.scalars(stmt).all())

    counts = address_counts(s, [c.id for c in customers])
    data = []
    for c in customers:
        cnt = counts.get(c.id, 0)
        row = c.to_dict()
        row["address_count"] = cnt
        row["onlyOneAddress"] = cnt == 1
        data.append(row)
    return total, data
