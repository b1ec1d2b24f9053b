from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.custmgr.modules.customers.models import Address, Customer, Transaction

logger = logging.getLogger(__name__)


def seed_sample_data(s: Session, *, country: str = "India") -> bool:
    """
    Insert two sample customers, their primary addresses and one transaction.
    Only runs against an empty customers table. Returns True when rows were added.
    """
    existing = s.execute(select(func.count(Customer.id))).scalar_one()
    if existing:
        return False

    now = datetime.utcnow()
    alice = Customer(
        first_name="Alice",
        last_name="Wong",
        phone="9876543210",
        city="Chennai",
        state="Tamil Nadu",
        pincode="600001",
        email="alice@example.com",
        account_type="Retail",
        created_at=now,
        updated_at=now,
    )
    ravi = Customer(
        first_name="Ravi",
        last_name="Kumar",
        phone="9123456780",
        city="Bengaluru",
        state="Karnataka",
        pincode="560001",
        email="ravi@example.com",
        account_type="Wholesale",
        created_at=now,
        updated_at=now,
    )
    s.add_all([alice, ravi])
    s.flush()

    s.add_all(
        [
            Address(
                customer_id=alice.id,
                line1="12 MG Road",
                city="Chennai",
                state="Tamil Nadu",
                pincode="600001",
                country=country,
                is_primary=True,
                created_at=now,
                updated_at=now,
            ),
            Address(
                customer_id=ravi.id,
                line1="4 Bannerghatta Rd",
                city="Bengaluru",
                state="Karnataka",
                pincode="560001",
                country=country,
                is_primary=True,
                created_at=now,
                updated_at=now,
            ),
            # Ravi's order keeps him undeletable (linked transaction demo)
            Transaction(customer_id=ravi.id, detail="Order #1001", amount=1500.0, created_at=now),
        ]
    )
    s.flush()
    logger.info("Seeded sample customers (alice=%s ravi=%s)", alice.id, ravi.id)
    return True
