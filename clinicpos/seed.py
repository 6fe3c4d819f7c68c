"""
Seed script: populates the database with sample clinic finance data for
development / demo.

Usage:
    python -m clinicpos.seed

The script is idempotent: it does nothing if investors already exist.
"""

import asyncio
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from clinicpos.core.config import settings
from clinicpos.db.base import metadata
from clinicpos.db.session import engine, session_scope
from clinicpos.ledger.shares import ShareInput, joined_names, normalize_shares
from clinicpos.models.contribution import Contribution
from clinicpos.models.investment import Investment, InvestmentStatus
from clinicpos.models.investor import Investor
from clinicpos.models.medicine import Medicine

logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
logger = logging.getLogger(__name__)

INVESTORS = [
    {"name": "Dr. Sok Dara", "email": "dara@example.com", "phone": "+855 12 345 678"},
    {"name": "Chan Sophea", "email": "sophea@example.com", "phone": "+855 17 222 333"},
    {"name": "Lim Vuthy", "notes": "Silent partner"},
]

# (title, category, amount, start, {investor name: raw weight})
INVESTMENTS = [
    ("Digital X-ray unit", "Equipment", "12000.00", date(2025, 11, 3), {"Dr. Sok Dara": 60, "Chan Sophea": 40}),
    ("Second consultation room", "Expansion", "8500.00", date(2026, 1, 15), {"Dr. Sok Dara": 1, "Chan Sophea": 1, "Lim Vuthy": 1}),
    ("Lab analyser", "Equipment", "4300.00", date(2026, 2, 2), {"Lim Vuthy": 100}),
]

# (investment index, investor name, amount, date)
CONTRIBUTIONS = [
    (0, "Dr. Sok Dara", "5000.00", date(2025, 11, 10)),
    (0, "Dr. Sok Dara", "2200.00", date(2025, 12, 10)),
    (0, "Chan Sophea", "3000.00", date(2025, 11, 20)),
    (1, "Lim Vuthy", "3000.00", date(2026, 1, 20)),
    (2, "Lim Vuthy", "4500.00", date(2026, 2, 5)),
]

MEDICINES = [
    Medicine(name="Paracetamol 500mg", generic_name="Acetaminophen", category="Analgesic", unit="Strip", stock_count=240, stock_alert=30, selling_price=Decimal("0.50")),
    Medicine(name="Amoxicillin 500mg", generic_name="Amoxicillin", category="Antibiotic", unit="Box", stock_count=40, stock_alert=10, selling_price=Decimal("4.00")),
    Medicine(name="ORS sachet", category="Rehydration", unit="Sachet", stock_count=8, stock_alert=20, selling_price=Decimal("0.30")),
]


async def seed() -> None:
    """Create tables and insert sample data if the database is empty."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    async with session_scope() as session:
        result = await session.execute(select(Investor).limit(1))
        if result.scalars().first() is not None:
            logger.info("Database already contains data, skipping seed.")
            return

        investors = {data["name"]: Investor(**data) for data in INVESTORS}
        session.add_all(investors.values())
        await session.flush()

        investments = []
        for title, category, amount, start, weights in INVESTMENTS:
            shares = normalize_shares(
                amount,
                [ShareInput(name, weight, investors[name].id) for name, weight in weights.items()],
                settings.SHARE_ROUNDING,
            )
            investments.append(
                Investment(
                    title=title,
                    category=category,
                    amount=Decimal(amount),
                    investors=[s.to_dict() for s in shares],
                    investor_name=joined_names(shares),
                    status=InvestmentStatus.ACTIVE,
                    start_date=start,
                )
            )
        session.add_all(investments)
        await session.flush()

        session.add_all(
            Contribution(
                investment_id=investments[index].id,
                investor_id=investors[name].id,
                investor_name=name,
                amount=Decimal(amount),
                date=paid_on,
                category="Advance Deposit",
            )
            for index, name, amount, paid_on in CONTRIBUTIONS
        )
        session.add_all(MEDICINES)

    logger.info(
        "Seeded %d investors, %d investments, %d contributions, %d medicines",
        len(INVESTORS),
        len(INVESTMENTS),
        len(CONTRIBUTIONS),
        len(MEDICINES),
    )


if __name__ == "__main__":
    asyncio.run(seed())
