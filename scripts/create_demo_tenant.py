"""
Create a demo company with an admin, a sales engineer and a small product catalog.
Usage: python scripts/create_demo_tenant.py
"""
import asyncio
import sys
import uuid
from decimal import Decimal
from pathlib import Path

# Add parent directory to path to import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from app.core.db import AsyncSessionFactory, init_database
from app.core.security import hash_password
from app.models.company import Company
from app.models.product import Product
from app.models.user import User

ADMIN_EMAIL = "admin@enerjios.dev"
ENGINEER_EMAIL = "muhendis@enerjios.dev"
PASSWORD = "enerjios123"

CATALOG = [
    ("Monokristal Panel 550W", "PANEL", 550, "4250.00", 200),
    ("Hibrit Inverter 10kW", "INVERTER", None, "38500.00", 12),
    ("Lityum Batarya 5kWh", "BATTERY", None, "52000.00", 8),
    ("Çatı Montaj Kiti", "MOUNTING", None, "1850.00", 60),
    ("Solar Kablo 6mm² (100m)", "CABLE", None, "3400.00", 25),
]


async def create_demo_tenant():
    await init_database()
    async with AsyncSessionFactory() as db:
        result = await db.execute(select(User).where(User.email == ADMIN_EMAIL))
        if result.scalar_one_or_none():
            print(f"User {ADMIN_EMAIL} already exists!")
            return

        company = Company(
            id=str(uuid.uuid4()),
            name="Demo Güneş Enerjisi A.Ş.",
            email="info@enerjios.dev",
            phone="+90 212 000 00 00",
            city="İstanbul",
        )
        db.add(company)
        await db.flush()

        for email, first_name, last_name, role in (
            (ADMIN_EMAIL, "Demo", "Yönetici", "ADMIN"),
            (ENGINEER_EMAIL, "Demo", "Mühendis", "COMPANY"),
        ):
            db.add(
                User(
                    id=str(uuid.uuid4()),
                    email=email,
                    hashed_password=hash_password(PASSWORD),
                    first_name=first_name,
                    last_name=last_name,
                    role=role,
                    company_id=company.id,
                )
            )

        for name, category, power_watts, unit_price, stock in CATALOG:
            db.add(
                Product(
                    id=str(uuid.uuid4()),
                    company_id=company.id,
                    name=name,
                    category=category,
                    power_watts=power_watts,
                    unit_price=Decimal(unit_price),
                    stock=stock,
                )
            )

        await db.commit()

        print("=" * 60)
        print("Demo tenant created successfully!")
        print("=" * 60)
        print(f"Admin:    {ADMIN_EMAIL}")
        print(f"Engineer: {ENGINEER_EMAIL}")
        print(f"Password: {PASSWORD}")
        print(f"Products: {len(CATALOG)}")
        print("=" * 60)


if __name__ == "__main__":
    import platform

    # Fix for Windows ProactorEventLoop issue with psycopg
    if platform.system() == "Windows":
        import selectors
        loop = asyncio.SelectorEventLoop(selectors.SelectSelector())
        asyncio.set_event_loop(loop)
        loop.run_until_complete(create_demo_tenant())
    else:
        asyncio.run(create_demo_tenant())
