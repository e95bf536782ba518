"""
Seed script to generate synthetic invoices, revenues and Corte & Cose debts
for one user, for demo purposes

Usage: python scripts/seed_data.py <user_id>
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.orm import Session
from atelier.database import SessionLocal, engine, Base
from atelier.models.invoice import Invoice
from atelier.models.invoice_item import InvoiceItem
from atelier.models.revenue import Revenue
from atelier.models.debt import CorteCoseDebt
from atelier.services.invoice_totals import recompute_total
from decimal import Decimal
from datetime import date, timedelta
from faker import Faker

fake = Faker("pt_PT")

GARMENT_JOBS = [
    "Bainha de calças",
    "Ajuste de cintura",
    "Troca de fecho",
    "Encurtar mangas",
    "Apertar vestido",
    "Remendo",
    "Bainha de saia",
    "Ajuste de casaco",
]


def _money(low: float, high: float) -> Decimal:
    return Decimal(str(round(fake.random.uniform(low, high), 2)))


def create_invoices(db: Session, user_id: str, count: int = 20, pending: int = 5) -> list[Invoice]:
    """Create synthetic invoices; the first ``pending`` stay in the review queue"""
    invoices = []
    for i in range(count):
        invoice_date = date.today() - timedelta(days=fake.random_int(min=0, max=120))
        is_manual = fake.boolean(chance_of_getting_true=25)
        invoice = Invoice(
            user_id=user_id,
            invoice_number=str(fake.random_int(min=1000, max=99999)),
            invoice_date=invoice_date,
            delivery_date=invoice_date + timedelta(days=fake.random_int(min=0, max=14)),
            is_manual_entry=is_manual,
            is_validated=is_manual or i >= pending,
            contact_name=fake.name(),
            phone_number=fake.phone_number(),
        )
        for _ in range(fake.random_int(min=1, max=4)):
            invoice.invoice_items.append(InvoiceItem(
                description=fake.random_element(elements=GARMENT_JOBS),
                value=_money(3.0, 40.0),
            ))
        recompute_total(invoice)
        db.add(invoice)
        invoices.append(invoice)

    db.commit()
    return invoices


def create_revenues(db: Session, user_id: str, count: int = 8) -> list[Revenue]:
    """Create synthetic payments, each tagged with the month it pays for"""
    revenues = []
    for _ in range(count):
        revenue_date = date.today() - timedelta(days=fake.random_int(min=0, max=120))
        paid_month = revenue_date.replace(day=1) - timedelta(days=1)
        revenue = Revenue(
            user_id=user_id,
            revenue_date=revenue_date,
            amount=_money(50.0, 400.0),
            description=fake.random_element(elements=("Transferência", "Numerário", "MB Way")),
            reference_month=paid_month.strftime("%Y-%m"),
        )
        db.add(revenue)
        revenues.append(revenue)

    db.commit()
    return revenues


def create_debts(db: Session, user_id: str, count: int = 4) -> list[CorteCoseDebt]:
    """Create synthetic Corte & Cose debts"""
    debts = []
    for _ in range(count):
        debt = CorteCoseDebt(
            user_id=user_id,
            debt_date=date.today() - timedelta(days=fake.random_int(min=0, max=120)),
            amount=_money(20.0, 150.0),
            description="Corte & Cose",
        )
        db.add(debt)
        debts.append(debt)

    db.commit()
    return debts


def seed(db: Session, user_id: str, invoices: int = 20, revenues: int = 8, debts: int = 4) -> dict:
    """Seed one user's data and return the number of rows created per table"""
    created_invoices = create_invoices(db, user_id, count=invoices)
    created_revenues = create_revenues(db, user_id, count=revenues)
    created_debts = create_debts(db, user_id, count=debts)
    return {
        "invoices": len(created_invoices),
        "invoice_items": sum(len(inv.invoice_items) for inv in created_invoices),
        "revenues": len(created_revenues),
        "corte_cose_debts": len(created_debts),
    }


def main():
    """Main seeding function"""
    if len(sys.argv) < 2:
        print("Usage: python scripts/seed_data.py <user_id>")
        sys.exit(1)
    user_id = sys.argv[1]

    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        print(f"Seeding data for user {user_id}...")
        counts = seed(db, user_id)
        for table, count in counts.items():
            print(f"Created {count} {table}")
        print("Seeding completed successfully!")
    except Exception as e:
        print(f"Error seeding data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
