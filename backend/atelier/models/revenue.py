from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, Text
from sqlalchemy.sql import func
from atelier.database import Base


class Revenue(Base):
    """A payment received. Not linked to invoices or debts."""
    __tablename__ = "revenues"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    revenue_date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    reference_month = Column(String(7), nullable=True)  # "YYYY-MM" tag of the debt period being paid
    created_at = Column(DateTime(timezone=True), server_default=func.now())
