from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, Boolean, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from atelier.database import Base


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)  # Subject of the auth provider's token
    invoice_number = Column(String, nullable=False, index=True)
    invoice_date = Column(Date, nullable=False)
    delivery_date = Column(Date, nullable=False, index=True)
    total_value = Column(Numeric(10, 2), nullable=False, default=0)
    image_url = Column(String, nullable=True)
    original_filename = Column(String, nullable=True)
    is_manual_entry = Column(Boolean, nullable=False, default=False)
    is_validated = Column(Boolean, nullable=False, default=False, index=True)  # False = pending review queue
    contact_name = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    observations = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    invoice_items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )
