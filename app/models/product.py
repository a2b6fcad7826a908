"""Inventory product model."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func

from app.models.base import Base


class Product(Base):
    """A stock-keeping item (panel, inverter, battery, mounting kit...)."""

    __tablename__ = "product"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="stock_non_negative"),
    )

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    category = Column(String, nullable=True, index=True)  # PANEL, INVERTER, BATTERY, MOUNTING, CABLE, ACCESSORY
    brand = Column(String, nullable=True)
    model = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    unit = Column(String, nullable=False, default="adet")
    power_watts = Column(Integer, nullable=True)

    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    stock = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
