from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from app.core.database import Base

CUSTOMER_STATUSES = ("Active", "Inactive")


class Customer(Base):
    __tablename__ = "customers"

    id = Column("customer_id", Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    email = Column(String(150), nullable=True, index=True)
    phone = Column(String(20), nullable=False, index=True)
    phone2 = Column(String(20), nullable=True, index=True)
    status = Column(String(10), nullable=False, default="Active", server_default="Active")
    address_line1 = Column(String(255), nullable=False)
    address_line2 = Column(String(255), nullable=True)
    city_id = Column(Integer, ForeignKey("city_table.city_id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)

    city = relationship("City")
