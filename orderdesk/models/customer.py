import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint

from orderdesk.database import Base


class CustomerType(str, enum.Enum):
    CORPORATE = "Corporate"
    INDIVIDUAL = "Individual"
    GOVERNMENT = "Government"
    OTHER = "Other"


class CustomerSegment(str, enum.Enum):
    VIP = "VIP"
    PREMIUM = "Premium"
    STANDARD = "Standard"
    BASIC = "Basic"
    POTENTIAL = "Potential"


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_code = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    tax_number = Column(String(50), nullable=True)
    customer_type = Column(String(20), nullable=False, default=CustomerType.INDIVIDUAL.value)
    segment = Column(String(20), nullable=False, default=CustomerSegment.STANDARD.value)
    payment_terms = Column(Integer, nullable=False, default=30)
    credit_limit = Column(Numeric(15, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "customer_code", name="uq_customer_code_per_org"),
        Index("idx_customers_segment", "segment"),
        Index("idx_customers_is_active", "is_active"),
    )
