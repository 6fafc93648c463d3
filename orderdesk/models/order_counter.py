from sqlalchemy import Column, ForeignKey, Integer

from orderdesk.database import Base


class OrderNumberCounter(Base):
    """Last issued order sequence per (organization, year)."""

    __tablename__ = "order_number_counters"

    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True)
    year = Column(Integer, primary_key=True, autoincrement=False)
    last_value = Column(Integer, nullable=False, default=0)
