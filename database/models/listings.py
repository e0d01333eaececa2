"""
Catalog Models

Listings and investors read by the scoring pipeline.
"""
from typing import Optional, List, Dict, Any

from sqlalchemy import String, Integer, Float, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class Listing(Base, TimestampMixin):
    """
    A property listing in an organization's catalog.

    `yield_estimate` is a percent (7.5 means 7.5%).
    """
    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    org_id: Mapped[str] = mapped_column(String(50), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    area: Mapped[str] = mapped_column(String(100), nullable=False)
    property_type: Mapped[str] = mapped_column(String(50), nullable=False)

    price: Mapped[float] = mapped_column(Float, nullable=False)
    size_sqft: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    bedrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    yield_estimate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default="available")
    readiness_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    __table_args__ = (
        Index('idx_listings_org_status', 'org_id', 'status'),
        Index('idx_listings_area', 'area'),
    )

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, area={self.area}, price={self.price})>"


class InvestorRecord(Base, TimestampMixin):
    """
    Investor with a JSON mandate.

    The mandate is stored as written by the web app (camelCase keys) and
    parsed into `processor.models.Mandate` by the repository.
    """
    __tablename__ = "investors"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    org_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    mandate: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    tags: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<InvestorRecord(id={self.id}, name={self.name})>"
