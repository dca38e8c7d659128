"""SQLAlchemy models for the affiliate desk."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from affiliate_desk.auth import User
from affiliate_desk.database import Base

ACCOUNT_STATUS_ENUM = ("active", "violation", "inactive")
PAYMENT_DATA_ENUM = ("belum diatur", "utamakan", "dimasukkan", "disetujui", "sah")

ACCOUNT_STATUS_LABELS = {
    "active": "Aktif",
    "violation": "Pelanggaran",
    "inactive": "Non-Aktif",
}
PAYMENT_DATA_LABELS = {
    "belum diatur": "Belum Diatur",
    "utamakan": "Utamakan",
    "dimasukkan": "Dimasukkan",
    "disetujui": "Disetujui",
    "sah": "Sah",
}
UNSET_CATEGORY_LABEL = "Belum Diatur"


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    accounts: Mapped[list["Account"]] = relationship(back_populates="category")


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    payment_data: Mapped[str] = mapped_column(String(20), nullable=False, default="belum diatur")
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    category: Mapped[Category | None] = relationship(back_populates="accounts")
    owner: Mapped[User | None] = relationship(User)
    sales: Mapped[list["SalesData"]] = relationship(back_populates="account", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'violation', 'inactive')",
            name="ck_accounts_status_valid",
        ),
        CheckConstraint(
            "payment_data IN ('belum diatur', 'utamakan', 'dimasukkan', 'disetujui', 'sah')",
            name="ck_accounts_payment_data_valid",
        ),
    )


class SalesData(Base):
    __tablename__ = "sales_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gross_commission: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False, default=0)
    products_sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_purchases: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False, default=0)
    new_buyers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    account: Mapped[Account] = relationship(back_populates="sales")

    __table_args__ = (
        UniqueConstraint("account_id", "date", name="uq_sales_data_account_date"),
        CheckConstraint("clicks >= 0 AND orders >= 0", name="ck_sales_data_counts_nonnegative"),
    )


class IncentiveRule(Base):
    __tablename__ = "incentive_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    min_commission_threshold: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False, default=0)
    commission_rate_min: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False, default=0)
    commission_rate_max: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False, default=100)
    base_revenue_threshold: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    tiers: Mapped[list["IncentiveTier"]] = relationship(
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by="IncentiveTier.revenue_threshold",
    )

    __table_args__ = (
        CheckConstraint("commission_rate_min <= commission_rate_max", name="ck_incentive_rules_rate_range"),
    )


class IncentiveTier(Base):
    __tablename__ = "incentive_tiers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rule_id: Mapped[int] = mapped_column(
        ForeignKey("incentive_rules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    revenue_threshold: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    incentive_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    rule: Mapped[IncentiveRule] = relationship(back_populates="tiers")

    __table_args__ = (
        CheckConstraint("incentive_rate >= 0", name="ck_incentive_tiers_rate_nonnegative"),
    )


class FileData(Base):
    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    spreadsheet_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
