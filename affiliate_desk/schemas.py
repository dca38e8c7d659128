"""Pydantic schemas for API payloads and responses."""
from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from affiliate_desk.auth import ROLE_ENUM
from affiliate_desk.models import ACCOUNT_STATUS_ENUM, PAYMENT_DATA_ENUM

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_MONEY_PLACES = Decimal("0.01")
_RATE_PLACES = Decimal("0.0001")


def _normalize_email(value: Any) -> str:
    if value is None:
        raise ValueError("Email is required.")
    text = str(value).strip().lower()
    if not _EMAIL_PATTERN.match(text):
        raise ValueError("Email address is not valid.")
    return text


def _normalize_choice(value: str, choices: tuple[str, ...], label: str) -> str:
    normalized = value.strip().lower()
    if normalized not in choices:
        raise ValueError(f"{label} must be one of: {', '.join(choices)}.")
    return normalized


def _validate_url(value: str) -> str:
    value = value.strip()
    if not value.lower().startswith(("http://", "https://")):
        raise ValueError("Spreadsheet URL must start with http:// or https://")
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# --- Categories -------------------------------------------------------------

class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None

    @field_validator("name", mode="before")
    def strip_name(cls, value: Any) -> str:
        if value is None or not str(value).strip():
            raise ValueError("Category name cannot be empty.")
        return str(value).strip()


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None


class CategoryRead(CategoryBase):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# --- Accounts ---------------------------------------------------------------

class AccountBase(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: str
    phone: str = Field("", max_length=50)
    status: str = "active"
    payment_data: str = "belum diatur"
    category_id: Optional[int] = None
    user_id: Optional[int] = None

    @field_validator("username", mode="before")
    def strip_username(cls, value: Any) -> str:
        if value is None or not str(value).strip():
            raise ValueError("Username is required.")
        return str(value).strip()

    @field_validator("email", mode="before")
    def validate_email(cls, value: Any) -> str:
        return _normalize_email(value)

    @field_validator("phone", mode="before")
    def strip_phone(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("status")
    def validate_status(cls, value: str) -> str:
        return _normalize_choice(value, ACCOUNT_STATUS_ENUM, "Status")

    @field_validator("payment_data")
    def validate_payment_data(cls, value: str) -> str:
        return _normalize_choice(value, PAYMENT_DATA_ENUM, "Payment status")

    @field_validator("category_id", "user_id", mode="before")
    def empty_reference_is_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    model_config = ConfigDict(from_attributes=True)


class AccountCreate(AccountBase):
    pass


class AccountUpdate(BaseModel):
    """Partial update; only fields present in the request are written."""

    username: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    status: Optional[str] = None
    payment_data: Optional[str] = None
    category_id: Optional[int] = None

    @field_validator("email", mode="before")
    def validate_email(cls, value: Any) -> Optional[str]:
        return None if value is None else _normalize_email(value)

    @field_validator("status")
    def validate_status(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _normalize_choice(value, ACCOUNT_STATUS_ENUM, "Status")

    @field_validator("payment_data")
    def validate_payment_data(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _normalize_choice(value, PAYMENT_DATA_ENUM, "Payment status")

    @field_validator("category_id", mode="before")
    def empty_reference_is_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class AccountRead(AccountBase):
    id: int
    account_code: Optional[str]
    created_at: datetime


# --- Sales data -------------------------------------------------------------

class SalesDataBase(BaseModel):
    account_id: int
    date: date
    clicks: int = Field(0, ge=0)
    orders: int = Field(0, ge=0)
    gross_commission: Decimal = Field(Decimal("0"), ge=0)
    products_sold: int = Field(0, ge=0)
    total_purchases: Decimal = Field(Decimal("0"), ge=0)
    new_buyers: int = Field(0, ge=0)

    @field_validator("gross_commission", "total_purchases")
    def quantize_money(cls, value: Decimal) -> Decimal:
        return value.quantize(_MONEY_PLACES, rounding=ROUND_HALF_UP)

    model_config = ConfigDict(from_attributes=True)


class SalesDataCreate(SalesDataBase):
    pass


class SalesDataRead(SalesDataBase):
    id: int
    created_at: datetime


class SalesDataDelete(BaseModel):
    account_id: int
    start: Optional[date] = None
    end: Optional[date] = None

    @model_validator(mode="after")
    def check_range(self) -> "SalesDataDelete":
        if (self.start is None) != (self.end is None):
            raise ValueError("Both start and end dates are required for a date range.")
        if self.start and self.end and self.end < self.start:
            raise ValueError("End date must be on or after start date.")
        return self


# --- Users ------------------------------------------------------------------

class UserBase(BaseModel):
    email: str
    name: str = Field(..., min_length=1, max_length=200)
    role: str = "user"
    managed_accounts: list[int] = Field(default_factory=list)
    company: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None

    @field_validator("email", mode="before")
    def validate_email(cls, value: Any) -> str:
        return _normalize_email(value)

    @field_validator("role")
    def validate_role(cls, value: str) -> str:
        return _normalize_choice(value, ROLE_ENUM, "Role")

    @field_validator("managed_accounts")
    def dedupe_managed_accounts(cls, value: list[int]) -> list[int]:
        return list(dict.fromkeys(value))

    model_config = ConfigDict(from_attributes=True)


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)


class UserUpdate(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    role: Optional[str] = None
    managed_accounts: Optional[list[int]] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None

    @field_validator("email", mode="before")
    def validate_email(cls, value: Any) -> Optional[str]:
        return None if value is None else _normalize_email(value)

    @field_validator("role")
    def validate_role(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _normalize_choice(value, ROLE_ENUM, "Role")

    @field_validator("managed_accounts")
    def dedupe_managed_accounts(cls, value: Optional[list[int]]) -> Optional[list[int]]:
        return None if value is None else list(dict.fromkeys(value))


class UserRead(UserBase):
    id: int
    created_at: datetime


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None

    @field_validator("phone", "address", "bio", mode="before")
    def blank_is_none(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        return value.strip() if isinstance(value, str) else value


class PasswordChange(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


# --- Incentive rules --------------------------------------------------------

class IncentiveTierBase(BaseModel):
    revenue_threshold: Decimal = Field(..., ge=0)
    incentive_rate: Decimal = Field(..., ge=0, le=100)

    @field_validator("revenue_threshold")
    def quantize_threshold(cls, value: Decimal) -> Decimal:
        return value.quantize(_MONEY_PLACES, rounding=ROUND_HALF_UP)

    @field_validator("incentive_rate")
    def quantize_rate(cls, value: Decimal) -> Decimal:
        return value.quantize(_RATE_PLACES, rounding=ROUND_HALF_UP)

    model_config = ConfigDict(from_attributes=True)


class IncentiveTierCreate(IncentiveTierBase):
    pass


class IncentiveTierRead(IncentiveTierBase):
    id: int
    created_at: datetime


class IncentiveRuleBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    min_commission_threshold: Decimal = Field(Decimal("0"), ge=0)
    commission_rate_min: Decimal = Field(Decimal("0"), ge=0, le=100)
    commission_rate_max: Decimal = Field(Decimal("100"), ge=0, le=100)
    base_revenue_threshold: Decimal = Field(Decimal("0"), ge=0)
    is_active: bool = False

    model_config = ConfigDict(from_attributes=True)


class IncentiveRuleCreate(IncentiveRuleBase):
    tiers: list[IncentiveTierCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_rate_range(self) -> "IncentiveRuleCreate":
        if self.commission_rate_min > self.commission_rate_max:
            raise ValueError("Minimum commission rate cannot exceed the maximum rate.")
        return self


class IncentiveRuleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    min_commission_threshold: Optional[Decimal] = Field(None, ge=0)
    commission_rate_min: Optional[Decimal] = Field(None, ge=0, le=100)
    commission_rate_max: Optional[Decimal] = Field(None, ge=0, le=100)
    base_revenue_threshold: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None
    tiers: Optional[list[IncentiveTierCreate]] = None


class IncentiveRuleRead(IncentiveRuleBase):
    id: int
    created_at: datetime
    tiers: list[IncentiveTierRead] = Field(default_factory=list)


# --- Files ------------------------------------------------------------------

class FileBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category_id: Optional[int] = None
    spreadsheet_url: str = Field(..., min_length=1, max_length=1000)
    description: Optional[str] = None

    @field_validator("spreadsheet_url")
    def validate_url(cls, value: str) -> str:
        return _validate_url(value)

    @field_validator("category_id", mode="before")
    def empty_reference_is_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    model_config = ConfigDict(from_attributes=True)


class FileCreate(FileBase):
    file_size: Optional[int] = Field(None, ge=0)


class FileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category_id: Optional[int] = None
    spreadsheet_url: Optional[str] = Field(None, min_length=1, max_length=1000)
    description: Optional[str] = None
    is_pinned: Optional[bool] = None

    @field_validator("spreadsheet_url")
    def validate_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _validate_url(value)


class FileRead(FileBase):
    id: int
    is_pinned: bool
    created_by: Optional[int]
    file_size: Optional[int]
    created_at: datetime
    updated_at: datetime
