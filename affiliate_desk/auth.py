"""Staff users and password handling."""
from __future__ import annotations

from datetime import datetime

import bcrypt
from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from affiliate_desk.database import Base

ROLE_ENUM = ("user", "superadmin")


class User(Base):
    """Staff member who manages affiliate accounts."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="user", nullable=False)  # "user" or "superadmin"
    # Account ids this user may see; reassign the list instead of mutating it in place
    managed_accounts: Mapped[list[int]] = mapped_column(JSON, default=list, nullable=False)
    company: Mapped[str | None] = mapped_column(String(200), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        salt = bcrypt.gensalt()
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""
        return bcrypt.checkpw(password.encode("utf-8"), self.password_hash.encode("utf-8"))

    @classmethod
    def create_user(
        cls,
        email: str,
        password: str,
        name: str | None = None,
        role: str = "user",
        managed_accounts: list[int] | None = None,
    ) -> User:
        """Create a new user with hashed password."""
        normalized_email = email.strip().lower()
        return cls(
            email=normalized_email,
            name=name or normalized_email.split("@")[0],
            password_hash=cls.hash_password(password),
            role=role,
            managed_accounts=list(managed_accounts or []),
        )

    def is_superadmin(self) -> bool:
        return self.role == "superadmin"

    def manages(self, account_id: int) -> bool:
        return account_id in (self.managed_accounts or [])

    @property
    def role_label(self) -> str:
        return "Super Administrator" if self.is_superadmin() else "User"
