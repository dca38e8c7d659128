"""Router package exports."""
from . import accounts, auth, categories, dashboard, files, incentives, profile, reports, sales, users

__all__ = [
    "accounts",
    "auth",
    "categories",
    "dashboard",
    "files",
    "incentives",
    "profile",
    "reports",
    "sales",
    "users",
]
