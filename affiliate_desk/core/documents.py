"""Filtering and ordering for the reference document list."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from affiliate_desk.core.access import ALL, category_name


def filter_files(
    files: Sequence,
    search: str | None = None,
    category_id: int | str | None = ALL,
    categories: Iterable = (),
) -> list:
    lowered = (search or "").strip().lower()
    categories = list(categories)
    results = []
    for item in files:
        if lowered:
            matches = (
                lowered in (item.name or "").lower()
                or lowered in (item.description or "").lower()
                or lowered in category_name(categories, item.category_id).lower()
            )
            if not matches:
                continue
        if category_id not in (None, "", ALL) and str(item.category_id) != str(category_id):
            continue
        results.append(item)
    return results


def sort_files(files: Iterable) -> list:
    """Pinned first, then most recently updated."""
    by_recency = sorted(files, key=lambda item: item.updated_at or datetime.min, reverse=True)
    return sorted(by_recency, key=lambda item: not item.is_pinned)


def split_pinned(files: Iterable) -> tuple[list, list]:
    ordered = sort_files(files)
    return [item for item in ordered if item.is_pinned], [item for item in ordered if not item.is_pinned]


def format_file_size(size: int | None) -> str:
    if not size:
        return "Unknown"
    return f"{size / 1024:.1f} KB"
