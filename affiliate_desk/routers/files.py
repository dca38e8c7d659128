"""Reference document (spreadsheet link) routes."""
from __future__ import annotations

from typing import Any, Iterable

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from affiliate_desk import crud
from affiliate_desk.auth import User
from affiliate_desk.core.access import ALL, category_name
from affiliate_desk.core.documents import filter_files, format_file_size, split_pinned
from affiliate_desk.database import get_session
from affiliate_desk.errors import not_found, store_errors
from affiliate_desk.models import FileData
from affiliate_desk.routers.auth import get_current_user, get_superadmin_user
from affiliate_desk.schemas import FileCreate, FileRead, FileUpdate

router = APIRouter(prefix="/files", tags=["Files"])


def _serialize_file(record: FileData, categories: Iterable) -> dict[str, Any]:
    payload = FileRead.model_validate(record).model_dump(mode="json")
    payload["category_name"] = category_name(categories, record.category_id)
    payload["file_size_display"] = format_file_size(record.file_size)
    return payload


@router.get("")
def list_files(
    search: str | None = Query(default=None),
    category: str = Query(default=ALL),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    categories = crud.list_categories(db)
    matches = filter_files(crud.list_files(db), search, category, categories)
    pinned, others = split_pinned(matches)
    return {
        "pinned": [_serialize_file(item, categories) for item in pinned],
        "files": [_serialize_file(item, categories) for item in others],
        "total": len(matches),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_file(
    payload: FileCreate,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    with store_errors(db, "add file"):
        record = crud.create_file(db, payload, created_by=admin)
    return _serialize_file(record, crud.list_categories(db))


@router.patch("/{file_id}")
def update_file(
    file_id: int,
    payload: FileUpdate,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    record = crud.get_file(db, file_id)
    if not record:
        raise not_found("File")
    with store_errors(db, "update file"):
        record = crud.update_file(db, record, payload)
    return _serialize_file(record, crud.list_categories(db))


@router.post("/{file_id}/pin")
def toggle_pin(
    file_id: int,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    record = crud.get_file(db, file_id)
    if not record:
        raise not_found("File")
    with store_errors(db, "update file"):
        record = crud.toggle_file_pin(db, record)
    return _serialize_file(record, crud.list_categories(db))


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(
    file_id: int,
    db: Session = Depends(get_session),
    admin: User = Depends(get_superadmin_user),
):
    record = crud.get_file(db, file_id)
    if not record:
        raise not_found("File")
    with store_errors(db, "delete file"):
        crud.delete_file(db, record)
