"""Change log routes.

GET    /changes  -- pending change records, oldest first
DELETE /changes  -- discard pending records (after manual Registry edits)
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pkgalerts.api.deps import get_db
from pkgalerts.tracking.change_log import ChangeLog

router = APIRouter(prefix="/changes", tags=["changes"])


@router.get("", summary="List pending change records")
def list_changes(limit: int | None = None, db: Session = Depends(get_db)):
    return [
        {
            "seq": r.seq,
            "action": r.action,
            "name": r.package_name,
            "version": r.version,
            "runtime_version": r.runtime_version,
            "tracked": r.tracked,
        }
        for r in ChangeLog(db).pending(limit=limit)
    ]


@router.delete("", summary="Reset the change log")
def reset_changes(db: Session = Depends(get_db)):
    return {"removed": ChangeLog(db).reset()}
