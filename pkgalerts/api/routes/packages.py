"""Registry routes.

GET    /packages          -- list Registry rows (optionally by tracked flag)
GET    /packages/{name}   -- one Registry row
PATCH  /packages/{name}   -- start or stop tracking an existing package
POST   /packages          -- add a package from the catalog and track it
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pkgalerts.api.deps import get_catalog, get_db
from pkgalerts.catalog.snapshot import CatalogSource
from pkgalerts.core.errors import PackageNotFoundError
from pkgalerts.db.models import TrackedPackage
from pkgalerts.tracking.registry import PackageRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/packages", tags=["packages"])


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------

class TrackingBody(BaseModel):
    tracked: bool


class AddPackageBody(BaseModel):
    name: str
    tracked: bool = True


def _package_summary(row: TrackedPackage) -> dict:
    return {
        "name": row.package_name,
        "version": row.version,
        "runtime_version": row.runtime_version,
        "tracked": row.tracked,
    }


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("", summary="List Registry packages")
def list_packages(tracked: bool | None = None, db: Session = Depends(get_db)):
    return [_package_summary(row) for row in PackageRegistry(db).list(tracked=tracked)]


@router.get("/{name}", summary="Get one Registry package")
def get_package(name: str, db: Session = Depends(get_db)):
    row = PackageRegistry(db).get(name)
    if row is None:
        raise HTTPException(status_code=404, detail=f"Package {name!r} not found")
    return _package_summary(row)


@router.patch("/{name}", summary="Set the tracked flag of a package")
def set_tracking(name: str, body: TrackingBody, db: Session = Depends(get_db)):
    try:
        row = PackageRegistry(db).set_tracked(name, body.tracked)
    except PackageNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _package_summary(row)


@router.post("", status_code=201, summary="Add a package from the catalog")
def add_package(
    body: AddPackageBody,
    db: Session = Depends(get_db),
    catalog: CatalogSource = Depends(get_catalog),
):
    try:
        row = PackageRegistry(db).add_from_catalog(body.name, catalog, tracked=body.tracked)
    except PackageNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _package_summary(row)
