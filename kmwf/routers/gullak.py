"""
Gullak (donation box) endpoints, mounted under /api/gullaks.

GET    /                              - list boxes (?status=)
POST   /                              - install a box (manager)
GET    /stats                         - registry stats (manager)
GET    /collections                   - all collections (?verification_status=)
POST   /collections/{id}/verify       - verify or dispute (manager)
GET    /{id}                          - one box
PATCH  /{id}                          - update (manager)
DELETE /{id}                          - delete, only without collections (manager)
GET    /{id}/collections              - collections for one box
POST   /{id}/collections              - record a collection (manager or own caretaker)
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from kmwf.auth import CurrentUser, require_roles
from kmwf.database import get_db
from kmwf.schemas.gullak import (
    CollectionCreate,
    CollectionResponse,
    CollectionVerify,
    GullakCreate,
    GullakResponse,
    GullakStats,
    GullakUpdate,
)
from kmwf.services import gullak as service

logger = logging.getLogger(__name__)
router = APIRouter()

managers = require_roles(*service.MANAGER_ROLES)
collectors = require_roles(*service.COLLECTOR_ROLES)

_STATUS_CODES = {
    service.GullakNotFound: 404,
    service.GullakConflict: 409,
    service.GullakForbidden: 403,
}


def _http_error(e: service.GullakError) -> HTTPException:
    code = _STATUS_CODES.get(type(e), 400)
    logger.warning("Gullak request rejected (%d): %s", code, e)
    return HTTPException(status_code=code, detail=str(e))


# ── GET /api/gullaks ─────────────────────────────────────────────────────
@router.get("", response_model=list[GullakResponse])
def list_gullaks(
    status: Optional[str] = Query(default=None, pattern="^(active|inactive|maintenance|full)$"),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(collectors),
):
    return [service.to_response(r) for r in service.list_gullaks(db, status)]


# ── POST /api/gullaks ────────────────────────────────────────────────────
@router.post("", response_model=GullakResponse, status_code=201)
def create_gullak(req: GullakCreate, db: Session = Depends(get_db), user: CurrentUser = Depends(managers)):
    try:
        row = service.create_gullak(db, req, user)
    except service.GullakError as e:
        raise _http_error(e)
    return service.to_response(row)


# ── GET /api/gullaks/stats ───────────────────────────────────────────────
@router.get("/stats", response_model=GullakStats)
def gullak_stats(db: Session = Depends(get_db), user: CurrentUser = Depends(managers)):
    return service.get_stats(db)


# ── GET /api/gullaks/collections ─────────────────────────────────────────
@router.get("/collections", response_model=list[CollectionResponse])
def all_collections(
    verification_status: Optional[str] = Query(default=None, pattern="^(pending|verified|disputed)$"),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(managers),
):
    rows = service.list_collections(db, verification_status=verification_status)
    return [service.collection_to_response(r) for r in rows]


# ── POST /api/gullaks/collections/{collection_id}/verify ─────────────────
@router.post("/collections/{collection_id}/verify", response_model=CollectionResponse)
def verify_collection(
    collection_id: str,
    req: CollectionVerify,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(managers),
):
    try:
        row = service.verify_collection(db, collection_id, req, user)
    except service.GullakError as e:
        raise _http_error(e)
    return service.collection_to_response(row)


# ── GET /api/gullaks/{gullak_id} ─────────────────────────────────────────
@router.get("/{gullak_id}", response_model=GullakResponse)
def get_gullak(gullak_id: str, db: Session = Depends(get_db), user: CurrentUser = Depends(collectors)):
    try:
        return service.to_response(service.get_gullak(db, gullak_id))
    except service.GullakError as e:
        raise _http_error(e)


# ── PATCH /api/gullaks/{gullak_id} ───────────────────────────────────────
@router.patch("/{gullak_id}", response_model=GullakResponse)
def update_gullak(
    gullak_id: str,
    req: GullakUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(managers),
):
    try:
        row = service.update_gullak(db, gullak_id, req, user)
    except service.GullakError as e:
        raise _http_error(e)
    return service.to_response(row)


# ── DELETE /api/gullaks/{gullak_id} ──────────────────────────────────────
@router.delete("/{gullak_id}")
def delete_gullak(gullak_id: str, db: Session = Depends(get_db), user: CurrentUser = Depends(managers)):
    try:
        readable = service.delete_gullak(db, gullak_id)
    except service.GullakError as e:
        raise _http_error(e)
    return {"message": "Gullak deleted successfully", "gullak_id": readable}


# ── GET /api/gullaks/{gullak_id}/collections ─────────────────────────────
@router.get("/{gullak_id}/collections", response_model=list[CollectionResponse])
def gullak_collections(
    gullak_id: str, db: Session = Depends(get_db), user: CurrentUser = Depends(collectors)
):
    try:
        rows = service.list_collections(db, gullak_id)
    except service.GullakError as e:
        raise _http_error(e)
    return [service.collection_to_response(r) for r in rows]


# ── POST /api/gullaks/{gullak_id}/collections ────────────────────────────
@router.post("/{gullak_id}/collections", response_model=CollectionResponse, status_code=201)
def record_collection(
    gullak_id: str,
    req: CollectionCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(collectors),
):
    try:
        row = service.record_collection(db, gullak_id, req, user)
    except service.GullakError as e:
        raise _http_error(e)
    return service.collection_to_response(row)
