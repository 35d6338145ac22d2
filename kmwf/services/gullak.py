"""
Gullak (donation box) registry and collection ledger.

Collections are append-only: after creation only the verification fields
are ever written, exactly once. Box running totals move with one atomic
UPDATE per collection.
"""
from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import case, func, or_, update
from sqlalchemy.orm import Session

from kmwf.auth import CurrentUser
from kmwf.models import GullakCollectionModel, GullakModel, UserModel
from kmwf.rules.validation import validate_address, validate_text_input
from kmwf.schemas.gullak import (
    CaretakerInfo,
    CollectionCreate,
    CollectionResponse,
    CollectionVerify,
    GullakCreate,
    GullakResponse,
    GullakStats,
    GullakUpdate,
    Witness,
)

logger = logging.getLogger(__name__)

MANAGER_ROLES = ("admin", "moderator", "neki_bank_manager")
COLLECTOR_ROLES = MANAGER_ROLES + ("gullak_caretaker",)
STATUSES = ("active", "inactive", "maintenance", "full")
TEXT_LIMITS = (("landmark", "Landmark", 200), ("description", "Description", 1000), ("notes", "Notes", 1000))
REQUIRED_FIELDS = ("address", "latitude", "longitude", "status")


class GullakError(Exception):
    """Invalid gullak operation (400)."""


class GullakNotFound(GullakError):
    pass


class GullakConflict(GullakError):
    pass


class GullakForbidden(GullakError):
    pass


# ---------------------------------------------------------------------------
# Readable ids
# ---------------------------------------------------------------------------

def _next_readable_id(existing: list[str], prefix: str) -> str:
    pattern = re.compile(rf"^{prefix}-(\d+)$")
    numbers = [int(m.group(1)) for m in (pattern.match(v or "") for v in existing) if m]
    return f"{prefix}-{(max(numbers) if numbers else 0) + 1:03d}"


def next_gullak_id(db: Session) -> str:
    return _next_readable_id([r[0] for r in db.query(GullakModel.gullak_id).all()], "GUL")


def next_collection_id(db: Session) -> str:
    return _next_readable_id(
        [r[0] for r in db.query(GullakCollectionModel.collection_id).all()], "COL"
    )


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

def to_response(row: GullakModel) -> GullakResponse:
    return GullakResponse(
        id=row.id,
        gullak_id=row.gullak_id,
        address=row.address,
        latitude=row.latitude,
        longitude=row.longitude,
        landmark=row.landmark,
        caretaker=CaretakerInfo(
            user_id=row.caretaker_user_id,
            name=row.caretaker_name,
            phone=row.caretaker_phone or "",
            assigned_at=row.caretaker_assigned_at,
        ),
        status=row.status,
        installation_date=row.installation_date,
        last_collection_date=row.last_collection_date,
        total_collections=row.total_collections or 0,
        total_amount_collected=row.total_amount_collected or 0,
        description=row.description,
        notes=row.notes,
    )


def collection_to_response(row: GullakCollectionModel) -> CollectionResponse:
    return CollectionResponse(
        id=row.id,
        collection_id=row.collection_id,
        gullak_id=row.gullak_readable_id,
        amount=row.amount,
        collection_date=row.collection_date,
        collected_by=row.collected_by_name,
        caretaker_present=row.caretaker_name,
        witnesses=[Witness(**w) for w in row.witnesses_json or []],
        notes=row.notes,
        verification_status=row.verification_status,
        verified_by=row.verified_by_name,
        verified_at=row.verified_at,
        verification_notes=row.verification_notes,
        created_at=row.created_at,
    )


# ---------------------------------------------------------------------------
# Gullaks
# ---------------------------------------------------------------------------

def get_gullak(db: Session, key: str) -> GullakModel:
    """Look up by primary key or readable ``GUL-NNN`` id."""
    row = (
        db.query(GullakModel)
        .filter(or_(GullakModel.id == key, GullakModel.gullak_id == key))
        .first()
    )
    if not row:
        raise GullakNotFound(f"Gullak not found: {key}")
    return row


def list_gullaks(db: Session, status: Optional[str] = None) -> list[GullakModel]:
    q = db.query(GullakModel)
    if status:
        q = q.filter(GullakModel.status == status)
    return q.order_by(GullakModel.gullak_id).all()


def _resolve_caretaker(db: Session, user_id: str) -> UserModel:
    user = (
        db.query(UserModel)
        .filter(or_(UserModel.id == user_id, UserModel.external_user_id == user_id))
        .first()
    )
    if not user:
        raise GullakError(f"Caretaker not found: {user_id}")
    if user.role != "gullak_caretaker":
        raise GullakError("Assigned user must have the gullak_caretaker role")
    return user


def _check_text_fields(values: dict) -> None:
    if "address" in values:
        check = validate_address(values["address"])
        if not check.is_valid:
            raise GullakError(check.error)
    for field, name, limit in TEXT_LIMITS:
        check = validate_text_input(values.get(field), name, max_length=limit)
        if not check.is_valid:
            raise GullakError(check.error)


def create_gullak(db: Session, data: GullakCreate, actor: CurrentUser) -> GullakModel:
    _check_text_fields(data.model_dump())
    caretaker = _resolve_caretaker(db, data.caretaker_user_id)
    row = GullakModel(
        id=str(uuid.uuid4()),
        gullak_id=next_gullak_id(db),
        address=data.address.strip(),
        latitude=data.latitude,
        longitude=data.longitude,
        landmark=data.landmark,
        caretaker_user_id=caretaker.external_user_id or caretaker.id,
        caretaker_name=caretaker.name,
        caretaker_phone=caretaker.phone or "",
        caretaker_assigned_at=datetime.utcnow(),
        status="active",
        installation_date=data.installation_date,
        description=data.description,
        notes=data.notes,
        created_by=actor.user_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Created gullak %s (caretaker=%s) by %s", row.gullak_id, row.caretaker_name, actor.user_id)
    return row


def update_gullak(db: Session, key: str, data: GullakUpdate, actor: CurrentUser) -> GullakModel:
    row = get_gullak(db, key)
    changes = {
        k: v for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k not in REQUIRED_FIELDS
    }
    _check_text_fields(changes)

    caretaker_id = changes.pop("caretaker_user_id", None)
    if caretaker_id:
        caretaker = _resolve_caretaker(db, caretaker_id)
        new_id = caretaker.external_user_id or caretaker.id
        if new_id != row.caretaker_user_id:
            row.caretaker_user_id = new_id
            row.caretaker_name = caretaker.name
            row.caretaker_phone = caretaker.phone or ""
            row.caretaker_assigned_at = datetime.utcnow()

    for field, value in changes.items():
        setattr(row, field, value)
    row.updated_by = actor.user_id
    db.commit()
    db.refresh(row)
    logger.info("Updated gullak %s: %s", row.gullak_id, sorted(changes))
    return row


def delete_gullak(db: Session, key: str) -> str:
    row = get_gullak(db, key)
    count = (
        db.query(func.count(GullakCollectionModel.id))
        .filter(GullakCollectionModel.gullak_pk == row.id)
        .scalar()
    )
    if count:
        raise GullakConflict(
            f"Cannot delete gullak {row.gullak_id}: it has {count} recorded collections"
        )
    readable = row.gullak_id
    db.delete(row)
    db.commit()
    logger.info("Deleted gullak %s", readable)
    return readable


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

def record_collection(
    db: Session, key: str, data: CollectionCreate, actor: CurrentUser
) -> GullakCollectionModel:
    box = get_gullak(db, key)
    if not actor.roles.has_any(*MANAGER_ROLES) and box.caretaker_user_id != actor.user_id:
        raise GullakForbidden("Caretakers may only record collections for their own gullak")

    row = GullakCollectionModel(
        id=str(uuid.uuid4()),
        collection_id=next_collection_id(db),
        gullak_pk=box.id,
        gullak_readable_id=box.gullak_id,
        amount=data.amount,
        collection_date=data.collection_date,
        collected_by_user_id=actor.user_id,
        collected_by_name=actor.name,
        caretaker_user_id=box.caretaker_user_id,
        caretaker_name=box.caretaker_name,
        witnesses_json=[w.model_dump() for w in data.witnesses],
        notes=data.notes,
        verification_status="pending",
        created_by=actor.user_id,
    )
    db.add(row)

    last = GullakModel.last_collection_date
    db.execute(
        update(GullakModel)
        .where(GullakModel.id == box.id)
        .values(
            total_collections=GullakModel.total_collections + 1,
            total_amount_collected=GullakModel.total_amount_collected + data.amount,
            last_collection_date=case(
                (last.is_(None), data.collection_date),
                (last < data.collection_date, data.collection_date),
                else_=last,
            ),
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(row)
    logger.info(
        "Recorded collection %s for %s: amount=%.2f by %s",
        row.collection_id, box.gullak_id, data.amount, actor.user_id,
    )
    return row


def list_collections(
    db: Session, key: Optional[str] = None, verification_status: Optional[str] = None
) -> list[GullakCollectionModel]:
    q = db.query(GullakCollectionModel)
    if key:
        q = q.filter(GullakCollectionModel.gullak_pk == get_gullak(db, key).id)
    if verification_status:
        q = q.filter(GullakCollectionModel.verification_status == verification_status)
    return q.order_by(GullakCollectionModel.collection_date.desc()).all()


def get_collection(db: Session, key: str) -> GullakCollectionModel:
    row = (
        db.query(GullakCollectionModel)
        .filter(or_(GullakCollectionModel.id == key, GullakCollectionModel.collection_id == key))
        .first()
    )
    if not row:
        raise GullakNotFound(f"Collection not found: {key}")
    return row


def verify_collection(
    db: Session, key: str, data: CollectionVerify, actor: CurrentUser
) -> GullakCollectionModel:
    row = get_collection(db, key)
    if row.verification_status != "pending":
        raise GullakConflict(f"Collection {row.collection_id} is already {row.verification_status}")
    notes = (data.notes or "").strip()
    if data.status == "disputed" and not notes:
        raise GullakError("Notes are required when disputing a collection")

    row.verification_status = data.status
    row.verified_by_user_id = actor.user_id
    row.verified_by_name = actor.name
    row.verified_at = datetime.utcnow()
    row.verification_notes = notes or None
    db.commit()
    db.refresh(row)
    logger.info("Collection %s marked %s by %s", row.collection_id, data.status, actor.user_id)
    return row


def get_stats(db: Session, now: Optional[datetime] = None) -> GullakStats:
    now = now or datetime.utcnow()
    month_start = datetime(now.year, now.month, 1)

    by_status = dict(
        db.query(GullakModel.status, func.count(GullakModel.id)).group_by(GullakModel.status).all()
    )
    total_collections, total_amount = db.query(
        func.count(GullakCollectionModel.id), func.coalesce(func.sum(GullakCollectionModel.amount), 0)
    ).one()
    this_month = (
        db.query(func.count(GullakCollectionModel.id))
        .filter(GullakCollectionModel.collection_date >= month_start)
        .scalar()
    )
    pending = (
        db.query(func.count(GullakCollectionModel.id))
        .filter(GullakCollectionModel.verification_status == "pending")
        .scalar()
    )
    return GullakStats(
        total_gullaks=sum(by_status.values()),
        **{s: by_status.get(s, 0) for s in STATUSES},
        total_collections=total_collections,
        total_amount=float(total_amount or 0),
        this_month_collections=this_month,
        pending_verifications=pending,
    )
