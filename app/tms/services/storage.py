"""
Load persistence on top of SQLAlchemy.

Every operation is scoped to the caller's user id; loads owned by other
users behave exactly like missing loads. Database errors surface as
PersistenceFailure after the session is rolled back.
"""

import logging
import uuid
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import (
    ExtractionOutcome,
    LoadRecord,
    LoadStatus,
    Location,
    StoredLoadResponse,
    UpdateLoadRequest,
)
from ..models_db import Load
from .extraction.exceptions import PersistenceFailure
from .extraction.metrics import compute_rate_per_mile

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Fields that may be explicitly cleared (set to null) by an update
_NULLABLE_UPDATE_FIELDS = {"pickup_date", "delivery_date"}


def _apply_record(row: Load, load: LoadRecord) -> None:
    """Copy a LoadRecord onto an ORM row."""
    row.load_number = load.load_id
    row.pickup_date = load.pickup_date
    row.delivery_date = load.delivery_date
    row.broker_name = load.broker_company
    row.broker_mc = load.broker_mc
    row.contact_name = load.contact_name
    row.contact_phone = load.contact_phone
    row.contact_extension = load.contact_extension
    row.contact_email = load.contact_email
    row.invoice_email = load.invoice_email
    row.pickup_city = load.origin.city
    row.pickup_state = load.origin.state
    row.pickup_address = load.pickup_address
    row.delivery_city = load.destination.city
    row.delivery_state = load.destination.state
    row.delivery_address = load.delivery_address
    row.equipment = load.equipment
    row.miles = load.miles
    row.posted_rate = load.posted_rate
    row.booked_rate = load.booked_rate
    row.shipper = load.shipper
    row.receiver = load.receiver
    row.commodity = load.commodity
    row.weight = load.weight
    row.notes = load.notes
    row.rate_per_mile = compute_rate_per_mile(load.miles, load.booked_rate)


def to_load_record(row: Load) -> LoadRecord:
    """Rebuild the canonical LoadRecord from an ORM row."""
    return LoadRecord(
        load_id=row.load_number or "",
        pickup_date=row.pickup_date,
        delivery_date=row.delivery_date,
        broker_company=row.broker_name or "",
        broker_mc=row.broker_mc or "",
        contact_name=row.contact_name or "",
        contact_phone=row.contact_phone or "",
        contact_extension=row.contact_extension or "",
        contact_email=row.contact_email or "",
        invoice_email=row.invoice_email or "",
        origin=Location(city=row.pickup_city or "", state=row.pickup_state or ""),
        destination=Location(city=row.delivery_city or "", state=row.delivery_state or ""),
        pickup_address=row.pickup_address or "",
        delivery_address=row.delivery_address or "",
        equipment=row.equipment or "",
        miles=row.miles or 0.0,
        posted_rate=row.posted_rate or 0.0,
        booked_rate=row.booked_rate or 0.0,
        shipper=row.shipper or "",
        receiver=row.receiver or "",
        commodity=row.commodity or "",
        weight=row.weight or 0.0,
        notes=row.notes or "",
    )


def to_response(row: Load) -> StoredLoadResponse:
    """Convert an ORM row to its API representation."""
    return StoredLoadResponse(
        id=str(row.id),
        user_id=row.user_id,
        status=row.status,
        load=to_load_record(row),
        rate_per_mile=row.rate_per_mile,
        raw_line=row.raw_line,
        contract_version=row.contract_version,
        source_file=row.source_file,
        created_at=row.created_at.isoformat(),
        updated_at=row.updated_at.isoformat(),
    )


class LoadStore:
    """
    Storage collaborator for loads.

    Wraps one SQLAlchemy session (one request).
    """

    def __init__(self, db: Session):
        self.db = db

    def _write(self, action: str, operation: Callable[[], T], outcome: ExtractionOutcome | None = None) -> T:
        """Run a write operation, converting database errors to PersistenceFailure."""
        try:
            return operation()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Failed to %s load", action)
            raise PersistenceFailure(f"Failed to {action} load: {e}", outcome=outcome) from e

    def insert(self, user_id: str, outcome: ExtractionOutcome) -> StoredLoadResponse:
        """
        Persist an extraction outcome as a new pending load.

        Raises:
            PersistenceFailure: If the database rejects the insert. The
                outcome is attached so the parsed load is not lost.
        """

        def _insert() -> StoredLoadResponse:
            row = Load(user_id=user_id, status=LoadStatus.PENDING)
            _apply_record(row, outcome.load)
            row.raw_line = outcome.raw_line
            row.contract_version = outcome.contract_version
            row.source_file = outcome.source_file
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.info("Stored load %s ('%s') for user %s", row.id, row.load_number, user_id)
            return to_response(row)

        return self._write("save", _insert, outcome=outcome)

    def create(self, user_id: str, load: LoadRecord) -> StoredLoadResponse:
        """Persist a manually entered load."""

        def _create() -> StoredLoadResponse:
            row = Load(user_id=user_id, status=LoadStatus.PENDING)
            _apply_record(row, load)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return to_response(row)

        return self._write("create", _create)

    def _get_row(self, user_id: str, load_id: uuid.UUID) -> Load | None:
        return (
            self.db.query(Load)
            .filter(Load.id == load_id, Load.user_id == user_id)
            .first()
        )

    def get(self, user_id: str, load_id: uuid.UUID) -> StoredLoadResponse | None:
        """Fetch one load, or None if it does not exist for this user."""
        row = self._get_row(user_id, load_id)
        return to_response(row) if row else None

    def list_loads(
        self,
        user_id: str,
        status: LoadStatus | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[StoredLoadResponse], int]:
        """
        List a user's loads, newest first.

        Args:
            user_id: Owner of the loads.
            status: Only loads in this status.
            search: Case-insensitive substring of load number or broker name.
            limit: Maximum number of loads to return.
            offset: Number of loads to skip.

        Returns:
            Tuple of (page of loads, total matching count).
        """
        query = self.db.query(Load).filter(Load.user_id == user_id)
        if status is not None:
            query = query.filter(Load.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(Load.load_number.ilike(pattern), Load.broker_name.ilike(pattern))
            )

        total = query.count()
        rows = (
            query.order_by(Load.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [to_response(row) for row in rows], total

    def update(
        self,
        user_id: str,
        load_id: uuid.UUID,
        changes: UpdateLoadRequest,
    ) -> StoredLoadResponse | None:
        """
        Apply a partial update. Rate per mile is recomputed from the result.

        Returns None if the load does not exist for this user.
        """
        row = self._get_row(user_id, load_id)
        if row is None:
            return None

        updates = {
            key: value
            for key, value in changes.model_dump(exclude_unset=True, exclude={"status"}).items()
            if value is not None or key in _NULLABLE_UPDATE_FIELDS
        }

        def _update() -> StoredLoadResponse:
            if updates:
                merged = to_load_record(row).model_dump()
                merged.update(updates)
                _apply_record(row, LoadRecord.model_validate(merged))
            if changes.status is not None:
                row.status = changes.status
            self.db.commit()
            self.db.refresh(row)
            logger.info("Updated load %s fields=%s", row.id, sorted(changes.model_fields_set))
            return to_response(row)

        return self._write("update", _update)

    def delete(self, user_id: str, load_id: uuid.UUID) -> bool:
        """Delete a load. Returns False if it does not exist for this user."""
        row = self._get_row(user_id, load_id)
        if row is None:
            return False

        def _delete() -> bool:
            self.db.delete(row)
            self.db.commit()
            return True

        return self._write("delete", _delete)
