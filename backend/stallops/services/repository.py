# Overview: Service-layer persistence for document rows; loads, creates, saves and lists records.

"""
Record repository

- One repository per document model; rows hold one domain record each.
- save() writes the whole new record and flushes; a concurrent writer that
  bumped version_id first surfaces as VersionConflict, never as a lost update.
- Unique-key violations (code, batch number, stall/date/period) surface as
  ValidationError on create.
- Nothing here commits; callers own the transaction.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..domain.errors import NotFound, ValidationError, VersionConflict
from .concurrency import lock_for_update


def entity_label(model) -> str:
    return model.entity_type.replace("_", " ")


class RecordRepository:
    def __init__(self, model):
        self.model = model

    def query(self, *, include_inactive: bool = False):
        query = db.session.query(self.model)
        if not include_inactive:
            query = query.filter(self.model.is_active.is_(True))
        return query

    def load(self, row_id: int, *, for_update: bool = False):
        query = db.session.query(self.model).filter(self.model.id == row_id)
        if for_update:
            query = lock_for_update(query)
        row = query.first()
        if row is None:
            raise NotFound(f"{entity_label(self.model).capitalize()} {row_id} not found")
        return row

    def create(self, record):
        row = self.model()
        row.apply_record(record)
        db.session.add(row)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise ValidationError(f"{entity_label(self.model).capitalize()} already exists")
        return row

    def save(self, row, record):
        row_id = row.id
        expected = row.version_id
        row.apply_record(record)
        try:
            db.session.flush()
        except StaleDataError:
            db.session.rollback()
            actual = (
                db.session.query(self.model.version_id)
                .filter(self.model.id == row_id)
                .scalar()
            )
            raise VersionConflict(entity_label(self.model), expected, actual)
        return row

    def list(
        self,
        *,
        filters: dict | None = None,
        criteria=(),
        include_inactive: bool = False,
        order_by=None,
        limit: int = 100,
        offset: int = 0,
    ):
        """
        Filter by projected columns.

        filters: {column_name: value}; None values are skipped.
        criteria: extra SQLAlchemy expressions (date ranges, ...).

        Returns (rows, total) where total ignores limit/offset.
        """
        query = self.query(include_inactive=include_inactive)
        for name, value in (filters or {}).items():
            if value is None:
                continue
            query = query.filter(getattr(self.model, name) == value)
        for criterion in criteria:
            query = query.filter(criterion)

        total = query.count()
        if order_by is None:
            order_by = self.model.id.desc()
        rows = query.order_by(order_by).offset(offset).limit(limit).all()
        return rows, total

    def records(self, *, filters: dict | None = None, criteria=(), include_inactive: bool = False):
        """All matching rows decoded to domain records (for roll-ups and jobs)."""
        rows, _ = self.list(
            filters=filters,
            criteria=criteria,
            include_inactive=include_inactive,
            order_by=self.model.id.asc(),
            limit=None,
        )
        return [row.to_record() for row in rows]
