"""
Column registry and row reconciliation.

A class's grade columns are always replaced as a whole set. After the new
set is written, every grade row is brought back in line with it: columns
nobody has a grade for yet get a zero entry in each row, and entries that
point at columns no longer in the set are dropped. Rows reference columns
by id, so renaming a column leaves its grades untouched, while removing a
column and adding one with the same name starts the new column at zero.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from numbers import Real
from typing import List, Optional

from sqlalchemy import delete, insert, select

from app import db
from app.models import GradeColumn, GradeRow, Grade
from app.models.class_grade import COLUMN_NAME_MAX_LENGTH
from app.utils.class_grades import get_class_grade
from app.utils.errors import (InvalidColumnDefinition, InvalidWeightDistribution,
                              InvalidOrdinalSequence, DuplicateColumnName, ColumnNotFound)
from app.utils.helpers import generate_uuid

logger = logging.getLogger(__name__)

TOTAL_SCALE = 100
RESERVED_NAMES = ('student_id', 'full_name', 'id', '_id')


@dataclass
class ColumnSpec:
    name: str
    ordinal: int = 0
    scale_value: float = 0
    id: Optional[str] = None


def _is_number(value):
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def parse_column_payload(items) -> List[ColumnSpec]:
    """Field-level checks on raw column items from a request body."""
    if not isinstance(items, list):
        raise InvalidColumnDefinition('grade_columns must be a list')

    columns = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidColumnDefinition('Each grade column must be an object', index)

        name = item.get('name')
        if not isinstance(name, str) or not name.strip():
            raise InvalidColumnDefinition('Grade column name is required', index)
        name = name.strip()
        if len(name) > COLUMN_NAME_MAX_LENGTH:
            raise InvalidColumnDefinition(
                f'Grade column name must be at most {COLUMN_NAME_MAX_LENGTH} characters', index)
        if name in RESERVED_NAMES:
            raise InvalidColumnDefinition(f"'{name}' is reserved and cannot be a grade column name", index)

        ordinal = item.get('ordinal', 0)
        if not _is_number(ordinal) or int(ordinal) != ordinal or ordinal < 0:
            raise InvalidColumnDefinition('Grade column ordinal must be a non-negative integer', index)

        scale_value = item.get('scaleValue', item.get('scale_value'))
        if not _is_number(scale_value) or not 0 <= scale_value <= TOTAL_SCALE:
            raise InvalidColumnDefinition('Grade column scaleValue must be a number between 0 and 100', index)

        column_id = item.get('id')
        if column_id is not None and not isinstance(column_id, str):
            raise InvalidColumnDefinition('Grade column id must be a string', index)

        columns.append(ColumnSpec(name=name, ordinal=int(ordinal), scale_value=scale_value,
                                  id=column_id or None))
    return columns


def validate_column_set(columns):
    """Weights, ordinals and names of a proposed full column set; first failure wins."""
    if not columns:
        return

    total = math.fsum(column.scale_value for column in columns)
    if total != TOTAL_SCALE:
        raise InvalidWeightDistribution(total)

    ordinals = sorted(column.ordinal for column in columns)
    if any(ordinal != position for position, ordinal in enumerate(ordinals)):
        raise InvalidOrdinalSequence(ordinals)

    name_counts = Counter(column.name for column in columns)
    duplicates = [name for name, count in name_counts.items() if count > 1]
    if duplicates:
        raise DuplicateColumnName(duplicates)


def reconcile(class_grade, new_columns):
    """Bring every grade row of ``class_grade`` in line with ``new_columns``.

    Does not commit; the caller owns the transaction.
    """
    db.session.flush()
    row_ids = select(GradeRow.id).where(GradeRow.class_grade_id == class_grade.id)
    new_ids = [column.id for column in new_columns]

    removed = db.session.execute(
        delete(Grade)
        .where(Grade.row_id.in_(row_ids), Grade.column_id.not_in(new_ids))
        .execution_options(synchronize_session='fetch')
    )
    if removed.rowcount:
        logger.info(f'Removed {removed.rowcount} stale grades from class {class_grade.class_id}')

    all_rows = db.session.scalars(row_ids).all()
    for column in new_columns:
        present = db.session.execute(
            select(Grade.id).where(Grade.row_id.in_(row_ids), Grade.column_id == column.id).limit(1)
        ).first()
        if present is not None or not all_rows:
            continue
        db.session.execute(
            insert(Grade),
            [{'row_id': row_id, 'column_id': column.id, 'value': 0} for row_id in all_rows]
        )
        logger.info(f"Added column '{column.name}' to {len(all_rows)} rows of class {class_grade.class_id}")

    db.session.expire_all()


def replace_column_set(class_id, columns):
    """Replace the class's grade columns with ``columns`` and reconcile rows.

    Validation, the column write and reconciliation form one transaction;
    on any failure the previous column set is restored and the error is
    re-raised.
    """
    validate_column_set(columns)
    class_grade = get_class_grade(class_id, for_update=True)
    current = {column.id: column for column in class_grade.grade_columns}

    seen_ids = set()
    for index, spec in enumerate(columns):
        if spec.id is None:
            continue
        if spec.id in seen_ids:
            db.session.rollback()
            raise InvalidColumnDefinition('Grade column ids must be unique', index)
        if spec.id not in current:
            db.session.rollback()
            raise ColumnNotFound(spec.id)
        seen_ids.add(spec.id)

    try:
        kept = []
        for spec in columns:
            if spec.id is None:
                column = GradeColumn(id=generate_uuid(), name=spec.name, ordinal=spec.ordinal,
                                     scale_value=spec.scale_value)
                class_grade.grade_columns.append(column)
            else:
                column = current[spec.id]
                column.name = spec.name
                column.ordinal = spec.ordinal
                column.scale_value = spec.scale_value
            kept.append(column)

        reconcile(class_grade, kept)

        kept_ids = {column.id for column in kept}
        for column_id, column in current.items():
            if column_id not in kept_ids:
                class_grade.grade_columns.remove(column)

        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.warning(f'Column replacement for class {class_id} failed; previous columns restored')
        raise

    logger.info(f'Replaced grade columns of class {class_id}: {[spec.name for spec in columns]}')
    return get_class_grade(class_id)
