"""
Per-student grade writes.

``upsert_student_grade`` is the only way grades are written: it resolves
column names against the class's current columns, merges the touched
values into the student's existing grades (last write wins per column),
gives untouched columns a zero the first time a student is seen, and
inserts or updates the student's row in one transaction.

Two concurrent writes for the same student serialize on the class grade
row lock where the database supports ``SELECT ... FOR UPDATE``, and the
(class, student) unique constraint keeps them from creating two rows
either way. Writes that touch different columns of the same student are
still last-write-wins; nothing merges them beyond what each call computes.
"""

import logging
from dataclasses import dataclass, field
from numbers import Number
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from app import db
from app.models import ClassGrade, GradeRow, Grade
from app.models.class_grade import GRADE_MIN, GRADE_MAX
from app.utils.class_grades import get_class_grade
from app.utils.errors import GradebookError, UnknownGradeColumn, InvalidGradeValue, InvalidGradeRow
from app.utils.helpers import generate_uuid

logger = logging.getLogger(__name__)

ROW_FIELDS = ('student_id', 'full_name', 'id', '_id')


@dataclass
class GradeRowUpdate:
    student_id: str
    full_name: Optional[str] = None
    row_id: Optional[str] = None
    grades: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload):
        """Split a flat ``{student_id, full_name, <column name>: value}`` body.

        Every key that is not a row field is taken as a column name; whether
        it names a real column is decided when the update is applied.
        """
        if not isinstance(payload, dict):
            raise InvalidGradeRow('Each grade row must be an object')

        student_id = payload.get('student_id')
        if student_id is None or not str(student_id).strip():
            raise InvalidGradeRow('student_id is required')

        full_name = payload.get('full_name')
        return cls(
            student_id=str(student_id).strip(),
            full_name=str(full_name) if full_name is not None else None,
            row_id=payload.get('id') or payload.get('_id'),
            grades={key: value for key, value in payload.items() if key not in ROW_FIELDS}
        )


@dataclass
class BulkUpdateResult:
    class_grade: ClassGrade
    succeeded: List[str] = field(default_factory=list)
    failed: List[Tuple[Optional[str], GradebookError]] = field(default_factory=list)

    @property
    def all_succeeded(self):
        return not self.failed

    def to_dict(self):
        return {
            'class_grade': self.class_grade.to_dict(),
            'succeeded': list(self.succeeded),
            'failed': [
                {'student_id': student_id, 'error': error.to_dict()}
                for student_id, error in self.failed
            ]
        }


def _is_grade(value):
    return (isinstance(value, Number) and not isinstance(value, bool)
            and GRADE_MIN <= value <= GRADE_MAX)


def _apply_row_update(class_id, update):
    class_grade = get_class_grade(class_id, for_update=True)
    columns = class_grade.grade_columns
    column_names = {column.name for column in columns}

    touched = {}
    for column in columns:
        value = update.grades.get(column.name)
        if value is None:
            continue
        if not _is_grade(value):
            raise InvalidGradeValue(column.name, value)
        touched[column.id] = value

    unknown = [key for key in update.grades if key not in column_names]
    if unknown:
        raise UnknownGradeColumn(unknown)

    row = GradeRow.query.filter_by(class_grade_id=class_grade.id, student_id=update.student_id).first()
    if row is None:
        row = GradeRow(id=generate_uuid(), student_id=update.student_id)
        class_grade.grade_rows.append(row)

    existing = {grade.column_id: grade for grade in row.grades}
    for column in columns:
        if column.id in touched:
            if column.id in existing:
                existing[column.id].value = touched[column.id]
            else:
                row.grades.append(Grade(column_id=column.id, value=touched[column.id]))
        elif column.id not in existing:
            row.grades.append(Grade(column_id=column.id, value=0))

    if update.full_name is not None:
        row.full_name = update.full_name
    return row


def upsert_student_grade(class_id, update):
    """Insert or update one student's grades; returns the reloaded class grade."""
    if not isinstance(update, GradeRowUpdate):
        update = GradeRowUpdate.from_payload(update)

    for attempt in range(2):
        try:
            _apply_row_update(class_id, update)
            db.session.commit()
            break
        except IntegrityError:
            db.session.rollback()
            if attempt:
                raise
            logger.info(f'Row for student {update.student_id} in class {class_id} created concurrently; retrying')
        except Exception:
            db.session.rollback()
            raise

    return get_class_grade(class_id)


def update_many_grades(class_id, updates):
    """Apply each row on its own; one row failing does not stop the others."""
    get_class_grade(class_id)
    succeeded = []
    failed = []

    for update in updates:
        student_id = update.get('student_id') if isinstance(update, dict) else getattr(update, 'student_id', None)
        try:
            upsert_student_grade(class_id, update)
            succeeded.append(str(student_id))
        except GradebookError as e:
            logger.warning(f'Grade update for student {student_id} in class {class_id} failed: {e.message}')
            failed.append((str(student_id) if student_id is not None else None, e))

    logger.info(f'Bulk grade update for class {class_id}: {len(succeeded)} succeeded, {len(failed)} failed')
    return BulkUpdateResult(class_grade=get_class_grade(class_id), succeeded=succeeded, failed=failed)


def remove_grade_row(class_id, row_id):
    class_grade = ClassGrade.query.filter_by(class_id=class_id).first()
    if class_grade is None:
        return None

    row = GradeRow.query.filter_by(id=row_id, class_grade_id=class_grade.id).first()
    if row is not None:
        db.session.delete(row)
        db.session.commit()
        logger.info(f'Removed grade row {row_id} from class {class_id}')
    return get_class_grade(class_id)


def create_student_row(class_id, student):
    """Grade row for a student who just joined the class."""
    if not student.student_id:
        logger.warning(f'User {student.id} has no student id; no grade row created for class {class_id}')
        return None
    return upsert_student_grade(class_id, GradeRowUpdate(student_id=student.student_id,
                                                         full_name=student.full_name))
