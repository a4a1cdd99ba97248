"""
Grade sheet export and import.

Exports write the grade table as csv or xlsx with a ``student_id,
full_name, <columns>`` header (``student_id, grade`` for a single column)
and, for the full table, an ``Average`` footer of ``AVERAGE`` formulas.
Imports read the same layout back, validate every cell, and hand the rows
to ``update_many_grades``. An import is all-or-nothing as far as validation
goes: a bad header, a duplicated student id or a single bad cell rejects
the whole file before any grade is written.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date
from numbers import Number

from app.models.class_grade import GRADE_MIN, GRADE_MAX
from app.utils.class_grades import get_class_grade
from app.utils.errors import (UnsupportedFileType, ColumnNotFound, ColumnCountMismatch,
                              DuplicateStudentId, GradeRangeError, CellTypeError,
                              RequiredFieldError, EmptyImportResult)
from app.utils.excel_export import create_styled_workbook, create_csv, average_formulas
from app.utils.excel_import import read_sheet_rows
from app.utils.grade_rows import GradeRowUpdate, update_many_grades
from app.utils.membership import get_classroom

logger = logging.getLogger(__name__)

FILE_TYPES = ('csv', 'xlsx')
MIME_TYPES = {
    'csv': 'text/csv',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
}

STUDENT_ID = 'student_id'
FULL_NAME = 'full_name'
GRADE = 'grade'
AVERAGE_LABEL = 'Average'

TEXT = 'text'
INTEGER_GRADE = 'grade'


@dataclass(frozen=True)
class SheetField:
    label: str
    kind: str


def check_file_type(file_type):
    normalized = (file_type or '').strip().lower()
    if normalized not in FILE_TYPES:
        raise UnsupportedFileType(file_type, FILE_TYPES)
    return normalized


def grade_sheet_filename(file_type, kind, class_name=None):
    parts = [date.today().strftime('%Y_%m_%d')]
    if class_name:
        parts.append('_'.join(class_name.split()))
    parts.append(kind)
    return f"{'_'.join(parts)}.{file_type}"


def _find_column(class_grade, column_id):
    column = class_grade.column_by_id(column_id)
    if column is None:
        raise ColumnNotFound(column_id)
    return column


def _export_value(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _write(file_type, title, headers, data, footer=None):
    if file_type == 'xlsx':
        widths = [15, 25] + [15] * (len(headers) - 2)
        return create_styled_workbook(title, headers, data, column_widths=widths, footer=footer)
    return create_csv(headers, data, footer=footer)


# ============================================
# Export
# ============================================

def export_grade_sheet(class_id, file_type, column_id=None):
    """Grade table of a class as a csv/xlsx buffer.

    With ``column_id`` only that column is exported as ``student_id, grade``.
    Missing grades export as 0.
    """
    file_type = check_file_type(file_type)
    get_classroom(class_id)
    class_grade = get_class_grade(class_id)

    if column_id is not None:
        column = _find_column(class_grade, column_id)
        data = [
            [row.student_id, _export_value(row.values_by_column().get(column.id, 0))]
            for row in class_grade.grade_rows
        ]
        return _write(file_type, column.name, [STUDENT_ID, GRADE], data)

    columns = class_grade.grade_columns
    headers = [STUDENT_ID, FULL_NAME] + [column.name for column in columns]
    data = []
    for row in class_grade.grade_rows:
        values = row.values_by_column()
        data.append([row.student_id, row.full_name or '']
                    + [_export_value(values.get(column.id, 0)) for column in columns])

    footer = [AVERAGE_LABEL, ''] + average_formulas(3, len(columns), len(data))
    logger.info(f'Exported {len(data)} grade rows of class {class_id} as {file_type}')
    return _write(file_type, 'Grade Board', headers, data, footer=footer)


def export_template(class_id, file_type, column_id=None):
    """Import template: the student list with every grade cell left blank."""
    file_type = check_file_type(file_type)
    get_classroom(class_id)
    class_grade = get_class_grade(class_id)

    if column_id is not None:
        column = _find_column(class_grade, column_id)
        data = [[row.student_id, None] for row in class_grade.grade_rows]
        return _write(file_type, column.name, [STUDENT_ID, GRADE], data)

    columns = class_grade.grade_columns
    headers = [STUDENT_ID, FULL_NAME] + [column.name for column in columns]
    data = [[row.student_id, row.full_name or ''] + [None] * len(columns)
            for row in class_grade.grade_rows]
    return _write(file_type, 'Student List', headers, data)


# ============================================
# Import
# ============================================

def _parse_text(value, row_number, label):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise RequiredFieldError(row_number, label)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _parse_grade(value, row_number, label):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise RequiredFieldError(row_number, label)

    if isinstance(value, bool):
        raise CellTypeError(row_number, label)
    if isinstance(value, str):
        text = value.strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                raise CellTypeError(row_number, label)
    elif isinstance(value, Number):
        number = value
    else:
        raise CellTypeError(row_number, label)

    if isinstance(number, float):
        if not number.is_integer():
            raise CellTypeError(row_number, label)
        number = int(number)

    if not GRADE_MIN <= number <= GRADE_MAX:
        raise GradeRangeError(row_number, label)
    return number


def _is_average_footer(cells, grade_positions, has_rows):
    """Exported ``Average`` row: blank or formula grade cells, ``AVERAGE`` ones when there are rows."""
    if not cells or cells[0] != AVERAGE_LABEL:
        return False
    values = [cells[position] if position is not None and position < len(cells) else None
              for position in grade_positions]
    for value in values:
        if value is not None and not (isinstance(value, str) and value.startswith('=')):
            return False
    if not has_rows:
        return True
    return any(isinstance(value, str) and value.upper().startswith('=AVERAGE(') for value in values)


def _parse_rows(header, body, fields):
    """Parse body rows against ``fields``; returns (records, errors) in row order."""
    positions = {}
    for position, label in enumerate(header):
        if label is not None:
            positions.setdefault(str(label).strip(), position)

    grade_positions = [positions.get(field.label) for field in fields if field.kind == INTEGER_GRADE]
    records = []
    errors = []

    if body and _is_average_footer(body[-1][1], grade_positions, has_rows=len(body) > 1):
        body = body[:-1]

    for row_number, cells in body:
        record = {}
        for field in fields:
            position = positions.get(field.label)
            value = cells[position] if position is not None and position < len(cells) else None
            parse = _parse_text if field.kind == TEXT else _parse_grade
            try:
                record[field.label] = parse(value, row_number, field.label)
            except (RequiredFieldError, CellTypeError, GradeRangeError) as e:
                errors.append(e)
        records.append(record)

    return records, errors


def _check_duplicates(records):
    counts = Counter(record[STUDENT_ID] for record in records if STUDENT_ID in record)
    duplicates = [student_id for student_id, count in counts.items() if count > 1]
    if duplicates:
        raise DuplicateStudentId(duplicates)


def import_grade_sheet(class_id, buffer, column_id=None):
    """Apply an uploaded grade sheet; returns the ``BulkUpdateResult``.

    Without ``column_id`` the sheet must have exactly the class's current
    columns after ``student_id`` and ``full_name``. With ``column_id`` the
    sheet is ``student_id, grade`` for that one column.
    """
    get_classroom(class_id)
    class_grade = get_class_grade(class_id)

    column = _find_column(class_grade, column_id) if column_id is not None else None
    column_names = [c.name for c in class_grade.grade_columns]

    rows = read_sheet_rows(buffer)
    header = list(rows[0][1]) if rows else []
    while header and header[-1] is None:
        header.pop()
    body = rows[1:]

    if column is None:
        expected = 2 + len(column_names)
        if len(header) != expected:
            raise ColumnCountMismatch(expected, len(header))
        fields = ([SheetField(STUDENT_ID, TEXT), SheetField(FULL_NAME, TEXT)]
                  + [SheetField(name, INTEGER_GRADE) for name in column_names])
    else:
        fields = [SheetField(STUDENT_ID, TEXT), SheetField(GRADE, INTEGER_GRADE)]

    records, errors = _parse_rows(header, body, fields)
    _check_duplicates(records)
    if errors:
        raise errors[0]

    if column is None:
        updates = [
            GradeRowUpdate(student_id=record[STUDENT_ID], full_name=record[FULL_NAME],
                           grades={name: record[name] for name in column_names})
            for record in records
        ]
    else:
        updates = [
            GradeRowUpdate(student_id=record[STUDENT_ID], grades={column.name: record[GRADE]})
            for record in records
        ]
        if not updates:
            raise EmptyImportResult()

    logger.info(f'Importing {len(updates)} grade rows into class {class_id}')
    return update_many_grades(class_id, updates)
