# tests/test_grade_sheets.py

import csv
from io import BytesIO, StringIO

import pytest
from openpyxl import Workbook, load_workbook

from app import db
from app.models import Classroom
from app.utils.class_grades import get_class_grade, create_class_grade
from app.utils.errors import (UnsupportedFileType, ColumnCountMismatch, DuplicateStudentId, GradeRangeError,
                              CellTypeError, RequiredFieldError, EmptyImportResult, ColumnNotFound,
                              UnreadableGradeSheet, ClassNotFound)
from app.utils.grade_columns import ColumnSpec, replace_column_set
from app.utils.grade_rows import upsert_student_grade
from app.utils.grade_sheets import (export_grade_sheet, export_template, import_grade_sheet,
                                    grade_sheet_filename)


def grades_of(class_id, student_id):
    class_grade = get_class_grade(class_id)
    names = {column.id: column.name for column in class_grade.grade_columns}
    row = class_grade.row_for_student(student_id)
    return {names[grade.column_id]: grade.value for grade in row.grades}


def csv_rows(buffer):
    return list(csv.reader(StringIO(buffer.getvalue().decode('utf-8'))))


def csv_buffer(text):
    return BytesIO(text.encode('utf-8'))


def xlsx_buffer(rows):
    wb = Workbook()
    for row in rows:
        wb.active.append(row)
    output = BytesIO()
    wb.save(output)
    output.seek(0)
    return output


@pytest.fixture
def graded(ctx, class_id, columns):
    upsert_student_grade(class_id, {'student_id': 'S001', 'Midterm': 7, 'Final': 9})
    upsert_student_grade(class_id, {'student_id': 'S002', 'Midterm': 5})
    return class_id


def test_csv_export_has_header_rows_and_average_footer(graded):
    rows = csv_rows(export_grade_sheet(graded, 'csv'))

    assert rows[0] == ['student_id', 'full_name', 'Midterm', 'Final']
    body = {row[0]: row for row in rows[1:-1]}
    assert body['S001'] == ['S001', 'Alice Smith', '7', '9']
    assert body['S002'] == ['S002', 'Bob Jones', '5', '0']
    assert rows[-1] == ['Average', '', '=AVERAGE(C2:C3)', '=AVERAGE(D2:D3)']


def test_xlsx_export_keeps_formulas(graded):
    wb = load_workbook(export_grade_sheet(graded, 'xlsx'))
    ws = wb.active

    assert [cell.value for cell in ws[1]] == ['student_id', 'full_name', 'Midterm', 'Final']
    assert ws.cell(row=4, column=1).value == 'Average'
    assert ws.cell(row=4, column=3).value == '=AVERAGE(C2:C3)'
    assert ws.cell(row=4, column=4).value == '=AVERAGE(D2:D3)'


def test_export_without_rows_has_empty_average_cells(ctx, users):
    classroom = Classroom(name='Empty', owner_id=users['teacher'])
    db.session.add(classroom)
    db.session.commit()
    create_class_grade(classroom.id)
    replace_column_set(classroom.id, [ColumnSpec('Only', 0, 100)])

    rows = csv_rows(export_grade_sheet(classroom.id, 'csv'))
    assert rows == [['student_id', 'full_name', 'Only'], ['Average', '', '']]


def test_single_column_export(graded, columns):
    rows = csv_rows(export_grade_sheet(graded, 'csv', column_id=columns['Midterm']))

    assert rows[0] == ['student_id', 'grade']
    assert sorted(rows[1:]) == [['S001', '7'], ['S002', '5']]


def test_template_leaves_grades_blank(graded):
    rows = csv_rows(export_template(graded, 'csv'))

    assert rows[0] == ['student_id', 'full_name', 'Midterm', 'Final']
    assert sorted(rows[1:]) == [['S001', 'Alice Smith', '', ''], ['S002', 'Bob Jones', '', '']]


def test_export_rejects_unknown_file_type(graded):
    with pytest.raises(UnsupportedFileType):
        export_grade_sheet(graded, 'pdf')


def test_export_unknown_class(ctx):
    with pytest.raises(ClassNotFound):
        export_grade_sheet(999, 'csv')


@pytest.mark.parametrize('file_type', ['csv', 'xlsx'])
def test_export_then_import_restores_grades(graded, file_type):
    exported = export_grade_sheet(graded, file_type)
    upsert_student_grade(graded, {'student_id': 'S001', 'Midterm': 1, 'Final': 1})
    upsert_student_grade(graded, {'student_id': 'S002', 'Midterm': 1, 'Final': 1})

    result = import_grade_sheet(graded, exported)

    assert result.all_succeeded
    assert sorted(result.succeeded) == ['S001', 'S002']
    assert grades_of(graded, 'S001') == {'Midterm': 7, 'Final': 9}
    assert grades_of(graded, 'S002') == {'Midterm': 5, 'Final': 0}


def test_import_filled_template(graded):
    result = import_grade_sheet(graded, xlsx_buffer([
        ['student_id', 'full_name', 'Midterm', 'Final'],
        ['S001', 'Alice Smith', 10, 8],
        ['S003', 'Cara New', 6, 6],
    ]))

    assert result.all_succeeded
    assert grades_of(graded, 'S001') == {'Midterm': 10, 'Final': 8}
    assert grades_of(graded, 'S003') == {'Midterm': 6, 'Final': 6}
    assert get_class_grade(graded).row_for_student('S003').full_name == 'Cara New'


def test_import_rejects_duplicate_student_ids(graded):
    sheet = csv_buffer('student_id,full_name,Midterm,Final\nS001,A,1,1\nS001,A,2,2\n')

    with pytest.raises(DuplicateStudentId) as excinfo:
        import_grade_sheet(graded, sheet)

    assert excinfo.value.details['student_ids'] == ['S001']
    assert grades_of(graded, 'S001') == {'Midterm': 7, 'Final': 9}


def test_import_rejects_wrong_column_count(graded):
    sheet = csv_buffer('student_id,full_name,Midterm\nS001,A,1\n')

    with pytest.raises(ColumnCountMismatch) as excinfo:
        import_grade_sheet(graded, sheet)

    assert excinfo.value.details == {'expected': 4, 'actual': 3}


@pytest.mark.parametrize('cell, error', [
    ('11', GradeRangeError),
    ('-1', GradeRangeError),
    ('abc', CellTypeError),
    ('7.5', CellTypeError),
    ('', RequiredFieldError),
])
def test_import_cell_errors(graded, cell, error):
    sheet = csv_buffer(f'student_id,full_name,Midterm,Final\nS001,A,1,1\nS002,B,{cell},1\n')

    with pytest.raises(error) as excinfo:
        import_grade_sheet(graded, sheet)

    assert excinfo.value.row == 3
    assert excinfo.value.column == 'Midterm'
    assert grades_of(graded, 'S001') == {'Midterm': 7, 'Final': 9}


def test_import_reports_first_bad_cell(graded):
    sheet = csv_buffer('student_id,full_name,Midterm,Final\nS001,A,1,x\nS002,B,99,1\n')

    with pytest.raises(CellTypeError) as excinfo:
        import_grade_sheet(graded, sheet)

    assert (excinfo.value.row, excinfo.value.column) == (2, 'Final')


def test_student_named_average_is_not_taken_for_the_footer(graded):
    sheet = csv_buffer('student_id,full_name,Midterm,Final\nS001,Alice Smith,5,6\nAverage,,,\n')

    with pytest.raises(RequiredFieldError) as excinfo:
        import_grade_sheet(graded, sheet)

    assert (excinfo.value.row, excinfo.value.column) == (3, 'full_name')
    assert grades_of(graded, 'S001') == {'Midterm': 7, 'Final': 9}


def test_average_row_before_the_last_row_is_data(graded):
    sheet = csv_buffer('student_id,full_name,Midterm,Final\nAverage,,=AVERAGE(C3:C3),\nS001,Alice Smith,5,6\n')

    with pytest.raises(RequiredFieldError) as excinfo:
        import_grade_sheet(graded, sheet)

    assert excinfo.value.row == 2


def test_import_requires_student_id(graded):
    sheet = csv_buffer('student_id,full_name,Midterm,Final\n,A,1,1\n')

    with pytest.raises(RequiredFieldError):
        import_grade_sheet(graded, sheet)


def test_import_whole_number_floats_from_xlsx(graded):
    import_grade_sheet(graded, xlsx_buffer([
        ['student_id', 'full_name', 'Midterm', 'Final'],
        [1001, 'Numeric Id', 4.0, 3],
    ]))

    assert grades_of(graded, '1001') == {'Midterm': 4, 'Final': 3}


def test_single_column_import_touches_only_that_column(graded, columns):
    sheet = csv_buffer('student_id,grade\nS001,2\nS004,8\n')

    result = import_grade_sheet(graded, sheet, column_id=columns['Final'])

    assert result.all_succeeded
    assert grades_of(graded, 'S001') == {'Midterm': 7, 'Final': 2}
    assert grades_of(graded, 'S004') == {'Midterm': 0, 'Final': 8}


def test_single_column_import_with_no_rows(graded, columns):
    with pytest.raises(EmptyImportResult):
        import_grade_sheet(graded, csv_buffer('student_id,grade\n'), column_id=columns['Final'])


def test_single_column_import_unknown_column(graded):
    with pytest.raises(ColumnNotFound):
        import_grade_sheet(graded, csv_buffer('student_id,grade\nS001,2\n'), column_id='nope')


def test_import_rejects_corrupt_workbook(graded):
    with pytest.raises(UnreadableGradeSheet):
        import_grade_sheet(graded, BytesIO(b'PK\x03\x04not really a workbook'))


def test_grade_sheet_filename():
    name = grade_sheet_filename('xlsx', 'grades', 'Physics 101')

    assert name.endswith('_Physics_101_grades.xlsx')
    assert len(name.split('_')[0]) == 4
