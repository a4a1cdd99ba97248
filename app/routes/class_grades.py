from flask import Blueprint, jsonify, request, send_file, current_app
from flask_login import current_user
from werkzeug.utils import secure_filename
from app.models.user import ROLE_ADMIN, ROLE_TEACHER, ROLE_STUDENT
from app.utils.class_grades import class_grade_view, class_grade_columns, mark_finished, mark_unfinished
from app.utils.decorators import role_required, json_body_required
from app.utils.errors import UnsupportedFileType, InvalidGradeRow
from app.utils.grade_columns import parse_column_payload, replace_column_set
from app.utils.grade_rows import update_many_grades, remove_grade_row
from app.utils.grade_sheets import (check_file_type, export_grade_sheet, export_template,
                                    import_grade_sheet, grade_sheet_filename, MIME_TYPES)
from app.utils.membership import get_classroom, check_class_teacher
from app.utils.notifications import dispatch_effects
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('class_grades', __name__, url_prefix='/class-grades')


def _bulk_response(result):
    status = 200 if result.all_succeeded else 207
    return jsonify({'success': result.all_succeeded, **result.to_dict()}), status


def _send_sheet(buffer, file_type, filename):
    return send_file(buffer, mimetype=MIME_TYPES[file_type], as_attachment=True, download_name=filename)


def _uploaded_sheet():
    file = request.files.get('file')
    if not file or not file.filename:
        raise UnsupportedFileType(None, current_app.config['GRADE_SHEET_EXTENSIONS'])

    filename = secure_filename(file.filename)
    extension = filename.rsplit('.', 1)[1].lower() if '.' in filename else ''
    if extension not in current_app.config['GRADE_SHEET_EXTENSIONS']:
        raise UnsupportedFileType(extension, current_app.config['GRADE_SHEET_EXTENSIONS'])
    return file.stream

# ============================================
# Grade board
# ============================================

@bp.route('/<int:class_id>')
@role_required(ROLE_TEACHER, ROLE_ADMIN, ROLE_STUDENT)
def get_class_grade(class_id):
    return jsonify({'success': True, 'class_grade': class_grade_view(class_id, current_user)})

@bp.route('/<int:class_id>/columns')
@role_required(ROLE_TEACHER, ROLE_ADMIN, ROLE_STUDENT)
def get_columns(class_id):
    return jsonify({'success': True, 'grade_columns': class_grade_columns(class_id, current_user)})

@bp.route('/<int:class_id>/columns', methods=['POST'])
@role_required(ROLE_TEACHER, ROLE_ADMIN)
@json_body_required
def replace_columns(class_id):
    get_classroom(class_id)
    check_class_teacher(class_id, current_user)

    columns = parse_column_payload(request.get_json().get('grade_columns'))
    class_grade = replace_column_set(class_id, columns)
    return jsonify({'success': True, 'class_grade': class_grade.to_dict()})

@bp.route('/<int:class_id>/rows', methods=['PATCH'])
@role_required(ROLE_TEACHER, ROLE_ADMIN)
@json_body_required
def update_rows(class_id):
    get_classroom(class_id)
    check_class_teacher(class_id, current_user)

    rows = request.get_json().get('grade_rows')
    if not isinstance(rows, list):
        raise InvalidGradeRow('grade_rows must be a list')

    return _bulk_response(update_many_grades(class_id, rows))

@bp.route('/<int:class_id>/rows/<row_id>', methods=['DELETE'])
@role_required(ROLE_TEACHER, ROLE_ADMIN)
def delete_row(class_id, row_id):
    get_classroom(class_id)
    check_class_teacher(class_id, current_user)

    class_grade = remove_grade_row(class_id, row_id)
    return jsonify({'success': True, 'class_grade': class_grade.to_dict() if class_grade else None})

@bp.route('/<int:class_id>/finish', methods=['PATCH'])
@role_required(ROLE_TEACHER, ROLE_ADMIN)
def finish(class_id):
    get_classroom(class_id)
    check_class_teacher(class_id, current_user)

    class_grade, effects = mark_finished(class_id, current_user)
    dispatch_effects(effects)
    return jsonify({'success': True, 'class_grade': class_grade.to_dict()})

@bp.route('/<int:class_id>/unfinish', methods=['PATCH'])
@role_required(ROLE_TEACHER, ROLE_ADMIN)
def unfinish(class_id):
    get_classroom(class_id)
    check_class_teacher(class_id, current_user)

    class_grade, effects = mark_unfinished(class_id)
    dispatch_effects(effects)
    return jsonify({'success': True, 'class_grade': class_grade.to_dict()})

# ============================================
# Grade sheets
# ============================================

@bp.route('/<int:class_id>/export')
@bp.route('/<int:class_id>/export/<column_id>')
@role_required(ROLE_TEACHER, ROLE_ADMIN)
def export_sheet(class_id, column_id=None):
    file_type = check_file_type(request.args.get('file_type', 'xlsx'))
    classroom = get_classroom(class_id)
    check_class_teacher(class_id, current_user)

    buffer = export_grade_sheet(class_id, file_type, column_id=column_id)
    return _send_sheet(buffer, file_type, grade_sheet_filename(file_type, 'grades', classroom.name))

@bp.route('/<int:class_id>/template')
@bp.route('/<int:class_id>/template/<column_id>')
@role_required(ROLE_TEACHER, ROLE_ADMIN)
def download_template(class_id, column_id=None):
    file_type = check_file_type(request.args.get('file_type', 'xlsx'))
    classroom = get_classroom(class_id)
    check_class_teacher(class_id, current_user)

    buffer = export_template(class_id, file_type, column_id=column_id)
    return _send_sheet(buffer, file_type, grade_sheet_filename(file_type, 'template', classroom.name))

@bp.route('/<int:class_id>/import', methods=['POST'])
@bp.route('/<int:class_id>/import/<column_id>', methods=['POST'])
@role_required(ROLE_TEACHER, ROLE_ADMIN)
def import_sheet(class_id, column_id=None):
    get_classroom(class_id)
    check_class_teacher(class_id, current_user)

    result = import_grade_sheet(class_id, _uploaded_sheet(), column_id=column_id)
    logger.info(f"User {current_user.id} imported grades into class {class_id}")
    return _bulk_response(result)
