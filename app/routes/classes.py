from flask import Blueprint, jsonify, request
from flask_login import current_user
from app import db
from app.models import Classroom, User
from app.models.user import ROLE_ADMIN, ROLE_TEACHER, ROLE_STUDENT
from app.utils.class_grades import create_class_grade
from app.utils.decorators import role_required, json_body_required
from app.utils.errors import UserNotFound
from app.utils.grade_rows import create_student_row
from app.utils.membership import get_classroom, check_class_teacher, check_class_member
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('classes', __name__, url_prefix='/classes')

@bp.route('', methods=['POST'])
@role_required(ROLE_TEACHER, ROLE_ADMIN)
@json_body_required
def create_class():
    data = request.get_json()
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({
            'success': False,
            'error': {'code': 'INVALID_CLASS', 'message': 'Class name is required', 'details': {}}
        }), 400

    classroom = Classroom(name=name, description=data.get('description'), owner_id=current_user.id)
    db.session.add(classroom)
    db.session.commit()
    create_class_grade(classroom.id)

    logger.info(f"Class {classroom.id} created by user {current_user.id}")
    return jsonify({'success': True, 'class': classroom.to_dict()}), 201

@bp.route('/<int:class_id>')
@role_required(ROLE_TEACHER, ROLE_ADMIN, ROLE_STUDENT)
def get_class(class_id):
    classroom = get_classroom(class_id)
    check_class_member(class_id, current_user)
    return jsonify({'success': True, 'class': classroom.to_dict()})

@bp.route('/<int:class_id>/students', methods=['POST'])
@role_required(ROLE_TEACHER, ROLE_ADMIN)
@json_body_required
def add_student(class_id):
    classroom = get_classroom(class_id)
    check_class_teacher(class_id, current_user)

    user_id = request.get_json().get('user_id')
    student = db.session.get(User, user_id) if isinstance(user_id, int) else None
    if student is None or student.role != ROLE_STUDENT:
        raise UserNotFound(user_id)

    if student not in classroom.students:
        classroom.students.append(student)
        db.session.commit()
        logger.info(f"Student {student.id} joined class {class_id}")

    create_student_row(class_id, student)
    return jsonify({'success': True, 'class': classroom.to_dict()}), 201

@bp.route('/<int:class_id>/teachers', methods=['POST'])
@role_required(ROLE_TEACHER, ROLE_ADMIN)
@json_body_required
def add_teacher(class_id):
    classroom = get_classroom(class_id)
    check_class_teacher(class_id, current_user)

    user_id = request.get_json().get('user_id')
    teacher = db.session.get(User, user_id) if isinstance(user_id, int) else None
    if teacher is None or teacher.role != ROLE_TEACHER:
        raise UserNotFound(user_id)

    if teacher not in classroom.teachers:
        classroom.teachers.append(teacher)
        db.session.commit()

    return jsonify({'success': True, 'class': classroom.to_dict()}), 201
