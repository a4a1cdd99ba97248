import logging
from app import db
from app.models import Classroom
from app.models.classroom import class_teachers, class_students
from app.utils.errors import ClassNotFound, NotClassTeacher, NotClassStudent

logger = logging.getLogger(__name__)


def get_classroom(class_id):
    classroom = db.session.get(Classroom, class_id)
    if classroom is None:
        raise ClassNotFound(class_id)
    return classroom


def is_teacher_of(class_id, user_id):
    """Owner or co-teacher of the class."""
    owner = db.session.query(Classroom.id).filter_by(id=class_id, owner_id=user_id).first()
    if owner:
        return True
    teacher = db.session.query(class_teachers).filter_by(class_id=class_id, user_id=user_id).first()
    return teacher is not None


def is_student_of(class_id, user_id):
    student = db.session.query(class_students).filter_by(class_id=class_id, user_id=user_id).first()
    return student is not None


def check_class_teacher(class_id, user):
    if user.is_admin():
        return
    if not is_teacher_of(class_id, user.id):
        logger.info(f'User {user.id} denied teacher access to class {class_id}')
        raise NotClassTeacher(class_id)


def check_class_student(class_id, user):
    if not is_student_of(class_id, user.id):
        logger.info(f'User {user.id} denied student access to class {class_id}')
        raise NotClassStudent(class_id)


def check_class_member(class_id, user):
    if user.role == 'student':
        check_class_student(class_id, user)
    else:
        check_class_teacher(class_id, user)


def roster_user_ids(classroom):
    return tuple(student.id for student in classroom.students)


def teacher_user_ids(classroom):
    ids = [classroom.owner_id] + [teacher.id for teacher in classroom.teachers]
    return tuple(dict.fromkeys(ids))
