import logging
from app import db
from app.models import ClassGrade
from app.utils.errors import ClassGradeNotFound, ClassGradeNotFinished, ClassGradeAlreadyFinished
from app.utils.events import GradeFinished, GradeUnfinished
from app.utils.membership import get_classroom, check_class_member, roster_user_ids

logger = logging.getLogger(__name__)


def get_class_grade(class_id, for_update=False):
    query = ClassGrade.query.filter_by(class_id=class_id)
    if for_update:
        query = query.with_for_update()
    class_grade = query.first()
    if class_grade is None:
        raise ClassGradeNotFound(class_id)
    return class_grade


def create_class_grade(class_id):
    """Empty grade book for a newly created class; returns the existing one if present."""
    class_grade = ClassGrade.query.filter_by(class_id=class_id).first()
    if class_grade is not None:
        return class_grade

    class_grade = ClassGrade(class_id=class_id, is_finished=False)
    db.session.add(class_grade)
    db.session.commit()
    logger.info(f'Created class grade for class {class_id}')
    return class_grade


def class_grade_view(class_id, user):
    """Class grade as seen by ``user``.

    Teachers and admins always see every row. Students only see the grade
    book once it is finished, and only their own row.
    """
    get_classroom(class_id)
    check_class_member(class_id, user)
    class_grade = get_class_grade(class_id)

    if user.role == 'student':
        if not class_grade.is_finished:
            raise ClassGradeNotFinished(class_id)
        return class_grade.to_dict(student_id=user.student_id)

    return class_grade.to_dict()


def class_grade_columns(class_id, user):
    get_classroom(class_id)
    check_class_member(class_id, user)
    class_grade = get_class_grade(class_id)
    if user.role == 'student' and not class_grade.is_finished:
        raise ClassGradeNotFinished(class_id)
    return [column.to_dict() for column in class_grade.grade_columns]


def mark_finished(class_id, teacher):
    classroom = get_classroom(class_id)
    class_grade = get_class_grade(class_id, for_update=True)

    if class_grade.is_finished:
        db.session.rollback()
        raise ClassGradeAlreadyFinished(class_id)

    class_grade.is_finished = True
    db.session.commit()
    logger.info(f'Class grade for class {class_id} marked finished by user {teacher.id}')

    effect = GradeFinished(
        class_id=class_id,
        title=classroom.name,
        message=f'Teacher {teacher.display_name} has finished the grade of class. Please check it out!',
        receivers=roster_user_ids(classroom),
        sender=classroom.owner_id,
        ref_url=f'/class/{class_id}/grade'
    )
    return class_grade, [effect]


def mark_unfinished(class_id):
    classroom = get_classroom(class_id)
    class_grade = get_class_grade(class_id, for_update=True)

    class_grade.is_finished = False
    db.session.commit()
    logger.info(f'Class grade for class {class_id} marked unfinished')

    return class_grade, [GradeUnfinished(class_id=class_id, receivers=roster_user_ids(classroom))]
