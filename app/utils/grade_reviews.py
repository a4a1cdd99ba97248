"""
Grade reviews: a student disputes one grade, teacher and student discuss it
in comments, and the teacher closes it with the grade that stands.

A student may have only one open review per column. Finishing a review
writes ``updated_grade`` through ``upsert_student_grade`` under the column's
current name, so the regular grade validation applies. Each step returns
``GradeReviewActivity`` effects for ``dispatch_effects``.
"""

import logging
from numbers import Real

from sqlalchemy import or_, select

from app import db
from app.models import Classroom, GradeReview, ReviewComment, User
from app.models.class_grade import GRADE_MIN, GRADE_MAX
from app.models.grade_review import REVIEW_TEXT_MAX_LENGTH
from app.models.user import ROLE_STUDENT
from app.utils.class_grades import get_class_grade
from app.utils.errors import (InvalidGradeReview, GradeReviewPending, GradeReviewAlreadyFinished,
                              GradeReviewNotFound, NotReviewParticipant, ColumnNotFound)
from app.utils.events import GradeReviewActivity
from app.utils.grade_rows import GradeRowUpdate, upsert_student_grade
from app.utils.membership import (get_classroom, check_class_student, check_class_teacher,
                                  check_class_member, is_teacher_of, teacher_user_ids)

logger = logging.getLogger(__name__)

REVIEW_REQUESTED = 'grade_review_requested'
REVIEW_REPLIED = 'grade_review_replied'
REVIEW_FINISHED = 'grade_reviewed'


def _review_url(review):
    return f'/class/{review.class_id}/grade-review/{review.id}'


def _check_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise InvalidGradeReview(f'{field} is required', field)
    value = value.strip()
    if len(value) > REVIEW_TEXT_MAX_LENGTH:
        raise InvalidGradeReview(f'{field} must be at most {REVIEW_TEXT_MAX_LENGTH} characters', field)
    return value


def _check_grade(value, field):
    if not isinstance(value, Real) or isinstance(value, bool) or not GRADE_MIN <= value <= GRADE_MAX:
        raise InvalidGradeReview(f'{field} must be a number between {GRADE_MIN} and {GRADE_MAX}', field)
    return value


def get_grade_review(review_id):
    review = db.session.get(GradeReview, review_id)
    if review is None:
        raise GradeReviewNotFound(review_id)
    return review


def check_review_access(review, user):
    """The requesting student, the class's teachers and admins."""
    if user.is_admin():
        return
    if user.role == ROLE_STUDENT:
        if review.requested_by != user.id:
            raise NotReviewParticipant(review.id)
        return
    if not is_teacher_of(review.class_id, user.id):
        raise NotReviewParticipant(review.id)


def create_grade_review(class_id, student, column_id, review_reason, expected_grade):
    if not isinstance(class_id, int) or isinstance(class_id, bool):
        raise InvalidGradeReview('class must be a class id', 'class')
    classroom = get_classroom(class_id)
    check_class_student(class_id, student)
    if not student.student_id:
        raise InvalidGradeReview('Your account has no student id', 'request_student_id')

    review_reason = _check_text(review_reason, 'review_reason')
    expected_grade = _check_grade(expected_grade, 'expected_grade')

    class_grade = get_class_grade(class_id)
    column = class_grade.column_by_id(column_id)
    if column is None:
        raise ColumnNotFound(column_id)

    pending = GradeReview.query.filter_by(class_id=class_id, requested_by=student.id,
                                          column_id=column.id, is_finished=False).first()
    if pending:
        raise GradeReviewPending(pending.id)

    row = class_grade.row_for_student(student.student_id)
    current_grade = row.values_by_column().get(column.id, 0) if row else 0

    review = GradeReview(
        class_id=class_id,
        column_id=column.id,
        column_name=column.name,
        review_reason=review_reason,
        expected_grade=expected_grade,
        current_grade=current_grade,
        requested_by=student.id,
        request_student_id=student.student_id
    )
    db.session.add(review)
    db.session.commit()
    logger.info(f"Student {student.id} requested a review of '{column.name}' in class {class_id}")

    effect = GradeReviewActivity(
        class_id=class_id,
        kind=REVIEW_REQUESTED,
        title=classroom.name,
        message=f"{student.display_name} requested a review of their '{column.name}' grade.",
        receivers=teacher_user_ids(classroom),
        sender=student.id,
        ref_url=_review_url(review)
    )
    return review, [effect]


def list_grade_reviews(user, class_id=None):
    """Reviews visible to ``user``, open ones first and newest first."""
    query = GradeReview.query
    if class_id is not None:
        get_classroom(class_id)
        check_class_member(class_id, user)
        query = query.filter(GradeReview.class_id == class_id)

    if user.role == ROLE_STUDENT:
        query = query.filter(GradeReview.requested_by == user.id)
    elif not user.is_admin():
        taught = select(Classroom.id).where(or_(
            Classroom.owner_id == user.id,
            Classroom.teachers.any(User.id == user.id)
        ))
        query = query.filter(GradeReview.class_id.in_(taught))

    return query.order_by(GradeReview.is_finished.asc(), GradeReview.created_at.desc(),
                          GradeReview.id.desc()).all()


def add_review_comment(review_id, sender, comment):
    review = get_grade_review(review_id)
    check_review_access(review, sender)
    comment = _check_text(comment, 'comment')

    review.comments.append(ReviewComment(comment=comment, sender_id=sender.id))
    db.session.commit()
    logger.info(f'User {sender.id} commented on grade review {review.id}')

    if sender.id == review.requested_by:
        receivers = teacher_user_ids(review.classroom)
    else:
        receivers = (review.requested_by,)
    effect = GradeReviewActivity(
        class_id=review.class_id,
        kind=REVIEW_REPLIED,
        title=review.classroom.name,
        message=f"{sender.display_name} replied to the review of '{review.column_name}'.",
        receivers=receivers,
        sender=sender.id,
        ref_url=_review_url(review)
    )
    return review, [effect]


def finish_grade_review(review_id, teacher, updated_grade):
    """Close the review and write ``updated_grade`` into the student's row."""
    review = get_grade_review(review_id)
    check_class_teacher(review.class_id, teacher)
    if review.is_finished:
        raise GradeReviewAlreadyFinished(review.id)
    updated_grade = _check_grade(updated_grade, 'updated_grade')

    column = get_class_grade(review.class_id).column_by_id(review.column_id)
    if column is None:
        raise ColumnNotFound(review.column_id)

    upsert_student_grade(review.class_id, GradeRowUpdate(student_id=review.request_student_id,
                                                         grades={column.name: updated_grade}))

    review = get_grade_review(review_id)
    review.updated_grade = updated_grade
    review.is_finished = True
    db.session.commit()
    logger.info(f'Grade review {review.id} finished by user {teacher.id} with grade {updated_grade}')

    effect = GradeReviewActivity(
        class_id=review.class_id,
        kind=REVIEW_FINISHED,
        title=review.classroom.name,
        message=f"Your review of '{column.name}' is finished. Your grade is now {updated_grade:g}.",
        receivers=(review.requested_by,),
        sender=teacher.id,
        ref_url=_review_url(review)
    )
    return review, [effect]


def remove_grade_review(review_id):
    review = get_grade_review(review_id)
    db.session.delete(review)
    db.session.commit()
    logger.info(f'Grade review {review_id} removed')
