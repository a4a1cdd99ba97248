from flask import Blueprint, jsonify, request
from flask_login import current_user
from app.models.user import ROLE_ADMIN, ROLE_TEACHER, ROLE_STUDENT
from app.utils.decorators import role_required, json_body_required
from app.utils.grade_reviews import (create_grade_review, list_grade_reviews, get_grade_review,
                                     check_review_access, add_review_comment, finish_grade_review,
                                     remove_grade_review)
from app.utils.notifications import dispatch_effects
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('grade_reviews', __name__, url_prefix='/grade-reviews')

@bp.route('', methods=['POST'])
@role_required(ROLE_STUDENT)
@json_body_required
def create_review():
    data = request.get_json()
    review, effects = create_grade_review(
        data.get('class'),
        current_user,
        data.get('column'),
        data.get('review_reason'),
        data.get('expected_grade')
    )
    dispatch_effects(effects)
    return jsonify({'success': True, 'grade_review': review.to_dict()}), 201

@bp.route('')
@role_required(ROLE_TEACHER, ROLE_ADMIN, ROLE_STUDENT)
def list_reviews():
    class_id = request.args.get('class_id', type=int)
    reviews = list_grade_reviews(current_user, class_id=class_id)
    return jsonify({'success': True, 'grade_reviews': [review.to_dict() for review in reviews]})

@bp.route('/<int:review_id>')
@role_required(ROLE_TEACHER, ROLE_ADMIN, ROLE_STUDENT)
def get_review(review_id):
    review = get_grade_review(review_id)
    check_review_access(review, current_user)
    return jsonify({'success': True, 'grade_review': review.to_dict()})

@bp.route('/<int:review_id>/comments', methods=['POST'])
@role_required(ROLE_TEACHER, ROLE_ADMIN, ROLE_STUDENT)
@json_body_required
def add_comment(review_id):
    review, effects = add_review_comment(review_id, current_user, request.get_json().get('comment'))
    dispatch_effects(effects)
    return jsonify({'success': True, 'grade_review': review.to_dict()}), 201

@bp.route('/<int:review_id>/finish', methods=['PATCH'])
@role_required(ROLE_TEACHER, ROLE_ADMIN)
@json_body_required
def finish_review(review_id):
    review, effects = finish_grade_review(review_id, current_user, request.get_json().get('updated_grade'))
    dispatch_effects(effects)
    return jsonify({'success': True, 'grade_review': review.to_dict()})

@bp.route('/<int:review_id>', methods=['DELETE'])
@role_required(ROLE_ADMIN)
def delete_review(review_id):
    remove_grade_review(review_id)
    logger.info(f"User {current_user.id} removed grade review {review_id}")
    return jsonify({'success': True})
