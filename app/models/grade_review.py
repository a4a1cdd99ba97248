from app import db
from app.utils.helpers import utc_now

REVIEW_TEXT_MAX_LENGTH = 500

class GradeReview(db.Model):
    __tablename__ = 'grade_reviews'

    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False, index=True)
    # the column may be removed later; its id and name are kept as they were at request time
    column_id = db.Column(db.String(32), nullable=False)
    column_name = db.Column(db.String(100), nullable=False)
    review_reason = db.Column(db.String(REVIEW_TEXT_MAX_LENGTH), nullable=False, default='')
    expected_grade = db.Column(db.Float, nullable=False, default=0)
    current_grade = db.Column(db.Float, nullable=False, default=0)
    updated_grade = db.Column(db.Float, nullable=True)
    requested_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    request_student_id = db.Column(db.String(50), nullable=False)
    is_finished = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    classroom = db.relationship('Classroom')
    requester = db.relationship('User', foreign_keys=[requested_by])
    comments = db.relationship('ReviewComment', back_populates='review',
                               order_by='ReviewComment.id',
                               cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'class': self.class_id,
            'column': self.column_id,
            'column_name': self.column_name,
            'review_reason': self.review_reason,
            'expected_grade': self.expected_grade,
            'current_grade': self.current_grade,
            'updated_grade': self.updated_grade,
            'request_student': self.requester.to_dict() if self.requester else None,
            'request_student_id': self.request_student_id,
            'comments': [comment.to_dict() for comment in self.comments],
            'isFinished': self.is_finished,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return f'<GradeReview {self.request_student_id} {self.column_name}>'


class ReviewComment(db.Model):
    __tablename__ = 'review_comments'

    id = db.Column(db.Integer, primary_key=True)
    review_id = db.Column(db.Integer, db.ForeignKey('grade_reviews.id'), nullable=False, index=True)
    comment = db.Column(db.String(REVIEW_TEXT_MAX_LENGTH), nullable=False)
    sender_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now)

    review = db.relationship('GradeReview', back_populates='comments')
    sender = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'comment': self.comment,
            'sender': self.sender.to_dict() if self.sender else None,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<ReviewComment {self.id}>'
