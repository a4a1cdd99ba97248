from app.models.user import User
from app.models.classroom import Classroom
from app.models.class_grade import ClassGrade, GradeColumn, GradeRow, Grade
from app.models.grade_review import GradeReview, ReviewComment
from app.models.notification import Notification, NotificationRecipient
from app.models.telegram_link import TelegramLink

__all__ = [
    'User', 'Classroom', 'ClassGrade', 'GradeColumn', 'GradeRow', 'Grade',
    'GradeReview', 'ReviewComment', 'Notification', 'NotificationRecipient', 'TelegramLink'
]
