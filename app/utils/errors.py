"""
Errors raised by the grade-book engine and its collaborators.

Every error carries a machine-readable ``code``, a human-readable
``message``, optional ``details`` that point at the offending input, and the
HTTP status the JSON error handler responds with.
"""

from typing import Any, Dict, Iterable, Optional


class GradebookError(Exception):
    status_code = 400

    def __init__(self, message: str, code: str = 'GRADEBOOK_ERROR',
                 details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'message': self.message,
            'details': self.details
        }


# ============================================
# Column set validation
# ============================================

class InvalidColumnDefinition(GradebookError):
    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message, code='INVALID_COLUMN_DEFINITION', details={'index': index})


class InvalidWeightDistribution(GradebookError):
    def __init__(self, total):
        super().__init__(
            'Grade column scale values must sum to 100%',
            code='INVALID_WEIGHT_DISTRIBUTION',
            details={'total': total}
        )


class InvalidOrdinalSequence(GradebookError):
    def __init__(self, ordinals):
        super().__init__(
            'Grade column ordinal values must be unique and in order',
            code='INVALID_ORDINAL_SEQUENCE',
            details={'ordinals': list(ordinals)}
        )


class DuplicateColumnName(GradebookError):
    def __init__(self, names):
        super().__init__(
            'Grade column names must be unique',
            code='DUPLICATE_COLUMN_NAME',
            details={'names': list(names)}
        )


# ============================================
# Grade rows
# ============================================

class UnknownGradeColumn(GradebookError):
    def __init__(self, keys: Iterable[str]):
        keys = list(keys)
        super().__init__(
            f'Invalid grade column name [{", ".join(keys)}] in request body',
            code='UNKNOWN_GRADE_COLUMN',
            details={'keys': keys}
        )


class InvalidGradeValue(GradebookError):
    def __init__(self, column_name, value):
        super().__init__(
            f"Grade for column '{column_name}' must be a number between 0 and 10",
            code='INVALID_GRADE_VALUE',
            details={'column': column_name, 'value': value}
        )


class InvalidGradeRow(GradebookError):
    def __init__(self, message: str):
        super().__init__(message, code='INVALID_GRADE_ROW')


# ============================================
# Grade sheet import / export
# ============================================

class UnsupportedFileType(GradebookError):
    def __init__(self, file_type, supported):
        supported = sorted(supported)
        super().__init__(
            f'Invalid file type. Support [{", ".join(supported)}]',
            code='UNSUPPORTED_FILE_TYPE',
            details={'file_type': file_type, 'supported': supported}
        )


class UnreadableGradeSheet(GradebookError):
    def __init__(self, reason: str):
        super().__init__(f'Unable to read grade sheet: {reason}', code='UNREADABLE_GRADE_SHEET')


class ColumnCountMismatch(GradebookError):
    def __init__(self, expected: int, actual: int):
        super().__init__(
            'Your file is not valid. The columns in your file does not match '
            'the columns in the template file.',
            code='COLUMN_COUNT_MISMATCH',
            details={'expected': expected, 'actual': actual}
        )


class DuplicateStudentId(GradebookError):
    def __init__(self, student_ids):
        student_ids = list(student_ids)
        super().__init__(
            f'Duplicate Student ID: {", ".join(student_ids)}. Please check again!',
            code='DUPLICATE_STUDENT_ID',
            details={'student_ids': student_ids}
        )


class CellValidationError(GradebookError):
    category = 'invalid'

    def __init__(self, message: str, row: int, column: str, code: str):
        super().__init__(
            message,
            code=code,
            details={'category': self.category, 'row': row, 'column': column}
        )
        self.row = row
        self.column = column


class GradeRangeError(CellValidationError):
    category = 'range'

    def __init__(self, row: int, column: str):
        super().__init__(
            f"Grade must be between 0 and 10 at row {row} in column '{column}'",
            row, column, code='GRADE_OUT_OF_RANGE'
        )


class CellTypeError(CellValidationError):
    category = 'type'

    def __init__(self, row: int, column: str, expected: str = 'an integer'):
        super().__init__(
            f"Value must be {expected} at row {row} in column '{column}'",
            row, column, code='INVALID_CELL_TYPE'
        )


class RequiredFieldError(CellValidationError):
    category = 'required'

    def __init__(self, row: int, column: str):
        super().__init__(
            f"Field is missing at row {row} in column '{column}'",
            row, column, code='REQUIRED_FIELD_MISSING'
        )


class EmptyImportResult(GradebookError):
    def __init__(self):
        super().__init__('No data found', code='EMPTY_IMPORT_RESULT')


# ============================================
# Lifecycle
# ============================================

class ClassGradeAlreadyFinished(GradebookError):
    def __init__(self, class_id):
        super().__init__(
            'Class grade is already finished',
            code='CLASS_GRADE_ALREADY_FINISHED',
            details={'class_id': class_id}
        )


class ClassGradeNotFinished(GradebookError):
    status_code = 403

    def __init__(self, class_id):
        super().__init__(
            'You are not allowed to view this class grade',
            code='CLASS_GRADE_NOT_FINISHED',
            details={'class_id': class_id}
        )


# ============================================
# Not found (404)
# ============================================

class ResourceNotFound(GradebookError):
    status_code = 404

    def __init__(self, resource_type: str, resource_id, code: str):
        super().__init__(
            f'{resource_type} not found',
            code=code,
            details={'resource_type': resource_type, 'resource_id': resource_id}
        )


class ClassNotFound(ResourceNotFound):
    def __init__(self, class_id):
        super().__init__('Class', class_id, code='CLASS_NOT_FOUND')


class ClassGradeNotFound(ResourceNotFound):
    def __init__(self, class_id):
        super().__init__('Class grade', class_id, code='CLASS_GRADE_NOT_FOUND')


class ColumnNotFound(ResourceNotFound):
    def __init__(self, column_id):
        super().__init__('Column', column_id, code='COLUMN_NOT_FOUND')


class UserNotFound(ResourceNotFound):
    def __init__(self, user_id):
        super().__init__('User', user_id, code='USER_NOT_FOUND')


# ============================================
# Authorization (403)
# ============================================

class NotClassTeacher(GradebookError):
    status_code = 403

    def __init__(self, class_id):
        super().__init__(
            'You are not the teacher of this class',
            code='NOT_CLASS_TEACHER',
            details={'class_id': class_id}
        )


class NotClassStudent(GradebookError):
    status_code = 403

    def __init__(self, class_id):
        super().__init__(
            'You are not the student of this class',
            code='NOT_CLASS_STUDENT',
            details={'class_id': class_id}
        )


# ============================================
# Telegram links
# ============================================

class InvalidTelegramLink(GradebookError):
    def __init__(self, message: str):
        super().__init__(message, code='INVALID_TELEGRAM_LINK')


class TelegramAccountInUse(GradebookError):
    status_code = 409

    def __init__(self, telegram_id):
        super().__init__(
            'This Telegram account is already linked to another user',
            code='TELEGRAM_ACCOUNT_IN_USE',
            details={'telegram_id': telegram_id}
        )


# ============================================
# Grade reviews
# ============================================

class InvalidGradeReview(GradebookError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, code='INVALID_GRADE_REVIEW', details={'field': field})


class GradeReviewPending(GradebookError):
    def __init__(self, review_id):
        super().__init__(
            'Please wait for the teacher to finish the review before creating the same one.',
            code='GRADE_REVIEW_PENDING',
            details={'review_id': review_id}
        )


class GradeReviewAlreadyFinished(GradebookError):
    def __init__(self, review_id):
        super().__init__(
            'Grade review is already finished',
            code='GRADE_REVIEW_ALREADY_FINISHED',
            details={'review_id': review_id}
        )


class GradeReviewNotFound(ResourceNotFound):
    def __init__(self, review_id):
        super().__init__('Grade review', review_id, code='GRADE_REVIEW_NOT_FOUND')


class NotReviewParticipant(GradebookError):
    status_code = 403

    def __init__(self, review_id):
        super().__init__(
            'You are not allowed to access this grade review',
            code='NOT_REVIEW_PARTICIPANT',
            details={'review_id': review_id}
        )
