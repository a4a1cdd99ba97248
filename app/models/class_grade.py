from app import db
from app.utils.helpers import utc_now, generate_uuid

GRADE_MIN = 0
GRADE_MAX = 10
COLUMN_NAME_MAX_LENGTH = 100

class ClassGrade(db.Model):
    __tablename__ = 'class_grades'

    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False, unique=True, index=True)
    is_finished = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    classroom = db.relationship('Classroom', back_populates='class_grade')
    grade_columns = db.relationship('GradeColumn', back_populates='class_grade',
                                    order_by='GradeColumn.ordinal',
                                    cascade='all, delete-orphan')
    grade_rows = db.relationship('GradeRow', back_populates='class_grade',
                                 order_by='GradeRow.created_at',
                                 cascade='all, delete-orphan')

    def column_by_id(self, column_id):
        for column in self.grade_columns:
            if column.id == column_id:
                return column
        return None

    def row_for_student(self, student_id):
        for row in self.grade_rows:
            if row.student_id == student_id:
                return row
        return None

    def to_dict(self, student_id=None):
        """Serialize the aggregate; ``student_id`` restricts rows to that student."""
        rows = self.grade_rows
        if student_id is not None:
            rows = [row for row in rows if row.student_id == student_id]
        return {
            'id': self.id,
            'class': self.class_id,
            'grade_columns': [column.to_dict() for column in self.grade_columns],
            'grade_rows': [row.to_dict() for row in rows],
            'isFinished': self.is_finished,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return f'<ClassGrade class={self.class_id}>'


class GradeColumn(db.Model):
    __tablename__ = 'grade_columns'

    id = db.Column(db.String(32), primary_key=True, default=generate_uuid)
    class_grade_id = db.Column(db.Integer, db.ForeignKey('class_grades.id'), nullable=False, index=True)
    name = db.Column(db.String(COLUMN_NAME_MAX_LENGTH), nullable=False)
    ordinal = db.Column(db.Integer, nullable=False, default=0)
    scale_value = db.Column(db.Float, nullable=False, default=0)

    class_grade = db.relationship('ClassGrade', back_populates='grade_columns')

    __table_args__ = (
        db.CheckConstraint('ordinal >= 0', name='ck_grade_column_ordinal'),
        db.CheckConstraint('scale_value >= 0 AND scale_value <= 100', name='ck_grade_column_scale'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'ordinal': self.ordinal,
            'scaleValue': self.scale_value
        }

    def __repr__(self):
        return f'<GradeColumn {self.name}>'


class GradeRow(db.Model):
    __tablename__ = 'grade_rows'

    id = db.Column(db.String(32), primary_key=True, default=generate_uuid)
    class_grade_id = db.Column(db.Integer, db.ForeignKey('class_grades.id'), nullable=False, index=True)
    student_id = db.Column(db.String(50), nullable=False)
    full_name = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=utc_now)

    class_grade = db.relationship('ClassGrade', back_populates='grade_rows')
    grades = db.relationship('Grade', back_populates='row', cascade='all, delete-orphan')

    __table_args__ = (db.UniqueConstraint('class_grade_id', 'student_id', name='unique_student_row_per_class'),)

    def values_by_column(self):
        return {grade.column_id: grade.value for grade in self.grades}

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'full_name': self.full_name,
            'grades': [grade.to_dict() for grade in self.grades]
        }

    def __repr__(self):
        return f'<GradeRow {self.student_id}>'


class Grade(db.Model):
    __tablename__ = 'grades'

    id = db.Column(db.Integer, primary_key=True)
    row_id = db.Column(db.String(32), db.ForeignKey('grade_rows.id'), nullable=False, index=True)
    column_id = db.Column(db.String(32), db.ForeignKey('grade_columns.id'), nullable=False, index=True)
    value = db.Column(db.Float, nullable=False, default=0)

    row = db.relationship('GradeRow', back_populates='grades')

    __table_args__ = (
        db.UniqueConstraint('row_id', 'column_id', name='unique_grade_per_column'),
        db.CheckConstraint(f'value >= {GRADE_MIN} AND value <= {GRADE_MAX}', name='ck_grade_value'),
    )

    def to_dict(self):
        return {
            'column': self.column_id,
            'value': self.value
        }

    def __repr__(self):
        return f'<Grade {self.column_id}={self.value}>'
