from app import db
from app.utils.helpers import utc_now

class_teachers = db.Table(
    'class_teachers',
    db.Column('class_id', db.Integer, db.ForeignKey('classes.id'), primary_key=True),
    db.Column('user_id', db.Integer, db.ForeignKey('users.id'), primary_key=True)
)

class_students = db.Table(
    'class_students',
    db.Column('class_id', db.Integer, db.ForeignKey('classes.id'), primary_key=True),
    db.Column('user_id', db.Integer, db.ForeignKey('users.id'), primary_key=True)
)

class Classroom(db.Model):
    __tablename__ = 'classes'
    
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now)
    
    owner = db.relationship('User', foreign_keys=[owner_id])
    teachers = db.relationship('User', secondary=class_teachers, lazy='select')
    students = db.relationship('User', secondary=class_students, lazy='select')
    class_grade = db.relationship('ClassGrade', back_populates='classroom', uselist=False,
                                  cascade='all, delete-orphan')
    
    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'owner': self.owner_id,
            'teachers': [teacher.id for teacher in self.teachers],
            'students': [student.id for student in self.students]
        }
    
    def __repr__(self):
        return f'<Classroom {self.name}>'
