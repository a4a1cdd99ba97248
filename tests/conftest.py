# tests/conftest.py

import pytest

from app import create_app, db
from app.models import User, Classroom
from app.models.user import ROLE_ADMIN, ROLE_TEACHER, ROLE_STUDENT
from app.utils.class_grades import create_class_grade
from app.utils.grade_columns import ColumnSpec, replace_column_set
from app.utils.grade_rows import create_student_row
from config import TestConfig

PASSWORD = 'correct-horse'

USERS = {
    'admin': (ROLE_ADMIN, 'Ada Admin', None),
    'teacher': (ROLE_TEACHER, 'Tom Teacher', None),
    'other_teacher': (ROLE_TEACHER, 'Olga Other', None),
    'alice': (ROLE_STUDENT, 'Alice Smith', 'S001'),
    'bob': (ROLE_STUDENT, 'Bob Jones', 'S002'),
    'outsider': (ROLE_STUDENT, 'Oscar Outside', 'S099'),
}


def email_of(key):
    return f'{key}@school.test'


@pytest.fixture
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def users(app):
    """Account ids by key."""
    with app.app_context():
        created = {}
        for key, (role, full_name, student_id) in USERS.items():
            user = User(email=email_of(key), role=role, full_name=full_name, student_id=student_id)
            user.set_password(PASSWORD)
            db.session.add(user)
            created[key] = user
        db.session.commit()
        return {key: user.id for key, user in created.items()}


@pytest.fixture
def class_id(app, users):
    """Class owned by ``teacher`` with alice and bob enrolled, no columns yet."""
    with app.app_context():
        classroom = Classroom(name='Physics 101', owner_id=users['teacher'])
        db.session.add(classroom)
        db.session.commit()
        created_id = classroom.id
        create_class_grade(created_id)

        for key in ('alice', 'bob'):
            student = db.session.get(User, users[key])
            classroom = db.session.get(Classroom, created_id)
            classroom.students.append(student)
            db.session.commit()
            create_student_row(created_id, student)

        return created_id


@pytest.fixture
def columns(app, class_id):
    """Midterm (40) and Final (60); column ids by name."""
    with app.app_context():
        class_grade = replace_column_set(class_id, [
            ColumnSpec(name='Midterm', ordinal=0, scale_value=40),
            ColumnSpec(name='Final', ordinal=1, scale_value=60),
        ])
        return {column.name: column.id for column in class_grade.grade_columns}


@pytest.fixture
def login(client):
    def _login(key):
        response = client.post('/auth/login', json={'email': email_of(key), 'password': PASSWORD})
        assert response.status_code == 200
        return response
    return _login
