# tests/test_class_grades.py

import pytest

from app import db
from app.models import User, Classroom, ClassGrade, Notification, NotificationRecipient, TelegramLink
from app.utils import notifications
from app.utils.class_grades import (create_class_grade, class_grade_view, class_grade_columns,
                                    mark_finished, mark_unfinished)
from app.utils.errors import (ClassGradeNotFinished, ClassGradeAlreadyFinished, NotClassStudent,
                              NotClassTeacher, ClassNotFound, InvalidTelegramLink, TelegramAccountInUse)
from app.utils.events import GradeFinished, GradeUnfinished
from app.utils.grade_rows import upsert_student_grade
from app.utils.notifications import dispatch_effects, get_user_notifications, get_unread_count, \
    mark_notification_as_read, link_telegram_account, unlink_telegram_account
from app.utils.scheduler import retry_telegram_deliveries


def user(users, key):
    return db.session.get(User, users[key])


def test_create_class_grade_is_idempotent(ctx, class_id):
    first = create_class_grade(class_id)
    second = create_class_grade(class_id)

    assert first.id == second.id
    assert ClassGrade.query.filter_by(class_id=class_id).count() == 1


def test_new_class_grade_is_empty_and_unfinished(ctx, users):
    classroom = Classroom(name='Chemistry', owner_id=users['teacher'])
    db.session.add(classroom)
    db.session.commit()

    data = create_class_grade(classroom.id).to_dict()

    assert data['grade_columns'] == []
    assert data['grade_rows'] == []
    assert data['isFinished'] is False


def test_teacher_sees_every_row(ctx, users, class_id, columns):
    data = class_grade_view(class_id, user(users, 'teacher'))

    assert {row['student_id'] for row in data['grade_rows']} == {'S001', 'S002'}


def test_admin_bypasses_membership(ctx, users, class_id, columns):
    data = class_grade_view(class_id, user(users, 'admin'))

    assert len(data['grade_rows']) == 2


def test_student_cannot_see_unfinished_grades(ctx, users, class_id, columns):
    with pytest.raises(ClassGradeNotFinished):
        class_grade_view(class_id, user(users, 'alice'))

    with pytest.raises(ClassGradeNotFinished):
        class_grade_columns(class_id, user(users, 'alice'))


def test_student_sees_only_own_row_once_finished(ctx, users, class_id, columns):
    upsert_student_grade(class_id, {'student_id': 'S001', 'Midterm': 8})
    mark_finished(class_id, user(users, 'teacher'))

    data = class_grade_view(class_id, user(users, 'alice'))

    assert [row['student_id'] for row in data['grade_rows']] == ['S001']
    assert {grade['value'] for grade in data['grade_rows'][0]['grades']} == {8, 0}
    assert [column['name'] for column in class_grade_columns(class_id, user(users, 'alice'))] == ['Midterm', 'Final']


def test_outsiders_are_rejected(ctx, users, class_id):
    with pytest.raises(NotClassStudent):
        class_grade_view(class_id, user(users, 'outsider'))

    with pytest.raises(NotClassTeacher):
        class_grade_view(class_id, user(users, 'other_teacher'))


def test_view_of_unknown_class(ctx, users):
    with pytest.raises(ClassNotFound):
        class_grade_view(999, user(users, 'teacher'))


def test_mark_finished_returns_notification_effect(ctx, users, class_id):
    teacher = user(users, 'teacher')

    class_grade, effects = mark_finished(class_id, teacher)

    assert class_grade.is_finished
    assert len(effects) == 1
    effect = effects[0]
    assert isinstance(effect, GradeFinished)
    assert effect.title == 'Physics 101'
    assert effect.message == 'Teacher Tom Teacher has finished the grade of class. Please check it out!'
    assert set(effect.receivers) == {users['alice'], users['bob']}
    assert effect.sender == users['teacher']
    assert effect.ref_url == f'/class/{class_id}/grade'


def test_mark_finished_twice(ctx, users, class_id):
    mark_finished(class_id, user(users, 'teacher'))

    with pytest.raises(ClassGradeAlreadyFinished):
        mark_finished(class_id, user(users, 'teacher'))


def test_mark_unfinished(ctx, users, class_id):
    mark_finished(class_id, user(users, 'teacher'))

    class_grade, effects = mark_unfinished(class_id)

    assert not class_grade.is_finished
    assert len(effects) == 1
    assert isinstance(effects[0], GradeUnfinished)
    assert set(effects[0].receivers) == {users['alice'], users['bob']}


def test_dispatch_creates_notifications_for_receivers(ctx, users, class_id):
    _, effects = mark_finished(class_id, user(users, 'teacher'))

    notifications = dispatch_effects(effects)

    assert len(notifications) == 1
    notification = db.session.get(Notification, notifications[0].id)
    assert notification.notification_type == 'grade_finished'
    assert notification.send_telegram
    assert {recipient.user_id for recipient in notification.recipients} == {users['alice'], users['bob']}
    assert not any(recipient.telegram_delivered for recipient in notification.recipients)
    assert get_unread_count(users['alice']) == 1
    assert get_unread_count(users['teacher']) == 0


def test_unfinished_notice_skips_telegram(ctx, users, class_id):
    mark_finished(class_id, user(users, 'teacher'))
    _, effects = mark_unfinished(class_id)

    notification = dispatch_effects(effects)[0]

    assert notification.notification_type == 'grade_unfinished'
    assert not notification.send_telegram


def test_dispatch_rejects_unknown_effects(ctx):
    with pytest.raises(TypeError):
        dispatch_effects([object()])


def test_mark_notification_as_read(ctx, users, class_id):
    _, effects = mark_finished(class_id, user(users, 'teacher'))
    dispatch_effects(effects)
    recipient = get_user_notifications(users['alice'])[0]

    assert not mark_notification_as_read(recipient.id, users['bob'])
    assert mark_notification_as_read(recipient.id, users['alice'])

    assert db.session.get(NotificationRecipient, recipient.id).is_read
    assert get_unread_count(users['alice']) == 0
    assert get_user_notifications(users['alice'], unread_only=True) == []


def test_telegram_delivery_and_retry(ctx, users, class_id, monkeypatch):
    sent = []

    async def fake_send(telegram_id, message, bot_token):
        sent.append((telegram_id, message, bot_token))
        return 4242

    monkeypatch.setattr(notifications, 'send_telegram_notification_async', fake_send)
    ctx.config['TELEGRAM_BOT_TOKEN'] = 'bot-token'
    link_telegram_account(users['alice'], 1001, 'alice_s')

    _, effects = mark_finished(class_id, user(users, 'teacher'))
    notification_id = dispatch_effects(effects)[0].id

    assert sent == [(1001, '🔔 *Physics 101*\n\n' + effects[0].message, 'bot-token')]
    delivered = {r.user_id: r.telegram_delivered
                 for r in NotificationRecipient.query.filter_by(notification_id=notification_id)}
    assert delivered == {users['alice']: True, users['bob']: False}

    link_telegram_account(users['bob'], 2002)
    retry_telegram_deliveries(ctx)

    assert [telegram_id for telegram_id, _, _ in sent] == [1001, 2002]
    assert NotificationRecipient.query.filter_by(telegram_delivered=False).count() == 0


def test_relinking_replaces_the_chat(ctx, users):
    link_telegram_account(users['alice'], 1001)
    link_telegram_account(users['alice'], 1002, 'alice_s')

    links = TelegramLink.query.filter_by(user_id=users['alice']).all()
    assert [(link.telegram_id, link.username, link.is_active) for link in links] == [(1002, 'alice_s', True)]


def test_telegram_account_cannot_be_shared(ctx, users):
    link_telegram_account(users['alice'], 1001)

    with pytest.raises(TelegramAccountInUse):
        link_telegram_account(users['bob'], 1001)


@pytest.mark.parametrize('telegram_id', [None, 0, -5, '1001', True])
def test_telegram_id_must_be_positive_integer(ctx, users, telegram_id):
    with pytest.raises(InvalidTelegramLink):
        link_telegram_account(users['alice'], telegram_id)


def test_unlinked_users_get_no_telegram_messages(ctx, users, class_id, monkeypatch):
    sent = []

    async def fake_send(telegram_id, message, bot_token):
        sent.append(telegram_id)
        return 1

    monkeypatch.setattr(notifications, 'send_telegram_notification_async', fake_send)
    ctx.config['TELEGRAM_BOT_TOKEN'] = 'bot-token'
    link_telegram_account(users['alice'], 1001)

    assert unlink_telegram_account(users['alice'])
    assert not unlink_telegram_account(users['alice'])

    _, effects = mark_finished(class_id, user(users, 'teacher'))
    dispatch_effects(effects)

    assert sent == []
