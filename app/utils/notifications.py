import asyncio
import logging
from flask import current_app
from telegram import Bot
from telegram.constants import ParseMode
from app import db
from app.models import Notification, NotificationRecipient, TelegramLink, User
from app.utils.events import GradeFinished, GradeUnfinished, GradeReviewActivity
from app.utils.errors import InvalidTelegramLink, TelegramAccountInUse

logger = logging.getLogger(__name__)

async def send_telegram_notification_async(telegram_id: int, message: str, bot_token: str):
    try:
        bot = Bot(token=bot_token)
        result = await bot.send_message(
            chat_id=telegram_id,
            text=message,
            parse_mode=ParseMode.MARKDOWN
        )
        return result.message_id
    except Exception as e:
        logger.error(f"Error sending notification to {telegram_id}: {e}")
        return None


def create_notification(title, message, notification_type, recipient_ids, created_by_id=None,
                        class_id=None, ref_url=None, send_telegram=True):
    notification = Notification(
        title=title,
        message=message,
        notification_type=notification_type,
        class_id=class_id,
        ref_url=ref_url,
        created_by=created_by_id,
        send_telegram=send_telegram
    )
    db.session.add(notification)

    recipients = User.query.filter(User.id.in_(list(recipient_ids))).filter(User.is_active == True).all()
    for user in recipients:
        notification.recipients.append(NotificationRecipient(user_id=user.id))

    db.session.commit()
    logger.info(f"Notification '{notification_type}' created for {len(recipients)} recipients")

    if send_telegram:
        send_telegram_notifications(notification.id)

    return notification


def dispatch_effects(effects):
    """Deliver the effects returned by grade-book operations."""
    notifications = []
    for effect in effects:
        if isinstance(effect, GradeFinished):
            notifications.append(create_notification(
                title=effect.title,
                message=effect.message,
                notification_type='grade_finished',
                recipient_ids=effect.receivers,
                created_by_id=effect.sender,
                class_id=effect.class_id,
                ref_url=effect.ref_url,
                send_telegram=True
            ))
        elif isinstance(effect, GradeUnfinished):
            notifications.append(create_notification(
                title='Grades reopened',
                message='The grade board of your class is being revised and is hidden until it is finished again.',
                notification_type='grade_unfinished',
                recipient_ids=effect.receivers,
                class_id=effect.class_id,
                send_telegram=False
            ))
        elif isinstance(effect, GradeReviewActivity):
            notifications.append(create_notification(
                title=effect.title,
                message=effect.message,
                notification_type=effect.kind,
                recipient_ids=effect.receivers,
                created_by_id=effect.sender,
                class_id=effect.class_id,
                ref_url=effect.ref_url,
                send_telegram=True
            ))
        else:
            raise TypeError(f'Unknown effect {effect!r}')
    return notifications


def send_telegram_notifications(notification_id):
    bot_token = current_app.config.get('TELEGRAM_BOT_TOKEN')
    if not bot_token:
        return 0

    notification = db.session.get(Notification, notification_id)
    if not notification or not notification.send_telegram:
        return 0

    recipients = NotificationRecipient.query.filter_by(
        notification_id=notification_id,
        telegram_delivered=False
    ).all()

    success_count = 0

    for recipient in recipients:
        link = TelegramLink.query.filter_by(user_id=recipient.user_id, is_active=True).first()
        if not link:
            continue

        message = f"🔔 *{notification.title}*\n\n{notification.message}"
        message_id = asyncio.run(send_telegram_notification_async(link.telegram_id, message, bot_token))

        if message_id:
            recipient.mark_telegram_delivered(message_id)
            success_count += 1

    return success_count


def link_telegram_account(user_id, telegram_id, username=None):
    """Point the user's Telegram notifications at ``telegram_id``; reactivates an existing link."""
    if not isinstance(telegram_id, int) or isinstance(telegram_id, bool) or telegram_id <= 0:
        raise InvalidTelegramLink('telegram_id must be a positive integer')

    taken = TelegramLink.query.filter_by(telegram_id=telegram_id).first()
    if taken and taken.user_id != user_id:
        raise TelegramAccountInUse(telegram_id)

    link = TelegramLink.query.filter_by(user_id=user_id).first()
    if not link:
        link = TelegramLink(user_id=user_id, telegram_id=telegram_id)
        db.session.add(link)
    link.telegram_id = telegram_id
    link.username = username
    link.is_active = True
    db.session.commit()

    logger.info(f"User {user_id} linked Telegram account {telegram_id}")
    return link


def unlink_telegram_account(user_id):
    link = TelegramLink.query.filter_by(user_id=user_id, is_active=True).first()
    if not link:
        return False
    link.is_active = False
    db.session.commit()
    logger.info(f"User {user_id} unlinked Telegram account {link.telegram_id}")
    return True


def retry_undelivered_notifications():
    pending = db.session.query(NotificationRecipient.notification_id).join(Notification).filter(
        Notification.send_telegram == True,
        Notification.is_active == True,
        NotificationRecipient.telegram_delivered == False
    ).distinct().all()

    delivered = 0
    for (notification_id,) in pending:
        delivered += send_telegram_notifications(notification_id)
    return delivered


def get_user_notifications(user_id, unread_only=False, limit=50):
    query = NotificationRecipient.query.filter_by(user_id=user_id)

    if unread_only:
        query = query.filter_by(is_read=False)

    query = query.join(Notification).filter(Notification.is_active == True)
    query = query.order_by(NotificationRecipient.id.desc()).limit(limit)

    return query.all()


def get_unread_count(user_id):
    return NotificationRecipient.query.filter_by(
        user_id=user_id,
        is_read=False
    ).join(Notification).filter(Notification.is_active == True).count()


def mark_notification_as_read(recipient_id, user_id):
    recipient = db.session.get(NotificationRecipient, recipient_id)
    if recipient and recipient.user_id == user_id:
        recipient.mark_as_read()
        return True
    return False
