import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

scheduler = None


def retry_telegram_deliveries(app):
    from app.utils.notifications import retry_undelivered_notifications

    with app.app_context():
        try:
            delivered = retry_undelivered_notifications()
            if delivered:
                logger.info(f"Delivered {delivered} pending Telegram notifications")
        except Exception as e:
            logger.error(f"Error in retry_telegram_deliveries: {e}")


def init_scheduler(app):
    global scheduler

    if scheduler is None:
        scheduler = BackgroundScheduler(daemon=True)
        minutes = app.config.get('NOTIFICATION_RETRY_MINUTES', 10)

        scheduler.add_job(
            func=retry_telegram_deliveries,
            args=[app],
            trigger=IntervalTrigger(minutes=minutes),
            id='telegram_retry_job',
            name='Retry Telegram Notifications',
            replace_existing=True
        )

        scheduler.start()
        logger.info(f"Scheduler started; Telegram retries every {minutes} minutes")

    return scheduler


def shutdown_scheduler():
    global scheduler

    if scheduler is not None:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler shut down successfully")
