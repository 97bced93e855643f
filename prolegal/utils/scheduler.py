from apscheduler.schedulers.background import BackgroundScheduler
from prolegal.utils.status import update_all_statuses
from prolegal.utils.email_reminder import send_due_reminders
from flask import Flask
from flask_mail import Mail

def start_scheduler(app: Flask, mail: Mail):
    """
    Start background scheduler for:
    - Record status updates (daily at midnight)
    - Due reminder emails (daily at REMINDER_SEND_HOUR)
    """
    scheduler = BackgroundScheduler()

    def update_statuses():
        with app.app_context():
            count = update_all_statuses()
            app.logger.info(f"[Scheduler] Updated {count} compliance record statuses")

    def send_reminders():
        count = send_due_reminders(app, mail)
        app.logger.info(f"[Scheduler] Sent {count} reminder emails")

    scheduler.add_job(
        func=update_statuses,
        trigger="cron",
        hour=0,
        minute=0,
        id='update_statuses'
    )

    scheduler.add_job(
        func=send_reminders,
        trigger="cron",
        hour=app.config['REMINDER_SEND_HOUR'],
        minute=0,
        id='send_reminders'
    )

    scheduler.start()
    app.logger.info("[Scheduler] Background tasks started")

    return scheduler
