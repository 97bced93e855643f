from flask import current_app
from flask_mail import Message, Mail
from markupsafe import escape
from prolegal.models.reminders import ComplianceReminder, REMINDER_TYPES
from prolegal.database.database import db
from prolegal.utils.status import REMINDER_TYPE_TEXT, is_urgent
from datetime import datetime

def confirmation_link(frontend_url, token):
    return f"{frontend_url.rstrip('/')}/compliance-confirm/{token}"

def build_reminder_message(reminder, frontend_url):
    """
    Build the reminder email for a single reminder
    """
    record = reminder.record
    recipient = reminder.recipient

    urgency_text = 'URGENT' if is_urgent(reminder.reminder_type) else 'REMINDER'
    urgency_color = '#dc2626' if is_urgent(reminder.reminder_type) else '#f59e0b'
    milestone = REMINDER_TYPE_TEXT[reminder.reminder_type]
    link = confirmation_link(frontend_url, reminder.confirmation_token)

    subject = f"Compliance {urgency_text}: {record.name} - {milestone}"

    body = f"""
    <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="background-color: {urgency_color}; color: white; padding: 20px; text-align: center;">
                <h2 style="margin: 0;">Compliance {urgency_text}</h2>
                <p style="margin: 10px 0 0 0;">{milestone}</p>
            </div>

            <p>Dear <strong>{escape(recipient.name)}</strong>,</p>

            <p>This is a reminder that the following compliance item requires your attention:</p>

            <div style="background-color: #f8f9fa; padding: 15px; border-left: 4px solid {urgency_color}; margin: 20px 0;">
                <h3 style="margin-top: 0;">{escape(record.name)}</h3>
                <p><strong>Due Date:</strong> {reminder.cycle_due_date.strftime('%B %d, %Y')}</p>
                <p><strong>Frequency:</strong> {record.frequency.title()}</p>
                {f'<p><strong>Description:</strong> {escape(record.description)}</p>' if record.description else ''}
            </div>

            <p><strong>Action Required:</strong></p>
            <ul>
                <li>Complete the necessary actions</li>
                <li>Click the "Confirm Completion" button below</li>
                <li>Select the confirmation type (submitted, renewed, extended, or completed)</li>
            </ul>

            <p>
                <a href="{link}"
                   style="background-color: {urgency_color}; color: white; padding: 10px 20px;
                          text-decoration: none; border-radius: 5px; display: inline-block;">
                    Confirm Completion
                </a>
            </p>

            <hr style="margin: 30px 0; border: none; border-top: 1px solid #ddd;">

            <p style="font-size: 12px; color: #666;">
                Once you confirm completion, you will no longer receive reminders for this due date.
            </p>
        </body>
    </html>
    """

    return Message(subject=subject, recipients=[recipient.email], html=body)

def send_reminder_email(mail: Mail, reminder: ComplianceReminder, frontend_url: str, logger):
    """
    Send one reminder and record the outcome on it. Returns True when sent.
    """
    reminder.attempts += 1

    try:
        mail.send(build_reminder_message(reminder, frontend_url))
    except Exception as e:
        reminder.status = 'failed'
        reminder.last_error = str(e)[:500]
        db.session.commit()
        logger.error(f"[Reminders] Failed to send reminder {reminder.id} (attempt {reminder.attempts}): {e}")
        return False

    reminder.status = 'sent'
    reminder.email_sent = True
    reminder.sent_at = datetime.utcnow()
    reminder.last_error = None
    db.session.commit()

    return True

def due_reminders(today, max_attempts):
    """
    Live reminders scheduled on or before today that are pending, or failed
    with attempts left
    """
    return ComplianceReminder.query.filter(
        ComplianceReminder.scheduled_date <= today,
        ComplianceReminder.superseded_at.is_(None),
        ComplianceReminder.recipient_id.isnot(None),
        db.or_(
            ComplianceReminder.status == 'pending',
            db.and_(
                ComplianceReminder.status == 'failed',
                ComplianceReminder.attempts < max_attempts
            )
        )
    ).order_by(ComplianceReminder.scheduled_date, ComplianceReminder.id).all()

def latest_milestones(reminders):
    """
    Keep only the latest due milestone per recipient and cycle. Earlier ones
    that came due while the dispatcher was not running are superseded rather
    than sent late.
    """
    latest = {}
    stale = []

    for reminder in reminders:
        key = (reminder.recipient_id, reminder.cycle_due_date)
        current = latest.get(key)
        if current is None:
            latest[key] = reminder
        elif REMINDER_TYPES.index(reminder.reminder_type) > REMINDER_TYPES.index(current.reminder_type):
            stale.append(current)
            latest[key] = reminder
        else:
            stale.append(reminder)

    if stale:
        now = datetime.utcnow()
        for reminder in stale:
            reminder.superseded_at = now
        db.session.commit()
        current_app.logger.info(f"[Reminders] Superseded {len(stale)} stale reminder(s)")

    return sorted(latest.values(), key=lambda r: (r.scheduled_date, r.id))

def dispatch_due_reminders(mail: Mail, today=None):
    """
    Send every due reminder in the current app context. Failures are
    recorded per reminder and never stop the batch.
    """
    app = current_app._get_current_object()
    today = today or datetime.now().date()
    max_attempts = app.config['REMINDER_MAX_ATTEMPTS']
    frontend_url = app.config['FRONTEND_URL']

    reminders_sent = 0

    for reminder in latest_milestones(due_reminders(today, max_attempts)):
        if send_reminder_email(mail, reminder, frontend_url, app.logger):
            reminders_sent += 1
            app.logger.info(f"[Reminders] Sent {reminder.reminder_type} reminder for record {reminder.compliance_record_id}")

    app.logger.info(f"[Reminders] Total reminders sent: {reminders_sent}")
    return reminders_sent

def send_due_reminders(app, mail: Mail, today=None):
    with app.app_context():
        return dispatch_due_reminders(mail, today)
