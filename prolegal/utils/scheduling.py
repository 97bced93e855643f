from flask import current_app
from prolegal.database.database import db
from prolegal.errors import NotFound
from prolegal.models.reminders import ComplianceReminder, ComplianceConfirmation, generate_token
from prolegal.utils.recipients import get_record_or_404, list_recipients
from datetime import datetime, timedelta
import pandas as pd

# Days relative to the due date, overdue is configurable
MILESTONE_OFFSETS = {
    'two_weeks': -14,
    'one_week': -7,
    'due_date': 0
}

# Months per period, once and custom records never advance on their own
FREQUENCY_MONTHS = {
    'monthly': 1,
    'quarterly': 3,
    'annually': 12,
    'biennially': 24
}

def milestone_dates(due_date, today, overdue_grace_days=1):
    """
    Reminder dates for one due-date cycle.

    Milestones already in the past are not applicable and are left out,
    except overdue which is pulled forward to today once the record is late.
    """
    dates = {}

    for reminder_type, offset in MILESTONE_OFFSETS.items():
        scheduled = due_date + timedelta(days=offset)
        if scheduled >= today:
            dates[reminder_type] = scheduled

    dates['overdue'] = max(due_date + timedelta(days=overdue_grace_days), today)

    return dates

def next_due_date(due_date, frequency):
    months = FREQUENCY_MONTHS.get(frequency)
    if not months:
        return None
    return (pd.Timestamp(due_date) + pd.DateOffset(months=months)).date()

def schedule_reminders(record_id, today=None):
    """
    Create one pending reminder per recipient per applicable milestone for
    the record's current due-date cycle.

    Idempotent per (record, cycle, recipient, milestone): live pending and
    sent reminders are left as they are, failed or superseded ones of a
    still-applicable milestone are re-queued with a fresh token. Returns how
    many reminders were created or re-queued.
    """
    record = get_record_or_404(record_id)
    recipients = list_recipients(record.id)

    if not recipients:
        raise NotFound('No recipients to schedule reminders for')

    today = today or datetime.now().date()
    cycle = record.due_date

    confirmed = ComplianceConfirmation.query.join(ComplianceReminder).filter(
        ComplianceConfirmation.compliance_record_id == record.id,
        ComplianceReminder.cycle_due_date == cycle
    ).first()
    if confirmed:
        current_app.logger.info(f"[Reminders] Cycle {cycle} of record {record.id} already confirmed")
        return 0

    dates = milestone_dates(cycle, today, current_app.config.get('REMINDER_OVERDUE_GRACE_DAYS', 1))

    existing = {
        (reminder.recipient_id, reminder.reminder_type): reminder
        for reminder in ComplianceReminder.query.filter_by(
            compliance_record_id=record.id,
            cycle_due_date=cycle
        ).all()
    }

    scheduled = 0

    for recipient in recipients:
        for reminder_type, scheduled_date in dates.items():
            reminder = existing.get((recipient.id, reminder_type))

            if reminder is None:
                db.session.add(ComplianceReminder(
                    compliance_record_id=record.id,
                    recipient_id=recipient.id,
                    reminder_type=reminder_type,
                    cycle_due_date=cycle,
                    scheduled_date=scheduled_date,
                    confirmation_token=generate_token(),
                    status='pending'
                ))
                scheduled += 1

            elif reminder.superseded_at is not None or reminder.status == 'failed':
                # The cycle is unconfirmed here, so a superseded row is one the
                # record moved away from and back to
                reminder.status = 'pending'
                reminder.attempts = 0
                reminder.last_error = None
                reminder.email_sent = False
                reminder.sent_at = None
                reminder.superseded_at = None
                reminder.scheduled_date = max(reminder.scheduled_date, today)
                reminder.confirmation_token = generate_token()
                scheduled += 1

    db.session.commit()

    current_app.logger.info(f"[Reminders] Scheduled {scheduled} reminder(s) for record {record.id}, cycle {cycle}")
    return scheduled

def list_reminders(record_id):
    get_record_or_404(record_id)

    return ComplianceReminder.query.filter_by(
        compliance_record_id=record_id
    ).order_by(
        ComplianceReminder.scheduled_date,
        ComplianceReminder.id
    ).all()
