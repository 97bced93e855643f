from prolegal.models.compliance import ComplianceRecord, CLOSED_STATUSES
from prolegal.models.reminders import ComplianceReminder, REMINDER_STATUSES
from prolegal.database.database import db
from datetime import datetime, timedelta

REMINDER_TYPE_TEXT = {
    'two_weeks': '2 weeks before due date',
    'one_week': '1 week before due date',
    'due_date': 'Due today',
    'overdue': 'Overdue'
}

STATUS_DISPLAY = {
    'pending': {'label': 'Pending', 'color': 'gray'},
    'sent': {'label': 'Sent', 'color': 'blue'},
    'confirmed': {'label': 'Confirmed', 'color': 'green'},
    'failed': {'label': 'Failed', 'color': 'red'}
}

PROVENANCE_LABELS = {
    'internal': '(Internal)',
    'external': '(External)',
    'manual': '(Manual)'
}

def is_urgent(reminder_type):
    return reminder_type in ('due_date', 'overdue')

def recipient_label(recipient):
    return PROVENANCE_LABELS[recipient.provenance]

def reminder_display(reminder):
    """
    Label and colour for a reminder row, superseded reminders read as
    closed out regardless of their stored status
    """
    if reminder.superseded_at is not None:
        status = {'label': 'Superseded', 'color': 'gray'}
    else:
        status = STATUS_DISPLAY.get(reminder.status, {'label': reminder.status.title(), 'color': 'gray'})

    return {
        'milestone': REMINDER_TYPE_TEXT.get(reminder.reminder_type, reminder.reminder_type),
        'urgent': is_urgent(reminder.reminder_type),
        'statusLabel': status['label'],
        'statusColor': status['color']
    }

def update_record_status(record, today=None):
    """
    Update a single record's status based on its due date:
    - past due -> overdue
    - due within 30 days -> pending
    - otherwise active
    Completed and expired records are left alone.
    """
    if record.status in CLOSED_STATUSES:
        return record

    today = today or datetime.now().date()

    if record.due_date < today:
        record.status = 'overdue'
    elif record.due_date <= today + timedelta(days=30):
        record.status = 'pending'
    else:
        record.status = 'active'

    return record

def update_all_statuses(today=None):
    records = ComplianceRecord.query.all()

    for record in records:
        update_record_status(record, today)

    db.session.commit()

    return len(records)

def get_reminder_counts(record_id):
    """
    Count a record's reminders per status, superseded ones counted separately
    """
    reminders = ComplianceReminder.query.filter_by(compliance_record_id=record_id).all()

    counts = {status: 0 for status in REMINDER_STATUSES}
    counts['superseded'] = 0
    counts['total'] = len(reminders)

    for reminder in reminders:
        if reminder.superseded_at is not None:
            counts['superseded'] += 1
        elif reminder.status in counts:
            counts[reminder.status] += 1

    return counts
