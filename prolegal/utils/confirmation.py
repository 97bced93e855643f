"""
Public confirmation flow behind the emailed link.

A confirmation token is a bearer capability: it grants the holder the right
to confirm exactly one reminder, exactly once. A token only resolves while
its reminder is sent, not superseded and still has a recipient; every other
case reads as the same invalid-or-expired signal.
"""
from flask import current_app
from prolegal.database.database import db
from prolegal.errors import InvalidToken, ValidationError
from prolegal.models.reminders import ComplianceReminder, ComplianceConfirmation, CONFIRMATION_TYPES
from prolegal.utils.recipients import EMAIL_PATTERN, clean_text
from prolegal.utils.scheduling import next_due_date
from prolegal.utils.status import update_record_status
from datetime import datetime

TOKEN_LENGTH = 64
ADVANCING_TYPES = ('renewed', 'extended', 'completed')

def _live_reminder(token):
    if not token or len(token) != TOKEN_LENGTH:
        return None

    return ComplianceReminder.query.filter(
        ComplianceReminder.confirmation_token == token,
        ComplianceReminder.status == 'sent',
        ComplianceReminder.superseded_at.is_(None),
        ComplianceReminder.recipient_id.isnot(None)
    ).first()

def get_confirmation_by_token(token):
    """
    Resolve a token to the reminder, record and recipient it was issued for,
    or None
    """
    reminder = _live_reminder(token)
    if reminder is None:
        return None

    record = reminder.record
    recipient = reminder.recipient

    return {
        'reminder': reminder.to_dict(),
        'complianceRecord': {
            'id': record.id,
            'name': record.name,
            'description': record.description,
            'dueDate': reminder.cycle_due_date.isoformat(),
            'frequency': record.frequency
        },
        'recipient': {
            'id': recipient.id,
            'complianceRecordId': recipient.compliance_record_id,
            'email': recipient.email,
            'name': recipient.name,
            'role': recipient.role
        }
    }

def validate_confirmation(confirmed_by, confirmed_email, confirmation_type, notes=None):
    confirmed_by = clean_text(confirmed_by, 'confirmedBy')
    confirmed_email = clean_text(confirmed_email, 'confirmedEmail')
    confirmation_type = confirmation_type or 'submitted'
    notes = clean_text(notes, 'notes') or None

    if not confirmed_by or not confirmed_email:
        raise ValidationError('Please fill in your name and email')

    if not EMAIL_PATTERN.match(confirmed_email):
        raise ValidationError('Please enter a valid email address')

    if confirmation_type not in CONFIRMATION_TYPES:
        raise ValidationError(f"Confirmation type must be one of: {', '.join(CONFIRMATION_TYPES)}")

    return confirmed_by, confirmed_email, confirmation_type, notes

def _advance_record(record, confirmation_type, cycle_due_date):
    # Only the cycle being confirmed may move the record forward
    if confirmation_type not in ADVANCING_TYPES or record.due_date != cycle_due_date:
        return

    following = next_due_date(record.due_date, record.frequency)
    if following is not None:
        record.due_date = following
        update_record_status(record)
    elif confirmation_type == 'completed':
        record.status = 'completed'

def confirm_compliance(token, confirmed_by=None, confirmed_email=None, confirmation_type='submitted', notes=None):
    """
    Consume a token and record the confirmation.

    The sent -> confirmed transition is a conditional update, so of two
    submissions racing on the same token exactly one wins and the other
    raises InvalidToken. Sibling reminders of the same cycle are superseded
    in the same transaction.
    """
    confirmed_by, confirmed_email, confirmation_type, notes = validate_confirmation(
        confirmed_by, confirmed_email, confirmation_type, notes
    )

    reminder = _live_reminder(token)
    if reminder is None:
        raise InvalidToken()

    now = datetime.utcnow()

    try:
        claimed = ComplianceReminder.query.filter(
            ComplianceReminder.id == reminder.id,
            ComplianceReminder.status == 'sent',
            ComplianceReminder.superseded_at.is_(None)
        ).update({
            'status': 'confirmed',
            'confirmed_at': now,
            'confirmed_by': confirmed_by,
            'updated_at': now
        }, synchronize_session='fetch')

        if claimed != 1:
            db.session.rollback()
            raise InvalidToken()

        db.session.add(ComplianceConfirmation(
            compliance_record_id=reminder.compliance_record_id,
            reminder_id=reminder.id,
            confirmed_by=confirmed_by,
            confirmed_email=confirmed_email,
            confirmation_type=confirmation_type,
            notes=notes,
            confirmation_date=now
        ))

        ComplianceReminder.query.filter(
            ComplianceReminder.compliance_record_id == reminder.compliance_record_id,
            ComplianceReminder.cycle_due_date == reminder.cycle_due_date,
            ComplianceReminder.id != reminder.id,
            ComplianceReminder.status.in_(('pending', 'sent', 'failed')),
            ComplianceReminder.superseded_at.is_(None)
        ).update({'superseded_at': now, 'updated_at': now}, synchronize_session='fetch')

        record = reminder.record
        record.last_confirmed_at = now
        _advance_record(record, confirmation_type, reminder.cycle_due_date)

        db.session.commit()
    except InvalidToken:
        raise
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(f"[Confirm] Reminder {reminder.id} confirmed as {confirmation_type} for record {reminder.compliance_record_id}")
    return True
