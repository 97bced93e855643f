from flask import current_app
from prolegal.database.database import db
from prolegal.errors import NotFound, ValidationError
from prolegal.models.auth import User, ExternalUser
from prolegal.models.compliance import ComplianceRecord, ComplianceReminderRecipient
from prolegal.models.reminders import ComplianceReminder
import re

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

def get_record_or_404(record_id):
    record = db.session.get(ComplianceRecord, record_id)
    if record is None:
        raise NotFound('Compliance record not found')
    return record

def list_recipients(record_id):
    get_record_or_404(record_id)

    return ComplianceReminderRecipient.query.filter_by(
        compliance_record_id=record_id
    ).order_by(
        ComplianceReminderRecipient.created_at,
        ComplianceReminderRecipient.id
    ).all()

def clean_text(value, field):
    """Strip a text field from a JSON body, missing values read as empty"""
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be a string')
    return value.strip()

def parse_id(value, field):
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be an integer id')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer id')

def add_recipient(record_id, email=None, name=None, role=None, user_id=None, external_user_id=None):
    """
    Add a notification target to a compliance record.

    Provenance is internal (user_id), external (external_user_id) or manual
    (neither). Email and name fall back to the referenced user when omitted.
    """
    record = get_record_or_404(record_id)

    email = clean_text(email, 'email')
    name = clean_text(name, 'name')
    role = clean_text(role, 'role') or 'primary'
    user_id = parse_id(user_id, 'userId')
    external_user_id = parse_id(external_user_id, 'externalUserId')

    if user_id and external_user_id:
        raise ValidationError('Provide either userId or externalUserId, not both')

    if user_id:
        user = db.session.get(User, user_id)
        if user is None:
            raise ValidationError('Selected user does not exist')
        email = email or user.email
        name = name or user.full_name
    elif external_user_id:
        contact = db.session.get(ExternalUser, external_user_id)
        if contact is None:
            raise ValidationError('Selected external contact does not exist')
        email = email or contact.email
        name = name or contact.name

    if not email or not name:
        raise ValidationError('Please fill in name and email')

    if not EMAIL_PATTERN.match(email):
        raise ValidationError('Please enter a valid email address')

    existing = ComplianceReminderRecipient.query.filter_by(
        compliance_record_id=record.id,
        email=email
    ).first()
    if existing:
        raise ValidationError(f'{email} is already a recipient for this record')

    recipient = ComplianceReminderRecipient(
        compliance_record_id=record.id,
        user_id=user_id or None,
        external_user_id=external_user_id or None,
        email=email,
        name=name,
        role=role
    )
    db.session.add(recipient)
    db.session.commit()

    current_app.logger.info(f"[Reminders] Added {recipient.provenance} recipient {recipient.id} to record {record.id}")
    return recipient

def remove_recipient(recipient_id):
    """
    Remove a recipient. Removing an unknown id is not an error.

    Unconfirmed reminders for the recipient are deleted so they are never
    dispatched and their tokens stop resolving. Confirmed reminders are
    detached and kept with their confirmation.
    """
    recipient = db.session.get(ComplianceReminderRecipient, recipient_id)
    if recipient is None:
        return False

    for reminder in ComplianceReminder.query.filter_by(recipient_id=recipient.id).all():
        if reminder.status == 'confirmed':
            reminder.recipient = None
        else:
            db.session.delete(reminder)
    db.session.flush()

    db.session.delete(recipient)
    db.session.commit()

    current_app.logger.info(f"[Reminders] Removed recipient {recipient_id}")
    return True
