from prolegal.database.database import db
from datetime import datetime
import secrets

REMINDER_TYPES = ('two_weeks', 'one_week', 'due_date', 'overdue')
REMINDER_STATUSES = ('pending', 'sent', 'confirmed', 'failed')
CONFIRMATION_TYPES = ('submitted', 'renewed', 'extended', 'completed')

def generate_token():
    return secrets.token_hex(32)

class ComplianceReminder(db.Model):
    __tablename__ = 'compliance_reminder'
    __table_args__ = (
        db.UniqueConstraint('recipient_id', 'reminder_type', 'cycle_due_date', name='uq_reminder_milestone'),
    )

    id = db.Column(db.Integer, primary_key=True)
    compliance_record_id = db.Column(db.Integer, db.ForeignKey('compliance_record.id'), nullable=False, index=True)
    recipient_id = db.Column(db.Integer, db.ForeignKey('compliance_reminder_recipient.id'))
    reminder_type = db.Column(db.String(20), nullable=False)  # two_weeks, one_week, due_date, overdue
    cycle_due_date = db.Column(db.Date, nullable=False)
    scheduled_date = db.Column(db.Date, nullable=False, index=True)
    sent_at = db.Column(db.DateTime)
    email_sent = db.Column(db.Boolean, nullable=False, default=False)
    confirmation_token = db.Column(db.String(64), unique=True, nullable=False, default=generate_token)
    confirmed_at = db.Column(db.DateTime)
    confirmed_by = db.Column(db.String(255))
    status = db.Column(db.String(20), nullable=False, default='pending', index=True)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text)
    superseded_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    record = db.relationship('ComplianceRecord', back_populates='reminders')
    recipient = db.relationship('ComplianceReminderRecipient', back_populates='reminders')
    confirmation = db.relationship('ComplianceConfirmation', back_populates='reminder', uselist=False)

    @property
    def is_live(self):
        return self.superseded_at is None and self.recipient_id is not None

    def to_dict(self):
        # The token is a bearer capability and is never serialized
        return {
            'id': self.id,
            'complianceRecordId': self.compliance_record_id,
            'recipientId': self.recipient_id,
            'reminderType': self.reminder_type,
            'cycleDueDate': self.cycle_due_date.isoformat(),
            'scheduledDate': self.scheduled_date.isoformat(),
            'sentAt': self.sent_at.isoformat() if self.sent_at else None,
            'emailSent': self.email_sent,
            'confirmedAt': self.confirmed_at.isoformat() if self.confirmed_at else None,
            'confirmedBy': self.confirmed_by,
            'status': self.status,
            'attempts': self.attempts,
            'superseded': self.superseded_at is not None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

class ComplianceConfirmation(db.Model):
    __tablename__ = 'compliance_confirmation'

    id = db.Column(db.Integer, primary_key=True)
    compliance_record_id = db.Column(db.Integer, db.ForeignKey('compliance_record.id'), nullable=False, index=True)
    reminder_id = db.Column(db.Integer, db.ForeignKey('compliance_reminder.id'), nullable=False, unique=True)
    confirmed_by = db.Column(db.String(255), nullable=False)
    confirmed_email = db.Column(db.String(255), nullable=False)
    confirmation_type = db.Column(db.String(20), nullable=False)  # submitted, renewed, extended, completed
    notes = db.Column(db.Text)
    confirmation_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    record = db.relationship('ComplianceRecord', back_populates='confirmations')
    reminder = db.relationship('ComplianceReminder', back_populates='confirmation')

    def to_dict(self):
        return {
            'id': self.id,
            'complianceRecordId': self.compliance_record_id,
            'reminderId': self.reminder_id,
            'confirmedBy': self.confirmed_by,
            'confirmedEmail': self.confirmed_email,
            'confirmationType': self.confirmation_type,
            'notes': self.notes,
            'confirmationDate': self.confirmation_date.isoformat(),
        }
