from prolegal.database.database import db
from datetime import datetime

COMPLIANCE_TYPES = (
    'tax_return', 'license_renewal', 'certification', 'registration',
    'permit', 'insurance', 'audit', 'report', 'other'
)
FREQUENCIES = ('once', 'monthly', 'quarterly', 'annually', 'biennially', 'custom')
RECORD_STATUSES = ('active', 'pending', 'overdue', 'completed', 'expired')
CLOSED_STATUSES = ('completed', 'expired')
PRIORITIES = ('high', 'medium', 'low')

class ComplianceRecord(db.Model):
    __tablename__ = 'compliance_record'
    
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    compliance_type = db.Column(db.String(50), nullable=False, default='other')
    due_date = db.Column(db.Date, nullable=False)
    frequency = db.Column(db.String(20), nullable=False, default='once')
    status = db.Column(db.String(20), nullable=False, default='active')
    priority = db.Column(db.String(10), nullable=False, default='medium')
    last_confirmed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    recipients = db.relationship(
        'ComplianceReminderRecipient',
        back_populates='record',
        cascade='all, delete-orphan',
        order_by='ComplianceReminderRecipient.id'
    )
    reminders = db.relationship('ComplianceReminder', back_populates='record', cascade='all, delete-orphan')
    confirmations = db.relationship('ComplianceConfirmation', back_populates='record', cascade='all, delete-orphan')
    
    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'complianceType': self.compliance_type,
            'dueDate': self.due_date.isoformat(),
            'frequency': self.frequency,
            'status': self.status,
            'priority': self.priority,
            'lastConfirmedAt': self.last_confirmed_at.isoformat() if self.last_confirmed_at else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

class ComplianceReminderRecipient(db.Model):
    __tablename__ = 'compliance_reminder_recipient'
    __table_args__ = (
        db.UniqueConstraint('compliance_record_id', 'email', name='uq_recipient_email'),
    )
    
    id = db.Column(db.Integer, primary_key=True)
    compliance_record_id = db.Column(db.Integer, db.ForeignKey('compliance_record.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    external_user_id = db.Column(db.Integer, db.ForeignKey('external_user.id'))
    email = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(100), default='primary')  # primary, secondary, cc
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    
    # Relationships
    record = db.relationship('ComplianceRecord', back_populates='recipients')
    user = db.relationship('User')
    external_user = db.relationship('ExternalUser')
    reminders = db.relationship('ComplianceReminder', back_populates='recipient')
    
    @property
    def provenance(self):
        if self.user_id is not None:
            return 'internal'
        if self.external_user_id is not None:
            return 'external'
        return 'manual'
    
    def to_dict(self):
        from prolegal.utils.status import recipient_label
        return {
            'id': self.id,
            'complianceRecordId': self.compliance_record_id,
            'userId': self.user_id,
            'externalUserId': self.external_user_id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'provenance': self.provenance,
            'label': recipient_label(self),
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
