from flask import Blueprint, request, jsonify, send_file
from flask_login import login_required
from prolegal.database.database import db
from prolegal.errors import ValidationError, NotFound
from prolegal.models.auth import User, ExternalUser
from prolegal.models.compliance import ComplianceRecord, ComplianceReminderRecipient, COMPLIANCE_TYPES, FREQUENCIES, RECORD_STATUSES, CLOSED_STATUSES, PRIORITIES
from prolegal.models.reminders import ComplianceReminder, ComplianceConfirmation
from prolegal.utils.recipients import get_record_or_404, remove_recipient, clean_text, EMAIL_PATTERN
from prolegal.utils.status import update_record_status
from prolegal.utils.export import generate_confirmations_csv, generate_confirmations_pdf
from datetime import datetime
import io

comp_bp = Blueprint('compliance', __name__)

def parse_date(value, field):
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a date in YYYY-MM-DD format')

def check_choice(value, choices, field):
    if value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return value

def supersede_open_reminders(record, cycle_due_date):
    """Close out the unconfirmed reminders of a cycle the record has moved past"""
    now = datetime.utcnow()
    return ComplianceReminder.query.filter(
        ComplianceReminder.compliance_record_id == record.id,
        ComplianceReminder.cycle_due_date == cycle_due_date,
        ComplianceReminder.status.in_(('pending', 'sent', 'failed')),
        ComplianceReminder.superseded_at.is_(None)
    ).update({'superseded_at': now, 'updated_at': now}, synchronize_session='fetch')

@comp_bp.route('/compliance-records', methods=['GET'])
@login_required
def list_records():
    query = ComplianceRecord.query

    status = request.args.get('status')
    if status:
        query = query.filter_by(status=status)

    records = query.order_by(ComplianceRecord.due_date).all()
    return jsonify([record.to_dict() for record in records])

@comp_bp.route('/compliance-records', methods=['POST'])
@login_required
def add_record():
    data = request.get_json(silent=True) or {}
    name = clean_text(data.get('name'), 'name')

    if not name or not data.get('dueDate'):
        raise ValidationError('Name and due date are required')

    record = ComplianceRecord(
        name=name,
        description=clean_text(data.get('description'), 'description') or None,
        compliance_type=check_choice(data.get('complianceType', 'other'), COMPLIANCE_TYPES, 'complianceType'),
        due_date=parse_date(data.get('dueDate'), 'dueDate'),
        frequency=check_choice(data.get('frequency', 'once'), FREQUENCIES, 'frequency'),
        priority=check_choice(data.get('priority', 'medium'), PRIORITIES, 'priority'),
        status='active'
    )

    # Set initial status
    update_record_status(record)

    db.session.add(record)
    db.session.commit()

    return jsonify(record.to_dict()), 201

@comp_bp.route('/compliance-records/<int:record_id>', methods=['GET'])
@login_required
def view_record(record_id):
    record = get_record_or_404(record_id)

    update_record_status(record)
    db.session.commit()

    return jsonify(record.to_dict())

@comp_bp.route('/compliance-records/<int:record_id>', methods=['PUT'])
@login_required
def edit_record(record_id):
    record = get_record_or_404(record_id)
    data = request.get_json(silent=True) or {}

    if 'name' in data:
        name = clean_text(data.get('name'), 'name')
        if not name:
            raise ValidationError('Name is required')
        record.name = name
    if 'description' in data:
        record.description = clean_text(data['description'], 'description') or None
    if 'complianceType' in data:
        record.compliance_type = check_choice(data['complianceType'], COMPLIANCE_TYPES, 'complianceType')
    if 'frequency' in data:
        record.frequency = check_choice(data['frequency'], FREQUENCIES, 'frequency')
    if 'priority' in data:
        record.priority = check_choice(data['priority'], PRIORITIES, 'priority')
    if 'status' in data:
        status = check_choice(data['status'], RECORD_STATUSES, 'status')
        # Open statuses follow the due date, setting one only reopens a closed record
        if status not in CLOSED_STATUSES and record.status not in CLOSED_STATUSES:
            raise ValidationError(f"Only {' or '.join(CLOSED_STATUSES)} can be set, other statuses follow the due date")
        record.status = status
    if 'dueDate' in data:
        due_date = parse_date(data['dueDate'], 'dueDate')
        if due_date != record.due_date:
            supersede_open_reminders(record, record.due_date)
            record.due_date = due_date

    record.updated_at = datetime.utcnow()
    update_record_status(record)

    db.session.commit()

    return jsonify(record.to_dict())

@comp_bp.route('/compliance-records/<int:record_id>', methods=['DELETE'])
@login_required
def delete_record(record_id):
    record = get_record_or_404(record_id)

    db.session.delete(record)
    db.session.commit()

    return jsonify({'success': True})

@comp_bp.route('/compliance-records/<int:record_id>/confirmations', methods=['GET'])
@login_required
def list_confirmations(record_id):
    get_record_or_404(record_id)

    confirmations = ComplianceConfirmation.query.filter_by(
        compliance_record_id=record_id
    ).order_by(ComplianceConfirmation.confirmation_date.desc()).all()

    return jsonify([confirmation.to_dict() for confirmation in confirmations])

@comp_bp.route('/compliance-records/<int:record_id>/confirmations/export/csv', methods=['GET'])
@login_required
def export_confirmations_csv(record_id):
    """Export a record's confirmation history as CSV"""
    record = get_record_or_404(record_id)
    confirmations = ComplianceConfirmation.query.filter_by(
        compliance_record_id=record_id
    ).order_by(ComplianceConfirmation.confirmation_date).all()

    csv_buffer = generate_confirmations_csv(record, confirmations)

    filename = f"{record.name.replace(' ', '_')}_confirmations_{datetime.now().strftime('%Y%m%d')}.csv"

    # send_file needs bytes
    bytes_buffer = io.BytesIO(csv_buffer.getvalue().encode('utf-8'))
    bytes_buffer.seek(0)

    return send_file(
        bytes_buffer,
        as_attachment=True,
        download_name=filename,
        mimetype='text/csv'
    )

@comp_bp.route('/compliance-records/<int:record_id>/confirmations/export/pdf', methods=['GET'])
@login_required
def export_confirmations_pdf(record_id):
    """Export a record's confirmation history as PDF"""
    record = get_record_or_404(record_id)
    confirmations = ComplianceConfirmation.query.filter_by(
        compliance_record_id=record_id
    ).order_by(ComplianceConfirmation.confirmation_date).all()

    pdf_buffer = generate_confirmations_pdf(record, confirmations)

    filename = f"{record.name.replace(' ', '_')}_confirmations_{datetime.now().strftime('%Y%m%d')}.pdf"

    return send_file(
        pdf_buffer,
        as_attachment=True,
        download_name=filename,
        mimetype='application/pdf'
    )

@comp_bp.route('/users', methods=['GET'])
@login_required
def list_users():
    users = User.query.order_by(User.full_name).all()
    return jsonify([user.to_dict() for user in users])

@comp_bp.route('/external-users', methods=['GET'])
@login_required
def list_external_users():
    contacts = ExternalUser.query.order_by(ExternalUser.name).all()
    return jsonify([contact.to_dict() for contact in contacts])

@comp_bp.route('/external-users', methods=['POST'])
@login_required
def add_external_user():
    data = request.get_json(silent=True) or {}
    name = clean_text(data.get('name'), 'name')
    email = clean_text(data.get('email'), 'email')

    if not name or not email:
        raise ValidationError('Name and email are required')
    if not EMAIL_PATTERN.match(email):
        raise ValidationError('Please enter a valid email address')
    if ExternalUser.query.filter_by(email=email).first():
        raise ValidationError('An external user with this email already exists')

    contact = ExternalUser(
        name=name,
        email=email,
        phone=clean_text(data.get('phone'), 'phone') or None,
        organization=clean_text(data.get('organization'), 'organization') or None
    )
    db.session.add(contact)
    db.session.commit()

    return jsonify(contact.to_dict()), 201

@comp_bp.route('/external-users/<int:external_user_id>', methods=['DELETE'])
@login_required
def delete_external_user(external_user_id):
    contact = db.session.get(ExternalUser, external_user_id)
    if contact is None:
        raise NotFound('External user not found')

    # Recipients sourced from the contact go with it
    for recipient in ComplianceReminderRecipient.query.filter_by(external_user_id=contact.id).all():
        remove_recipient(recipient.id)

    db.session.delete(contact)
    db.session.commit()

    return jsonify({'success': True})
