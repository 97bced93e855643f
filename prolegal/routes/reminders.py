from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required
from prolegal.utils.recipients import list_recipients, add_recipient, remove_recipient, get_record_or_404
from prolegal.utils.scheduling import schedule_reminders, list_reminders
from prolegal.utils.email_reminder import dispatch_due_reminders
from prolegal.utils.status import reminder_display, get_reminder_counts

remind_bp = Blueprint('reminders', __name__)

@remind_bp.route('/compliance-records/<int:record_id>/recipients', methods=['GET'])
@login_required
def recipients(record_id):
    return jsonify([recipient.to_dict() for recipient in list_recipients(record_id)])

@remind_bp.route('/compliance-records/<int:record_id>/recipients', methods=['POST'])
@login_required
def create_recipient(record_id):
    data = request.get_json(silent=True) or {}

    recipient = add_recipient(
        record_id,
        email=data.get('email'),
        name=data.get('name'),
        role=data.get('role'),
        user_id=data.get('userId'),
        external_user_id=data.get('externalUserId')
    )

    return jsonify(recipient.to_dict()), 201

@remind_bp.route('/compliance-records/recipients/<int:recipient_id>', methods=['DELETE'])
@login_required
def delete_recipient(recipient_id):
    removed = remove_recipient(recipient_id)
    return jsonify({'success': True, 'removed': removed})

@remind_bp.route('/compliance-records/<int:record_id>/schedule-reminders', methods=['POST'])
@login_required
def schedule(record_id):
    scheduled = schedule_reminders(record_id)
    return jsonify({'success': True, 'scheduled': scheduled})

@remind_bp.route('/compliance-records/<int:record_id>/reminders', methods=['GET'])
@login_required
def reminders(record_id):
    rows = []
    for reminder in list_reminders(record_id):
        row = reminder.to_dict()
        row['display'] = reminder_display(reminder)
        rows.append(row)
    return jsonify(rows)

@remind_bp.route('/compliance-records/<int:record_id>/reminder-summary', methods=['GET'])
@login_required
def reminder_summary(record_id):
    get_record_or_404(record_id)
    return jsonify(get_reminder_counts(record_id))

@remind_bp.route('/compliance-reminders/send', methods=['POST'])
@login_required
def send_reminders():
    """
    Manually run the dispatcher, for operations and testing
    """
    sent = dispatch_due_reminders(current_app.extensions['mail'])
    return jsonify({'success': True, 'sent': sent})
