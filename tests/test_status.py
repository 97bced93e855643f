from datetime import date, datetime

import pytest

from prolegal.models.compliance import ComplianceRecord, ComplianceReminderRecipient
from prolegal.models.reminders import ComplianceReminder
from prolegal.utils.status import (
    get_reminder_counts,
    recipient_label,
    reminder_display,
    update_all_statuses,
    update_record_status,
)

TODAY = date(2025, 6, 1)


@pytest.mark.parametrize('due, status, expected', [
    (date(2025, 5, 31), 'active', 'overdue'),
    (date(2025, 6, 1), 'active', 'pending'),
    (date(2025, 7, 1), 'active', 'pending'),
    (date(2025, 7, 2), 'pending', 'active'),
    (date(2025, 5, 1), 'completed', 'completed'),
    (date(2025, 5, 1), 'expired', 'expired'),
])
def test_update_record_status(due, status, expected):
    record = ComplianceRecord(name='Permit', due_date=due, status=status)

    assert update_record_status(record, TODAY).status == expected


def test_update_all_statuses(make_record):
    late = make_record(due_in_days=-1, name='Late')
    later = make_record(due_in_days=120, name='Later')

    assert update_all_statuses() == 2
    assert late.status == 'overdue'
    assert later.status == 'active'


@pytest.mark.parametrize('user_id, external_user_id, label', [
    (1, None, '(Internal)'),
    (None, 2, '(External)'),
    (None, None, '(Manual)'),
])
def test_recipient_label(user_id, external_user_id, label):
    recipient = ComplianceReminderRecipient(
        user_id=user_id, external_user_id=external_user_id, email='a@b.test', name='A'
    )

    assert recipient_label(recipient) == label


def test_reminder_display():
    reminder = ComplianceReminder(reminder_type='overdue', status='sent')

    assert reminder_display(reminder) == {
        'milestone': 'Overdue',
        'urgent': True,
        'statusLabel': 'Sent',
        'statusColor': 'blue',
    }

    reminder.superseded_at = datetime(2025, 6, 1)
    assert reminder_display(reminder)['statusLabel'] == 'Superseded'

    assert reminder_display(ComplianceReminder(reminder_type='two_weeks', status='pending'))['urgent'] is False


def test_reminder_counts(record, add_manual_recipient, issue_tokens):
    add_manual_recipient(record)
    issue_tokens(record)

    counts = get_reminder_counts(record.id)

    assert counts == {
        'pending': 1,
        'sent': 1,
        'confirmed': 0,
        'failed': 0,
        'superseded': 2,
        'total': 4,
    }
