from datetime import date, timedelta

from prolegal.database.database import db
from prolegal.models.compliance import ComplianceReminderRecipient
from prolegal.models.reminders import ComplianceReminder
from prolegal.utils.confirmation import confirm_compliance
from prolegal.utils.scheduling import schedule_reminders


def test_create_record(client, auth_headers):
    due = (date.today() + timedelta(days=90)).isoformat()

    response = client.post('/api/compliance-records', headers=auth_headers, json={
        'name': 'Annual Report Filing',
        'complianceType': 'report',
        'dueDate': due,
        'frequency': 'annually',
        'priority': 'high',
    })

    assert response.status_code == 201
    body = response.get_json()
    assert body['dueDate'] == due
    assert body['status'] == 'active'
    assert body['priority'] == 'high'


def test_create_record_validation(client, auth_headers):
    missing = client.post('/api/compliance-records', headers=auth_headers, json={'name': 'No date'})
    bad_date = client.post('/api/compliance-records', headers=auth_headers, json={
        'name': 'Bad date', 'dueDate': '03/01/2025'
    })
    bad_frequency = client.post('/api/compliance-records', headers=auth_headers, json={
        'name': 'Bad frequency', 'dueDate': '2025-03-01', 'frequency': 'hourly'
    })

    assert missing.status_code == 400
    assert bad_date.status_code == 400
    assert bad_frequency.status_code == 400


def test_moving_due_date_supersedes_open_reminders(client, auth_headers, record, add_manual_recipient):
    add_manual_recipient(record)
    schedule_reminders(record.id)
    new_due = (record.due_date + timedelta(days=60)).isoformat()

    response = client.put(f'/api/compliance-records/{record.id}', headers=auth_headers, json={'dueDate': new_due})

    assert response.status_code == 200
    db.session.expire_all()
    assert all(r.superseded_at is not None for r in ComplianceReminder.query.all())

    # The new cycle schedules fresh reminders alongside the superseded ones
    assert schedule_reminders(record.id) == 4
    summary = client.get(f'/api/compliance-records/{record.id}/reminder-summary', headers=auth_headers).get_json()
    assert summary['superseded'] == 4
    assert summary['pending'] == 4
    assert summary['total'] == 8


def test_delete_record_removes_children(client, auth_headers, record, add_manual_recipient):
    add_manual_recipient(record)
    schedule_reminders(record.id)

    assert client.delete(f'/api/compliance-records/{record.id}', headers=auth_headers).status_code == 200
    assert ComplianceReminderRecipient.query.count() == 0
    assert ComplianceReminder.query.count() == 0
    assert client.get(f'/api/compliance-records/{record.id}', headers=auth_headers).status_code == 404


def test_confirmation_history_and_exports(client, auth_headers, record, add_manual_recipient, issue_tokens, token_for):
    recipient = add_manual_recipient(record)
    issue_tokens(record)
    confirm_compliance(token_for(record, recipient), 'Jane Doe', 'jane@example.com', 'renewed', 'Renewed online')

    history = client.get(f'/api/compliance-records/{record.id}/confirmations', headers=auth_headers).get_json()
    assert len(history) == 1
    assert history[0]['confirmationType'] == 'renewed'
    assert history[0]['notes'] == 'Renewed online'

    csv_response = client.get(f'/api/compliance-records/{record.id}/confirmations/export/csv', headers=auth_headers)
    assert csv_response.status_code == 200
    assert csv_response.mimetype == 'text/csv'
    lines = csv_response.get_data(as_text=True).strip().splitlines()
    assert lines[0].startswith('Compliance Record,Cycle Due Date,Milestone,Confirmed By')
    assert 'Jane Doe' in lines[1]
    assert 'Renewed' in lines[1]

    pdf_response = client.get(f'/api/compliance-records/{record.id}/confirmations/export/pdf', headers=auth_headers)
    assert pdf_response.status_code == 200
    assert pdf_response.get_data().startswith(b'%PDF')


def test_empty_csv_export_has_header(client, auth_headers, record):
    response = client.get(f'/api/compliance-records/{record.id}/confirmations/export/csv', headers=auth_headers)

    assert response.get_data(as_text=True).strip().startswith('Compliance Record,')


def test_external_users(client, auth_headers, record):
    created = client.post('/api/external-users', headers=auth_headers, json={
        'name': 'Carl Contact', 'email': 'carl@outside.test', 'organization': 'Outside LLP'
    })
    assert created.status_code == 201
    contact_id = created.get_json()['id']

    duplicate = client.post('/api/external-users', headers=auth_headers, json={
        'name': 'Carl Again', 'email': 'carl@outside.test'
    })
    assert duplicate.status_code == 400

    client.post(f'/api/compliance-records/{record.id}/recipients', headers=auth_headers, json={
        'externalUserId': contact_id, 'role': 'cc'
    })
    assert ComplianceReminderRecipient.query.count() == 1

    assert client.delete(f'/api/external-users/{contact_id}', headers=auth_headers).status_code == 200
    assert ComplianceReminderRecipient.query.count() == 0
    assert client.get('/api/external-users', headers=auth_headers).get_json() == []


def test_login_issues_token_and_logout_rotates_it(client, user):
    response = client.post('/auth/login', json={'email': user.email, 'password': 's3cret-pass'})
    assert response.status_code == 200
    token = response.get_json()['token']
    headers = {'Authorization': f'Bearer {token}'}

    assert client.get('/auth/me', headers=headers).get_json()['email'] == user.email
    assert client.post('/auth/logout', headers=headers).status_code == 200
    assert client.get('/auth/me', headers=headers).status_code == 401


def test_login_rejects_bad_password(client, user):
    response = client.post('/auth/login', json={'email': user.email, 'password': 'wrong'})

    assert response.status_code == 401


def test_open_status_cannot_be_forced(client, auth_headers, record):
    response = client.put(f'/api/compliance-records/{record.id}', headers=auth_headers, json={'status': 'overdue'})

    assert response.status_code == 400
    assert client.get(f'/api/compliance-records/{record.id}', headers=auth_headers).get_json()['status'] == 'pending'


def test_closed_status_is_kept_and_reopen_follows_due_date(client, auth_headers, record):
    url = f'/api/compliance-records/{record.id}'

    closed = client.put(url, headers=auth_headers, json={'status': 'completed'})
    assert closed.status_code == 200
    assert closed.get_json()['status'] == 'completed'
    assert client.get(url, headers=auth_headers).get_json()['status'] == 'completed'

    reopened = client.put(url, headers=auth_headers, json={'status': 'active'})
    assert reopened.status_code == 200
    assert reopened.get_json()['status'] == 'pending'


def test_non_text_fields_are_rejected(client, auth_headers, record):
    created = client.post('/api/compliance-records', headers=auth_headers, json={
        'name': 42, 'dueDate': '2025-03-01'
    })
    edited = client.put(f'/api/compliance-records/{record.id}', headers=auth_headers, json={
        'description': ['not', 'text']
    })
    contact = client.post('/api/external-users', headers=auth_headers, json={
        'name': 'Carl Contact', 'email': {'address': 'carl@outside.test'}
    })
    login = client.post('/auth/login', json={'email': 'officer@prolegal.test', 'password': 1234})

    assert created.status_code == 400
    assert edited.status_code == 400
    assert contact.status_code == 400
    assert login.status_code == 400
