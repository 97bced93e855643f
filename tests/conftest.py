from datetime import date, timedelta

import pytest
from flask import g
from werkzeug.security import generate_password_hash

from app import create_app
from prolegal.database.database import db
from prolegal.models.auth import User, ExternalUser
from prolegal.models.compliance import ComplianceRecord
from prolegal.models.reminders import ComplianceReminder
from prolegal.utils.email_reminder import dispatch_due_reminders
from prolegal.utils.recipients import add_recipient
from prolegal.utils.scheduling import schedule_reminders


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'MAIL_SUPPRESS_SEND': True,
        'SCHEDULER_ENABLED': False,
        'FRONTEND_URL': 'http://frontend.test',
        'REMINDER_MAX_ATTEMPTS': 3,
        'REMINDER_OVERDUE_GRACE_DAYS': 1,
    })

    # Requests share the test's app context, so the user Flask-Login caches
    # on g must not leak from one request into the next
    @app.before_request
    def forget_loaded_user():
        g.pop('_login_user', None)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def mail(app):
    return app.extensions['mail']


@pytest.fixture
def user(app):
    user = User(
        email='officer@prolegal.test',
        full_name='Olivia Officer',
        password_hash=generate_password_hash('s3cret-pass'),
    )
    user.issue_token()
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def auth_headers(user):
    return {'Authorization': f'Bearer {user.api_token}'}


@pytest.fixture
def contact(app):
    contact = ExternalUser(name='Carl Contact', email='carl@outside.test', organization='Outside LLP')
    db.session.add(contact)
    db.session.commit()
    return contact


@pytest.fixture
def make_record(app):
    def _make(due_in_days=30, frequency='annually', name='Bar License Renewal'):
        record = ComplianceRecord(
            name=name,
            description='Annual state bar license renewal',
            compliance_type='license_renewal',
            due_date=date.today() + timedelta(days=due_in_days),
            frequency=frequency,
        )
        db.session.add(record)
        db.session.commit()
        return record
    return _make


@pytest.fixture
def record(make_record):
    return make_record()


@pytest.fixture
def add_manual_recipient(app):
    def _add(record, name='Jane Doe', email='jane@example.com', role='primary'):
        return add_recipient(record.id, email=email, name=name, role=role)
    return _add


@pytest.fixture
def issue_tokens(app, mail):
    """Schedule and dispatch as of the due date, return the sent reminders"""
    def _issue(record):
        schedule_reminders(record.id)
        dispatch_due_reminders(mail, today=record.due_date)
        return ComplianceReminder.query.filter_by(
            compliance_record_id=record.id,
            status='sent'
        ).order_by(ComplianceReminder.id).all()
    return _issue


@pytest.fixture
def token_for(app):
    def _token(record, recipient, reminder_type='due_date'):
        return ComplianceReminder.query.filter_by(
            compliance_record_id=record.id,
            recipient_id=recipient.id,
            reminder_type=reminder_type
        ).one().confirmation_token
    return _token
