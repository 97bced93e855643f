from flask import Flask, jsonify
from flask_login import LoginManager
from flask_mail import Mail
from prolegal.routes.auth import auth_bp
from prolegal.routes.compliance import comp_bp
from prolegal.routes.reminders import remind_bp
from prolegal.routes.confirm import confirm_bp
from prolegal.database.database import db
from prolegal.errors import ComplianceError
from prolegal.models.auth import User, ExternalUser
from prolegal.models.compliance import ComplianceRecord, ComplianceReminderRecipient
from prolegal.models.reminders import ComplianceReminder, ComplianceConfirmation
from prolegal.utils.scheduler import start_scheduler
from dotenv import load_dotenv
import os

# Load environment variables
load_dotenv()

def env_flag(name, default):
    return os.environ.get(name, default).lower() in ['true', 'on', '1']

def create_app(test_config=None):
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///prolegal.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['FRONTEND_URL'] = os.environ.get('FRONTEND_URL', 'http://localhost:5173')

    # Reminder configuration
    app.config['REMINDER_MAX_ATTEMPTS'] = int(os.environ.get('REMINDER_MAX_ATTEMPTS', 3))
    app.config['REMINDER_OVERDUE_GRACE_DAYS'] = int(os.environ.get('REMINDER_OVERDUE_GRACE_DAYS', 1))
    app.config['REMINDER_SEND_HOUR'] = int(os.environ.get('REMINDER_SEND_HOUR', 9))
    app.config['SCHEDULER_ENABLED'] = env_flag('SCHEDULER_ENABLED', 'true')

    # Email configuration
    app.config['MAIL_SERVER'] = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    app.config['MAIL_PORT'] = int(os.environ.get('MAIL_PORT', 587))
    app.config['MAIL_USE_TLS'] = env_flag('MAIL_USE_TLS', 'true')
    app.config['MAIL_USE_SSL'] = env_flag('MAIL_USE_SSL', 'false')
    app.config['MAIL_USERNAME'] = os.environ.get('MAIL_USERNAME')
    app.config['MAIL_PASSWORD'] = os.environ.get('MAIL_PASSWORD')
    app.config['MAIL_DEFAULT_SENDER'] = os.environ.get('MAIL_DEFAULT_SENDER', 'no_reply@prolegal.app')

    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    Mail(app)

    # Initialize Flask-Login, API clients authenticate with a bearer token
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.request_loader
    def load_user_from_request(request):
        header = request.headers.get('Authorization', '')
        scheme, _, token = header.partition(' ')
        if scheme.lower() != 'bearer' or not token:
            return None
        return User.query.filter_by(api_token=token.strip()).first()

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    @app.errorhandler(ComplianceError)
    def handle_compliance_error(error):
        db.session.rollback()
        return jsonify({'error': error.message}), error.status_code

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(comp_bp, url_prefix='/api')
    app.register_blueprint(remind_bp, url_prefix='/api')
    app.register_blueprint(confirm_bp, url_prefix='/api/compliance-confirm')

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    # Create tables and start scheduler
    with app.app_context():
        db.create_all()
        if app.config['SCHEDULER_ENABLED'] and not app.config.get('TESTING'):
            start_scheduler(app, app.extensions['mail'])

    return app

if __name__ == '__main__':
    create_app().run(debug=True)
