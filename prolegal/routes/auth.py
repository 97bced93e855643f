from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from werkzeug.security import check_password_hash
from prolegal.models.auth import User
from prolegal.database.database import db
from prolegal.errors import ValidationError
from prolegal.utils.recipients import clean_text

auth_bp = Blueprint('auth', __name__)

@auth_bp.route('/login', methods=['POST'])
def login():
    """Exchange email and password for a bearer token"""
    data = request.get_json(silent=True) or {}
    email = clean_text(data.get('email'), 'email')
    password = data.get('password') or ''

    if not isinstance(password, str):
        raise ValidationError('password must be a string')

    if not email or not password:
        raise ValidationError('Email and password are required')

    user = User.query.filter_by(email=email).first()

    if not user or not check_password_hash(user.password_hash, password):
        return jsonify({'error': 'Invalid email or password'}), 401

    token = user.issue_token()
    db.session.commit()

    return jsonify({'token': token, 'user': user.to_dict()})

@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    # Rotating the token invalidates the one the client holds
    current_user.issue_token()
    db.session.commit()
    return jsonify({'success': True})

@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify(current_user.to_dict())
