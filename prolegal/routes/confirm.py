from flask import Blueprint, request, jsonify
from prolegal.errors import InvalidToken
from prolegal.utils.confirmation import get_confirmation_by_token, confirm_compliance

# Public, the token in the path is the only credential
confirm_bp = Blueprint('confirm', __name__)

@confirm_bp.route('/<token>', methods=['GET'])
def resolve(token):
    confirmation = get_confirmation_by_token(token)
    if confirmation is None:
        raise InvalidToken()
    return jsonify(confirmation)

@confirm_bp.route('/<token>', methods=['POST'])
def submit(token):
    data = request.get_json(silent=True) or {}

    confirm_compliance(
        token,
        confirmed_by=data.get('confirmedBy'),
        confirmed_email=data.get('confirmedEmail'),
        confirmation_type=data.get('confirmationType'),
        notes=data.get('notes')
    )

    return jsonify({'success': True})
