from functools import wraps
from flask import jsonify
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request
import logging

logger = logging.getLogger(__name__)


def admin_required(f):
    """
    Décorateur Flask réservant une route aux administrateurs.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        claims = get_jwt()
        if claims.get('role') != 'ADMIN':
            logger.warning(f"Admin access refused for user_id={get_jwt_identity()} role={claims.get('role')}")
            return jsonify({"msg": "Accès réservé aux administrateurs"}), 403
        return f(*args, **kwargs)
    return decorated_function
