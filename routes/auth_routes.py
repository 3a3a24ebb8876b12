# routes/auth_routes.py

import logging
from flask import Blueprint, request, jsonify
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity
from extensions import db
from models.user import User
from utils.payload import json_payload

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/login", methods=["POST"])
def login():
    """Échange username/password contre un jeton JWT portant le rôle"""
    # Le formulaire HTML de l'admin poste aussi en form-data
    data = request.form.to_dict() if request.form else json_payload()

    username = (data.get("username") or "").strip()
    user = User.query.filter_by(username=username).first() if username else None

    if user is None or not user.check_password(data.get("password") or ""):
        logger.warning(f"Failed login for username={username!r}")
        return jsonify({"msg": "Identifiants invalides"}), 401

    token = create_access_token(identity=str(user.id), additional_claims={"role": user.role.upper()})
    return jsonify({"access_token": token, "user": user.to_dict()}), 200


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    user = db.session.get(User, int(get_jwt_identity()))
    if not user:
        return jsonify({"msg": "Utilisateur non trouvé"}), 404
    return jsonify(user.to_dict()), 200
