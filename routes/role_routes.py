# routes/role_routes.py

import logging
from flask import Blueprint, jsonify
from services.record_gateway import RecordGateway
from utils.payload import json_payload, required_text
from utils.security import admin_required

logger = logging.getLogger(__name__)

role_bp = Blueprint('role', __name__)


@role_bp.route('', methods=['GET'])
@admin_required
def list_roles():
    roles = RecordGateway().list_all('roles')
    return jsonify({'roles': [r.to_dict() for r in roles]}), 200


@role_bp.route('', methods=['POST'])
@admin_required
def create_role():
    data = json_payload()
    role = RecordGateway().create('roles', {'name': required_text(data, 'name', 'Role name')})
    logger.info(f"Role created: {role.name} ({role.id})")
    return jsonify(role.to_dict()), 201


@role_bp.route('/<role_id>', methods=['GET'])
@admin_required
def get_role(role_id):
    role = RecordGateway().get_or_404('roles', role_id)
    return jsonify(role.to_dict()), 200


@role_bp.route('/<role_id>', methods=['PUT'])
@admin_required
def update_role(role_id):
    data = json_payload()
    role = RecordGateway().update('roles', role_id, {'name': required_text(data, 'name', 'Role name')})
    return jsonify(role.to_dict()), 200


@role_bp.route('/<role_id>', methods=['DELETE'])
@admin_required
def delete_role(role_id):
    """Supprime le rôle et toutes ses permissions"""
    deleted = RecordGateway().delete('roles', role_id)
    return jsonify({'msg': 'Role and associated permissions deleted successfully', 'deleted': deleted}), 200
