# routes/permission_routes.py

import json
import logging
from flask import Blueprint, current_app, request, jsonify
from flask_jwt_extended import get_jwt_identity
from services.decision_report import build_report
from services.exceptions import DuplicatePermissionError, InvalidRequestError, PermissionServiceError
from services.permission_resolver import PermissionResolver
from services.record_gateway import RecordGateway
from utils.audit_logger import log_permission_decision
from utils.payload import bool_from_payload, json_payload
from utils.security import admin_required

logger = logging.getLogger(__name__)

permission_bp = Blueprint('permission', __name__)

# ===================== UTILITAIRES =====================

def _permission_data(gateway, data):
    """Valide le payload et renvoie les champs à enregistrer"""
    role_id = data.get('role_id')
    resource_id = data.get('resource_id')
    action_id = data.get('action_id')
    if not role_id or not resource_id or not action_id:
        raise InvalidRequestError("Please select role, resource, and action")

    gateway.get_or_404('roles', role_id)
    resource = gateway.get_or_404('resources', resource_id)
    action = gateway.get_or_404('actions', action_id)
    if action.resource_id != resource.id:
        raise InvalidRequestError(
            f"Action {action.name} does not belong to resource {resource.name}",
            'ACTION_RESOURCE_MISMATCH')

    has_condition = bool_from_payload(data, 'has_condition')
    condition_code_id = data.get('condition_code_id') or None
    if has_condition:
        if not condition_code_id:
            raise InvalidRequestError("Please select a condition code or disable conditions")
        gateway.get_or_404('conditionCodes', condition_code_id)

    return {
        'role_id': role_id,
        'resource_id': resource_id,
        'action_id': action_id,
        'has_permission': bool_from_payload(data, 'has_permission'),
        'has_condition': has_condition,
        'condition_code_id': condition_code_id if has_condition else None,
    }


def _attributes_from_payload(data):
    """Les attributs arrivent en objet JSON ou en texte JSON (zone de saisie)"""
    attributes = data.get('attributes', {})
    if isinstance(attributes, str):
        try:
            attributes = json.loads(attributes) if attributes.strip() else {}
        except ValueError:
            raise InvalidRequestError("Invalid JSON in attributes field", 'INVALID_ATTRIBUTES')
    if not isinstance(attributes, dict):
        raise InvalidRequestError("Attributes must be a JSON object", 'INVALID_ATTRIBUTES')
    return attributes


# ===================== PERMISSIONS =====================

@permission_bp.route('', methods=['GET'])
@admin_required
def list_permissions():
    gateway = RecordGateway()
    role_id = request.args.get('role_id')
    permissions = gateway.list_all('permissions', {'role_id': role_id} if role_id else None, sort=None)

    roles = {r.id: r.name for r in gateway.list_all('roles')}
    resources = {r.id: r.name for r in gateway.list_all('resources')}
    actions = {a.id: a.name for a in gateway.list_all('actions')}
    codes = {c.id: c.name for c in gateway.list_all('conditionCodes')}

    result = []
    for p in permissions:
        result.append({
            **p.to_dict(),
            'role_name': roles.get(p.role_id, 'Unknown Role'),
            'resource_name': resources.get(p.resource_id, 'Unknown Resource'),
            'action_name': actions.get(p.action_id, 'Unknown Action'),
            'condition_code_name': codes.get(p.condition_code_id) if p.condition_code_id else None,
        })

    return jsonify({'permissions': result}), 200


@permission_bp.route('', methods=['POST'])
@admin_required
def create_permission():
    data = json_payload()
    gateway = RecordGateway()
    fields = _permission_data(gateway, data)

    existing = gateway.get_one('permissions', {
        'role_id': fields['role_id'],
        'resource_id': fields['resource_id'],
        'action_id': fields['action_id'],
    })
    if existing is not None:
        raise DuplicatePermissionError()

    permission = gateway.create('permissions', fields)
    logger.info(f"Permission created: {permission.id}")
    return jsonify(permission.to_dict()), 201


@permission_bp.route('/<permission_id>', methods=['GET'])
@admin_required
def get_permission(permission_id):
    permission = RecordGateway().get_or_404('permissions', permission_id)
    return jsonify(permission.to_dict()), 200


@permission_bp.route('/<permission_id>', methods=['PUT'])
@admin_required
def update_permission(permission_id):
    data = json_payload()
    gateway = RecordGateway()
    current = gateway.get_or_404('permissions', permission_id)

    merged = {**current.to_dict(), **data}
    fields = _permission_data(gateway, merged)

    existing = gateway.get_one('permissions', {
        'role_id': fields['role_id'],
        'resource_id': fields['resource_id'],
        'action_id': fields['action_id'],
    })
    if existing is not None and existing.id != permission_id:
        raise DuplicatePermissionError()

    permission = gateway.update('permissions', permission_id, fields)
    return jsonify(permission.to_dict()), 200


@permission_bp.route('/<permission_id>', methods=['DELETE'])
@admin_required
def delete_permission(permission_id):
    RecordGateway().delete('permissions', permission_id)
    return jsonify({'msg': 'Permission deleted successfully'}), 200


# ===================== TEST =====================

@permission_bp.route('/test', methods=['POST'])
@admin_required
def test_permission():
    """
    Évalue si un rôle peut effectuer une action sur une ressource.

    Body: ``role_id``, ``resource_id``, ``action_id`` and ``attributes``
    (object or JSON text). Returns the decision with its explanation.
    """
    try:
        data = json_payload()
        attributes = _attributes_from_payload(data)
        resolver = PermissionResolver(
            RecordGateway(),
            max_steps=current_app.config['CONDITION_MAX_STEPS'],
            max_length=current_app.config['CONDITION_MAX_LENGTH'],
        )
        decision = resolver.resolve(
            data.get('role_id'), data.get('resource_id'), data.get('action_id'), attributes)
    except PermissionServiceError as e:
        return jsonify({'error': e.message, 'code': e.code}), e.status_code

    report = build_report(decision)
    log_permission_decision(get_jwt_identity(), decision.to_dict(), report.explanation)

    return jsonify({**decision.to_dict(), **report.to_dict()}), 200
