# routes/action_routes.py

import logging
from flask import Blueprint, request, jsonify
from models.action import STANDARD_ACTIONS
from services.exceptions import InvalidRequestError
from services.record_gateway import RecordGateway
from utils.payload import json_payload, required_text
from utils.security import admin_required

logger = logging.getLogger(__name__)

action_bp = Blueprint('action', __name__)

STANDARD_ACTION_IDS = [a['id'] for a in STANDARD_ACTIONS]


def _names_from_payload(data):
    """Collecte les noms d'actions (standards + personnalisées), sans doublons"""
    standard = data.get('standard_actions') or []
    custom = data.get('custom_actions') or []
    if not isinstance(standard, list) or not isinstance(custom, list):
        raise InvalidRequestError("standard_actions and custom_actions must be lists")

    unknown = [name for name in standard if name not in STANDARD_ACTION_IDS]
    if unknown:
        raise InvalidRequestError(f"Unknown standard actions: {', '.join(map(str, unknown))}")

    names = list(standard)
    for name in custom:
        if not isinstance(name, str) or not name.strip():
            raise InvalidRequestError("Custom action names must be non-empty strings")
        names.append(name.strip())

    if data.get('name') is not None:
        names.append(required_text(data, 'name', 'Action name'))

    return list(dict.fromkeys(names))


@action_bp.route('/standard', methods=['GET'])
@admin_required
def list_standard_actions():
    return jsonify({'standard_actions': STANDARD_ACTIONS}), 200


@action_bp.route('', methods=['GET'])
@admin_required
def list_actions():
    gateway = RecordGateway()
    resource_id = request.args.get('resource_id')
    filters = {'resource_id': resource_id} if resource_id else None
    actions = gateway.list_all('actions', filters)
    resource_names = {r.id: r.name for r in gateway.list_all('resources')}

    return jsonify({'actions': [
        {**a.to_dict(), 'resource_name': resource_names.get(a.resource_id, 'Unknown Resource')}
        for a in actions
    ]}), 200


@action_bp.route('', methods=['POST'])
@admin_required
def create_actions():
    """
    Crée une ou plusieurs actions pour une ressource.

    Body: ``resource_id`` plus any of ``standard_actions`` (ids from
    STANDARD_ACTIONS), ``custom_actions`` (names) or a single ``name``.
    """
    data = json_payload()
    resource_id = required_text(data, 'resource_id', 'Resource')
    gateway = RecordGateway()
    gateway.get_or_404('resources', resource_id)

    names = _names_from_payload(data)
    if not names:
        raise InvalidRequestError("Please select at least one action or add a custom action")

    actions = gateway.create_many('actions', [
        {'name': name, 'resource_id': resource_id} for name in names
    ])
    logger.info(f"{len(actions)} action(s) created for resource {resource_id}")
    return jsonify({
        'actions': [a.to_dict() for a in actions],
        'count': len(actions),
        'msg': f"{len(actions)} action(s) created successfully"
    }), 201


@action_bp.route('/<action_id>', methods=['GET'])
@admin_required
def get_action(action_id):
    action = RecordGateway().get_or_404('actions', action_id)
    return jsonify(action.to_dict()), 200


@action_bp.route('/<action_id>', methods=['PUT'])
@admin_required
def update_action(action_id):
    # Une action reste attachée à sa ressource; seul le nom change
    data = json_payload()
    action = RecordGateway().update('actions', action_id, {'name': required_text(data, 'name', 'Action name')})
    return jsonify(action.to_dict()), 200


@action_bp.route('/<action_id>', methods=['DELETE'])
@admin_required
def delete_action(action_id):
    deleted = RecordGateway().delete('actions', action_id)
    return jsonify({'msg': 'Action deleted successfully', 'deleted': deleted}), 200
