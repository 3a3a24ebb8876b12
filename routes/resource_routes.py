# routes/resource_routes.py

import logging
from flask import Blueprint, jsonify
from services.record_gateway import RecordGateway
from utils.payload import json_payload, required_text
from utils.security import admin_required

logger = logging.getLogger(__name__)

resource_bp = Blueprint('resource', __name__)


@resource_bp.route('', methods=['GET'])
@admin_required
def list_resources():
    resources = RecordGateway().list_all('resources')
    return jsonify({'resources': [r.to_dict() for r in resources]}), 200


@resource_bp.route('', methods=['POST'])
@admin_required
def create_resource():
    data = json_payload()
    name = required_text(data, 'name', 'Resource name')
    resource = RecordGateway().create('resources', {'name': name})
    logger.info(f"Resource created: {resource.name} ({resource.id})")
    return jsonify(resource.to_dict()), 201


@resource_bp.route('/<resource_id>', methods=['GET'])
@admin_required
def get_resource(resource_id):
    gateway = RecordGateway()
    resource = gateway.get_or_404('resources', resource_id)
    actions = gateway.list_all('actions', {'resource_id': resource_id})
    return jsonify({**resource.to_dict(), 'actions': [a.to_dict() for a in actions]}), 200


@resource_bp.route('/<resource_id>', methods=['PUT'])
@admin_required
def update_resource(resource_id):
    data = json_payload()
    name = required_text(data, 'name', 'Resource name')
    resource = RecordGateway().update('resources', resource_id, {'name': name})
    return jsonify(resource.to_dict()), 200


@resource_bp.route('/<resource_id>', methods=['DELETE'])
@admin_required
def delete_resource(resource_id):
    """Supprime la ressource, ses actions et les permissions associées"""
    deleted = RecordGateway().delete('resources', resource_id)
    return jsonify({'msg': 'Resource and associated items deleted successfully', 'deleted': deleted}), 200
