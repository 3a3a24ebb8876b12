# routes/condition_code_routes.py

import logging
from flask import Blueprint, current_app, jsonify
from services.condition_evaluator import validate_condition
from services.exceptions import InvalidRequestError
from services.record_gateway import RecordGateway
from utils.payload import json_payload, optional_text, required_text
from utils.security import admin_required

logger = logging.getLogger(__name__)

condition_code_bp = Blueprint('condition_code', __name__)


def _validation(expression):
    valid, message = validate_condition(
        expression, max_length=current_app.config['CONDITION_MAX_LENGTH'])
    return {'valid': valid, 'message': message}


def _expression_from_payload(data):
    expression = data.get('expression', '')
    if not isinstance(expression, str):
        raise InvalidRequestError("expression must be a string")
    return expression


@condition_code_bp.route('', methods=['GET'])
@admin_required
def list_condition_codes():
    codes = RecordGateway().list_all('conditionCodes')
    return jsonify({'condition_codes': [c.to_dict() for c in codes]}), 200


@condition_code_bp.route('', methods=['POST'])
@admin_required
def create_condition_code():
    """
    Crée un code de condition.

    Invalid expressions are stored as written (they evaluate to false);
    the response carries the validation result so the UI can warn.
    """
    data = json_payload()
    expression = _expression_from_payload(data)
    code = RecordGateway().create('conditionCodes', {
        'name': required_text(data, 'name', 'Condition name'),
        'description': optional_text(data, 'description'),
        'expression': expression,
    })
    logger.info(f"Condition code created: {code.name} ({code.id})")
    return jsonify({**code.to_dict(), 'validation': _validation(expression)}), 201


@condition_code_bp.route('/validate', methods=['POST'])
@admin_required
def validate_condition_code():
    data = json_payload()
    return jsonify(_validation(_expression_from_payload(data))), 200


@condition_code_bp.route('/<code_id>', methods=['GET'])
@admin_required
def get_condition_code(code_id):
    code = RecordGateway().get_or_404('conditionCodes', code_id)
    return jsonify({**code.to_dict(), 'validation': _validation(code.expression)}), 200


@condition_code_bp.route('/<code_id>', methods=['PUT'])
@admin_required
def update_condition_code(code_id):
    data = json_payload()
    changes = {'name': required_text(data, 'name', 'Condition name')}
    if 'description' in data:
        changes['description'] = optional_text(data, 'description')
    if 'expression' in data:
        changes['expression'] = _expression_from_payload(data)

    code = RecordGateway().update('conditionCodes', code_id, changes)
    return jsonify({**code.to_dict(), 'validation': _validation(code.expression)}), 200


@condition_code_bp.route('/<code_id>', methods=['DELETE'])
@admin_required
def delete_condition_code(code_id):
    """Les permissions qui l'utilisaient restent, sans condition exploitable"""
    deleted = RecordGateway().delete('conditionCodes', code_id)
    return jsonify({'msg': 'Condition code deleted successfully', 'deleted': deleted}), 200
