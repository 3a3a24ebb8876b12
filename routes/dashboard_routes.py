# routes/dashboard_routes.py

from flask import Blueprint, jsonify
from services.record_gateway import RecordGateway
from utils.security import admin_required

dashboard_bp = Blueprint('dashboard', __name__)


@dashboard_bp.route('/stats', methods=['GET'])
@admin_required
def get_stats():
    """Nombre d'enregistrements par collection"""
    gateway = RecordGateway()
    return jsonify({
        'resources': gateway.count('resources'),
        'actions': gateway.count('actions'),
        'roles': gateway.count('roles'),
        'condition_codes': gateway.count('conditionCodes'),
        'permissions': gateway.count('permissions'),
    }), 200
