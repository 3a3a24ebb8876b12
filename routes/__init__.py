# routes/__init__.py
from .auth_routes import auth_bp
from .resource_routes import resource_bp
from .action_routes import action_bp
from .role_routes import role_bp
from .condition_code_routes import condition_code_bp
from .permission_routes import permission_bp
from .dashboard_routes import dashboard_bp


def register_blueprints(app):
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(resource_bp, url_prefix="/resources")
    app.register_blueprint(action_bp, url_prefix="/actions")
    app.register_blueprint(role_bp, url_prefix="/roles")
    app.register_blueprint(condition_code_bp, url_prefix="/condition-codes")
    app.register_blueprint(permission_bp, url_prefix="/permissions")
    app.register_blueprint(dashboard_bp, url_prefix="/dashboard")
