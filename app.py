import logging

from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv

from extensions import db, migrate, jwt
from config import Config
from routes import register_blueprints
from services.exceptions import PermissionServiceError
from utils.audit_logger import configure_audit_logger

load_dotenv()  # charge les variables d'environnement depuis .env

logger = logging.getLogger(__name__)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    configure_audit_logger(enabled=app.config.get("AUDIT_LOG_ENABLED", True))

    CORS(app,
         origins=app.config["CORS_ORIGINS"],
         allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
         supports_credentials=True)

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)

    # Register blueprints
    register_blueprints(app)

    @app.errorhandler(PermissionServiceError)
    def handle_service_error(error):
        logger.warning(f"{error.code}: {error.message}")
        return jsonify({"error": error.message, "code": error.code}), error.status_code

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, port=5001)
