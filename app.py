from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate
from datetime import datetime
import logging
import os

from config import (
    SQLALCHEMY_DATABASE_URI,
    SQLALCHEMY_TRACK_MODIFICATIONS,
    SECRET_KEY,
    LOG_LEVEL,
    ESI_SETTINGS_FILE,
)
from models import db
from services.settings_store import JsonFileSettingsStore

logger = logging.getLogger(__name__)


def create_app(register_blueprints: bool = True, test_config: dict = None):
    app = Flask(__name__)

    logging.basicConfig(
        level=getattr(logging, str(LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Disable strict slashes to avoid redirect issues with CORS
    app.url_map.strict_slashes = False

    allowed_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Add additional origins from environment variable if set
    additional_origins = os.getenv("ADDITIONAL_CORS_ORIGINS", "")
    if additional_origins:
        allowed_origins.extend([origin.strip() for origin in additional_origins.split(",") if origin.strip()])

    CORS(app,
         origins=allowed_origins,
         methods=["GET", "POST", "OPTIONS"],
         allow_headers=[
             "Content-Type",
             "Authorization",
             "X-Requested-With",
             "Accept",
             "Origin",
             "X-CSRF-Token",
         ],
         supports_credentials=True,
         expose_headers=["Content-Type", "Authorization", "Content-Disposition"],
         max_age=86400)

    app.config["SQLALCHEMY_DATABASE_URI"] = SQLALCHEMY_DATABASE_URI
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = SQLALCHEMY_TRACK_MODIFICATIONS
    app.config["SECRET_KEY"] = SECRET_KEY
    app.config["ESI_SETTINGS_FILE"] = ESI_SETTINGS_FILE

    if test_config:
        app.config.update(test_config)

    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise ValueError("Database configuration missing! Please set DB_HOST, DB_PASSWORD, etc. in your .env file")

    db.init_app(app)
    Migrate(app, db)

    # Settings store is injectable; tests swap it through test_config
    app.extensions["esi_settings_store"] = app.config.get("ESI_SETTINGS_STORE") or JsonFileSettingsStore(
        app.config["ESI_SETTINGS_FILE"]
    )

    if register_blueprints:
        from routes.auth import auth_bp
        from routes.esi import esi_bp

        app.register_blueprint(auth_bp, url_prefix="/api/auth")
        app.register_blueprint(esi_bp, url_prefix="/api/esi")

    @app.route("/")
    def home():
        return {
            "message": "ESI Payroll API",
            "version": "1.0",
            "status": "running",
            "endpoints": {
                "auth": "/api/auth",
                "esi": "/api/esi",
            }
        }

    @app.route("/health")
    def health_check():
        return {"status": "healthy", "timestamp": datetime.now().isoformat()}

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"success": False, "message": "Resource not found"}), 404

    logger.info("Application created (blueprints registered: %s)", register_blueprints)
    return app


# Create the WSGI app when importing this module (needed for gunicorn),
# but allow scripts and tests to disable this by setting CREATE_APP_ON_IMPORT=0
if os.getenv("CREATE_APP_ON_IMPORT", "1") not in ("0", "false", "False"):
    app = create_app()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_ENV") != "production"

    # Ensure app exists even if CREATE_APP_ON_IMPORT disabled
    try:
        app
    except NameError:
        app = create_app()

    app.run(host="0.0.0.0", port=port, debug=debug)
