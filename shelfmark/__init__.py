from flask import Flask, jsonify

from shelfmark.api import api_bp
from shelfmark.config import Config
from shelfmark.errors import ShelfmarkError
from shelfmark.extensions import db, migrate


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ShelfmarkError)
    def handle_shelfmark_error(exc: ShelfmarkError):
        return jsonify({"error": exc.message, "code": exc.code}), exc.status_code


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)

    app.register_blueprint(api_bp)
    register_error_handlers(app)

    @app.cli.command("init-db")
    def init_db_command():
        db.create_all()
        print("Initialized Shelfmark database.")

    with app.app_context():
        db.create_all()

    return app
