import logging
from flask import Flask, jsonify
from .extensions import db, jwt, cors, migrate
from .config import Config

def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    config_object = config_object or Config
    app.config.from_object(config_object)
    config_object.init_app(app)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/*": {"origins": "*"}})
    migrate.init_app(app, db)

    # Register blueprints
    from .auth import bp as auth_bp; app.register_blueprint(auth_bp)
    from .auth import admin_bp as users_admin_bp; app.register_blueprint(users_admin_bp)
    from .menu import bp as menu_bp; app.register_blueprint(menu_bp)
    from .menu import admin_bp as menu_admin_bp; app.register_blueprint(menu_admin_bp)
    from .branch import bp as branch_bp; app.register_blueprint(branch_bp)
    from .promo import bp as promo_bp; app.register_blueprint(promo_bp)
    from .order import bp as order_bp; app.register_blueprint(order_bp)
    from .setting import bp as setting_bp; app.register_blueprint(setting_bp)
    from .dashboard import bp as dashboard_bp; app.register_blueprint(dashboard_bp)
    from .message import bp as message_bp; app.register_blueprint(message_bp)

    register_error_handlers(app)

    from .cli import register_cli
    register_cli(app)

    @app.get("/")
    def health():
        return jsonify(ok=True, msg="API running")

    with app.app_context():
        from . import model  # noqa: F401  make sure every table is known
        db.create_all()
        app.logger.debug("blueprints: %s", sorted(app.blueprints.keys()))

    return app


def register_error_handlers(app):
    from .services.pricing import PricingError
    from .utils.api import err

    @app.errorhandler(PricingError)
    def handle_pricing_error(e):
        app.logger.info("pricing rejected: %s (%s)", e.kind, e.message)
        return err(e.message, e.status_code, e.as_dict())

    @app.errorhandler(ValueError)
    def handle_value_error(e):
        # half-applied payloads must not reach a later commit
        db.session.rollback()
        return err(str(e), 422)
