from flask import Flask

from . import config
from .extensions import init_extensions
from .services import db_service


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, template_folder="../../templates", static_folder="../../static")
    app.config.from_mapping(config.as_mapping())
    if test_config:
        app.config.update(test_config)
    app.secret_key = app.config["SECRET_KEY"]

    init_extensions(app)
    db_service.init_app(app)

    from .routes.auth import bp as auth_bp
    from .routes.dashboard import bp as dashboard_bp
    from .routes.admin import bp as admin_bp
    from .routes.academic import bp as academic_bp
    from .routes.campus import bp as campus_bp
    from .routes.files import bp as files_bp
    from .routes.reports import bp as reports_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(academic_bp)
    app.register_blueprint(campus_bp)
    app.register_blueprint(files_bp)
    app.register_blueprint(reports_bp)

    return app
