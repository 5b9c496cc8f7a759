from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    level = logging.getLevelName(str(app.config['LOG_LEVEL']).upper())
    if isinstance(level, int):
        app.logger.setLevel(level)
        logging.getLogger('dfs_portal').setLevel(level)

    # Portal settings record (read via dfs_portal.config.settings.get_settings)
    from .config.settings import load_settings, EXTENSION_KEY
    app.extensions[EXTENSION_KEY] = load_settings(app.config)

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    # register mappers before first use
    from .models import authz, user_profile, audit  # noqa: F401

    jwt.init_app(app)

    from .routes.iam import iam_bp
    from .routes.profiles import profiles_bp
    from .routes.validation import validation_bp
    from .routes.settings import settings_bp
    app.register_blueprint(iam_bp, url_prefix='/iam')
    app.register_blueprint(profiles_bp, url_prefix='/profiles')
    app.register_blueprint(validation_bp, url_prefix='/admin/validation')
    app.register_blueprint(settings_bp, url_prefix='/admin/settings')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                }
            }
            errors = getattr(e, 'errors', None)
            if errors:
                payload['error']['errors'] = errors
            code = getattr(e, 'error_code', None)
            if code:
                payload['error']['code'] = code
            return payload, e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error'
            }
        }, 500

    return app


def get_db():
    return SessionLocal()
