from celery import Celery, Task
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS
from flask_caching import Cache
from flask_jwt_extended import JWTManager
from config import config


class ContextTask(Task):
    """Celery task that runs inside the Flask application context."""
    abstract = True

    def __call__(self, *args, **kwargs):
        flask_app = getattr(self.app, 'flask_app', None)
        if flask_app is None:
            return super().__call__(*args, **kwargs)
        with flask_app.app_context():
            return super().__call__(*args, **kwargs)


# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
cache = Cache()
celery_app = Celery('courseware', task_cls=ContextTask)


def init_celery(app):
    """Bind the Celery application to the Flask app configuration"""
    celery_app.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        result_backend=app.config['CELERY_RESULT_BACKEND'],
        task_default_queue=app.config['RENDER_QUEUE_NAME'],
        task_serializer='json',
        result_serializer='json',
        accept_content=['json'],
        # At-least-once delivery: ack only after the task body returns
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        worker_prefetch_multiplier=1,
    )
    celery_app.flask_app = app
    app.extensions['celery'] = celery_app
    return celery_app


def create_app(config_name='default', config_overrides=None, **services):
    """Application factory function"""
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])
    if config_overrides:
        app.config.update(config_overrides)

    from courseware.logging_utils import configure_logging
    configure_logging(app.config['LOG_LEVEL'])

    from courseware.services.validation import validate_config
    validate_config(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    cache.init_app(app)
    CORS(app)
    init_celery(app)

    from courseware.services import init_services
    init_services(app, **services)

    # Register blueprints
    from courseware.routes.uploads import uploads_bp
    from courseware.routes.documents import documents_bp
    app.register_blueprint(uploads_bp, url_prefix='/api')
    app.register_blueprint(documents_bp, url_prefix='/api')

    from courseware.cli import documents_cli
    app.cli.add_command(documents_cli)

    # Make sure the render task is registered with the worker
    import courseware.tasks.tasks  # noqa: F401

    if app.config.get('UPLOAD_SWEEPER_ENABLED'):
        with app.app_context():
            from courseware.services.scheduler import init_scheduler
            init_scheduler(app)
    return app
