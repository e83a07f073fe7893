"""Celery worker entry point: ``celery -A worker.celery_app worker``."""
import logging
import os

from courseware import create_app

LOGGER = logging.getLogger(__name__)

flask_app = create_app(os.getenv('FLASK_CONFIG', 'default'),
                       config_overrides={'UPLOAD_SWEEPER_ENABLED': False})
celery_app = flask_app.extensions['celery']

_soffice_version = flask_app.extensions['courseware'].converter.version()
if _soffice_version:
    LOGGER.info("LibreOffice check: detected (%s)", _soffice_version)
else:
    LOGGER.warning("LibreOffice check: '%s' could not be run, non-PDF documents will fail",
                   flask_app.config['SOFFICE_BINARY'])
