import logging

from flask_apscheduler import APScheduler

LOGGER = logging.getLogger(__name__)

# Create global scheduler instance
scheduler = APScheduler()


def init_scheduler(app):
    """Initialize the scheduler with Flask app"""
    scheduler.init_app(app)
    if not scheduler.running:
        scheduler.start()

    scheduler.add_job(
        id='sweep_upload_scratch',
        func=lambda: sweep_upload_scratch_with_context(app),
        trigger='interval',
        seconds=app.config['UPLOAD_SWEEP_INTERVAL'],
        replace_existing=True
    )

    LOGGER.info("Upload scratch sweeper scheduled every %ss", app.config['UPLOAD_SWEEP_INTERVAL'])


def sweep_upload_scratch_with_context(app):
    """Sweep scratch storage with proper app context"""
    with app.app_context():
        return sweep_upload_scratch(app)


def sweep_upload_scratch(app):
    """Release scratch dirs of expired or abandoned upload sessions"""
    from courseware.services import get_services
    from courseware.services.scratch import sweep_scratch

    try:
        removed = sweep_scratch(
            app.config['UPLOAD_SCRATCH_DIR'],
            get_services().session_store,
            app.config['UPLOAD_SESSION_TTL'],
        )
    except Exception:
        LOGGER.exception("Error while sweeping upload scratch storage")
        return []
    if removed:
        LOGGER.info("Removed %d stale upload scratch dirs", len(removed))
    return removed
