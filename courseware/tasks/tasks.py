import logging

from courseware import celery_app
from courseware.services import get_services
from courseware.services.render_queue import RENDER_TASK_NAME, RenderJob

LOGGER = logging.getLogger(__name__)


@celery_app.task(bind=True, name=RENDER_TASK_NAME, acks_late=True, reject_on_worker_lost=True)
def render_document_task(self, payload):
    """Background task that converts, watermarks and publishes one secure document"""
    job = RenderJob.from_payload(payload)
    job_id = self.request.id or 'unknown'
    outcome = get_services().worker.process(job, job_id=job_id)
    return outcome.to_dict()
