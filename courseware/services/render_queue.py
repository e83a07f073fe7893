"""Durable render job channel between the HTTP ingestion path and the workers."""

import logging
from dataclasses import asdict, dataclass

LOGGER = logging.getLogger(__name__)

RENDER_JOB_NAME = 'watermark-pdf'
RENDER_TASK_NAME = 'courseware.tasks.tasks.render_document_task'

TASKS_BY_JOB = {
    RENDER_JOB_NAME: RENDER_TASK_NAME,
}


@dataclass
class RenderJob:
    source_key: str
    source_mime: str
    original_name: str
    asset_id: str
    brand_label: str = None

    def to_payload(self):
        return asdict(self)

    @classmethod
    def from_payload(cls, payload):
        return cls(
            source_key=payload['source_key'],
            source_mime=payload['source_mime'],
            original_name=payload.get('original_name') or '',
            asset_id=payload['asset_id'],
            brand_label=payload.get('brand_label'),
        )


class CeleryRenderQueue:
    """Enqueues jobs by task name on a Redis-backed Celery queue.

    Workers run with late acknowledgement, so a job interrupted by a worker
    crash is delivered again; the render task tolerates redelivery.
    """

    def __init__(self, celery, queue_name):
        self.celery = celery
        self.queue_name = queue_name

    def enqueue(self, job_name, payload):
        task_name = TASKS_BY_JOB.get(job_name)
        if task_name is None:
            raise ValueError(f"Unknown job {job_name}")
        result = self.celery.send_task(task_name, kwargs={'payload': payload}, queue=self.queue_name)
        LOGGER.info("Queued %s job %s for asset %s", job_name, result.id, payload.get('asset_id'))
        return result.id
