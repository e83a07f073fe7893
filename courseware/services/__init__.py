# Services package
from dataclasses import dataclass

import redis
from flask import current_app

from courseware import celery_app
from .assembler import Assembler
from .chunk_receiver import ChunkReceiver
from .conversion import LibreOfficeConverter
from .ingestion import IngestionRouter
from .render_queue import CeleryRenderQueue
from .render_worker import RenderWorker
from .session_store import SessionStore
from .storage import create_storage


@dataclass
class UploadServices:
    storage: object
    session_store: SessionStore
    render_queue: object
    converter: object
    chunk_receiver: ChunkReceiver
    assembler: Assembler
    router: IngestionRouter
    worker: RenderWorker


def init_services(app, redis_client=None, storage=None, render_queue=None, converter=None):
    """Wire the upload pipeline; collaborators can be injected for tests"""
    cfg = app.config
    if redis_client is None:
        redis_client = redis.Redis.from_url(cfg['REDIS_URL'])
    if storage is None:
        storage = create_storage(cfg)
    if render_queue is None:
        render_queue = CeleryRenderQueue(celery_app, cfg['RENDER_QUEUE_NAME'])
    if converter is None:
        converter = LibreOfficeConverter(cfg['SOFFICE_BINARY'], cfg['CONVERT_TIMEOUT'])

    session_store = SessionStore(redis_client, cfg['UPLOAD_SESSION_TTL'])
    router = IngestionRouter(storage, render_queue, brand_label=cfg['WATERMARK_BRAND'])
    services = UploadServices(
        storage=storage,
        session_store=session_store,
        render_queue=render_queue,
        converter=converter,
        chunk_receiver=ChunkReceiver(
            session_store,
            cfg['UPLOAD_SCRATCH_DIR'],
            cfg['UPLOAD_CHUNK_SIZE'],
            cfg['UPLOAD_MAX_FILE_SIZE'],
        ),
        assembler=Assembler(session_store, router),
        router=router,
        worker=RenderWorker(storage, converter, cfg['WATERMARK_BRAND'], cfg['WATERMARK_CONTACT']),
    )
    app.extensions['courseware'] = services
    return services


def get_services():
    return current_app.extensions['courseware']
