"""Routing of assembled documents to direct publish or the render pipeline."""

import logging
import uuid
from dataclasses import dataclass

from werkzeug.utils import secure_filename

from courseware import db
from courseware.errors import InvalidRequest, StorageError
from courseware.models import DocumentAsset
from courseware.models.asset import rendered_title
from courseware.services.render_queue import RENDER_JOB_NAME, RenderJob
from courseware.utils.documents import delete_part_documents_cache
from courseware.utils.mime import extension_for, is_canonical, is_supported_document

LOGGER = logging.getLogger(__name__)


@dataclass
class IngestResult:
    asset: DocumentAsset
    queued: bool
    job_id: str = None

    @property
    def storage_key(self):
        return self.asset.storage_key

    def to_dict(self):
        if self.queued:
            return {'status': 'QUEUED', 'id': self.asset.id}
        return self.asset.to_dict()


def staging_key(asset_id, mime_type, filename):
    return f"/staging/pdf-input/{asset_id}/source{extension_for(mime_type, filename)}"


def public_key(part_id, asset_id, filename):
    return f"/public/{part_id}/{asset_id}/{secure_filename(filename) or 'document'}"


class IngestionRouter:
    """Decides per document whether it is published directly or rendered.

    Only PDFs explicitly uploaded with ``secure=False`` skip the queue. Any
    other format is forced onto the secure path because it must be normalized
    before it can be distributed.
    """

    def __init__(self, storage, render_queue, brand_label=None):
        self.storage = storage
        self.render_queue = render_queue
        self.brand_label = brand_label

    @staticmethod
    def requires_secure_path(mime_type, secure):
        requested = True if secure is None else bool(secure)
        return requested or not is_canonical(mime_type)

    def ingest(self, part, source, filename, mime_type, secure=None, title=None):
        if not is_supported_document(mime_type):
            raise InvalidRequest('Unsupported file type. Allowed: PDF, PPTX, PPT, DOC, DOCX, TXT')

        if self.requires_secure_path(mime_type, secure):
            if secure is False:
                LOGGER.warning("Forcing secure conversion for non-PDF file %s (%s)", filename, mime_type)
            return self._ingest_secure(part, source, filename, mime_type, title)
        return self._publish_direct(part, source, filename, mime_type, title)

    def _publish_direct(self, part, source, filename, mime_type, title):
        asset_id = str(uuid.uuid4())
        key = public_key(part.id, asset_id, filename)
        self.storage.upload_public(source, key, mime_type)

        asset = DocumentAsset.published(
            part_id=part.id,
            title=title or filename,
            storage_key=key,
            source_mime=mime_type,
            order=DocumentAsset.next_order(part.id),
            id=asset_id,
        )
        try:
            db.session.add(asset)
            db.session.commit()
        except Exception:
            db.session.rollback()
            self._discard_stored(key)
            raise
        delete_part_documents_cache(part.id)

        LOGGER.info("Published document %s directly at %s", asset_id, key)
        return IngestResult(asset=asset, queued=False)

    def _ingest_secure(self, part, source, filename, mime_type, title):
        asset_id = str(uuid.uuid4())
        source_key = staging_key(asset_id, mime_type, filename)
        self.storage.upload_private(source, source_key, mime_type)
        LOGGER.info("Staged secure source file. asset_id=%s source_key=%s", asset_id, source_key)

        asset = DocumentAsset.processing(
            part_id=part.id,
            title=title or filename,
            display_name=rendered_title(filename, asset_id),
            source_key=source_key,
            source_mime=mime_type,
            order=DocumentAsset.next_order(part.id),
            id=asset_id,
        )
        try:
            db.session.add(asset)
            db.session.commit()
        except Exception:
            db.session.rollback()
            self._discard_stored(source_key)
            raise
        delete_part_documents_cache(part.id)

        job = RenderJob(
            source_key=source_key,
            source_mime=mime_type,
            original_name=filename,
            asset_id=asset_id,
            brand_label=self.brand_label,
        )
        try:
            job_id = self.render_queue.enqueue(RENDER_JOB_NAME, job.to_payload())
        except Exception:
            # No job will ever pick this asset up; the caller retries from scratch
            LOGGER.exception("Failed to enqueue render job for asset %s", asset_id)
            self._discard_asset(asset, source_key)
            raise

        LOGGER.info("Queued secure document job. asset_id=%s job_id=%s source_key=%s",
                    asset_id, job_id, source_key)
        return IngestResult(asset=asset, queued=True, job_id=job_id)

    def _discard_asset(self, asset, source_key):
        try:
            db.session.delete(asset)
            db.session.commit()
        except Exception:
            db.session.rollback()
            # Keep the staged source so the leftover row can still be replayed
            LOGGER.exception("Failed to remove asset %s after enqueue failure", asset.id)
            return
        delete_part_documents_cache(asset.part_id)
        self._discard_stored(source_key)

    def _discard_stored(self, key):
        try:
            self.storage.delete(key)
        except StorageError:
            LOGGER.warning("Failed to delete stored object %s", key)
