"""Render worker: normalize, watermark and publish secure documents."""

import logging
from dataclasses import dataclass

from courseware import db
from courseware.errors import ConvertFailed, DbUpdateFailed, NotFound, SourceNotFound, UploadFailed
from courseware.models import DocumentAsset, RenderStatus
from courseware.models.asset import rendered_title
from courseware.processing import watermark_pdf
from courseware.utils.documents import delete_part_documents_cache
from courseware.utils.mime import PDF_MIME, extension_for

LOGGER = logging.getLogger(__name__)


def secured_key(asset_id):
    """Deterministic private path, so a re-run overwrites instead of duplicating"""
    return f"/secured/{asset_id}.pdf"


def log_worker_error(category, job_id, asset_id, source_key, error):
    LOGGER.error("[%s] job_id=%s asset_id=%s source_key=%s error=%s",
                 category, job_id, asset_id, source_key, error)


@dataclass
class RenderOutcome:
    asset_id: str
    status: str
    storage_key: str
    page_count: int
    skipped: bool = False

    def to_dict(self):
        return {
            'asset_id': self.asset_id,
            'status': self.status,
            'storage_key': self.storage_key,
            'page_count': self.page_count,
            'skipped': self.skipped,
        }


class RenderWorker:
    """Runs one render job: PROCESSING -> COMPLETED, or FAILED on any error.

    There is no retry here. A failure marks the asset FAILED and re-raises so
    the queue records it; recovery is an operator replay. Redelivery of a job
    whose asset is already COMPLETED is a no-op.
    """

    def __init__(self, storage, converter, brand, contact=''):
        self.storage = storage
        self.converter = converter
        self.brand = brand
        self.contact = contact

    def process(self, job, job_id='unknown'):
        LOGGER.info("Processing job %s for asset %s source_key=%s", job_id, job.asset_id, job.source_key)
        try:
            return self._run(job, job_id)
        except Exception:
            LOGGER.exception("Render job %s failed. asset_id=%s source_key=%s",
                             job_id, job.asset_id, job.source_key)
            self._mark_failed(job, job_id)
            raise

    def _run(self, job, job_id):
        # 1. Confirm the asset is PROCESSING
        asset = db.session.get(DocumentAsset, job.asset_id)
        if asset is None:
            raise NotFound(f"Asset {job.asset_id} not found")
        if asset.is_completed:
            LOGGER.info("Asset %s already completed, skipping redelivered job %s", asset.id, job_id)
            return RenderOutcome(asset.id, asset.render_status.name, asset.storage_key,
                                 asset.page_count, skipped=True)
        if asset.render_status != RenderStatus.PROCESSING:
            asset.mark_processing()
            db.session.commit()
            delete_part_documents_cache(asset.part_id)

        # 2. Download the staged source
        try:
            source_bytes = self.storage.download(job.source_key)
        except Exception as error:
            log_worker_error(SourceNotFound.category, job_id, asset.id, job.source_key, error)
            raise SourceNotFound(str(error)) from error

        # 3. Normalize to PDF
        ext = extension_for(job.source_mime, job.original_name)
        if ext == '.pdf':
            pdf_bytes = source_bytes
        else:
            LOGGER.info("Converting %s to PDF for asset %s", ext, asset.id)
            try:
                pdf_bytes = self.converter.convert(source_bytes, 'pdf', ext)
            except Exception as error:
                log_worker_error(ConvertFailed.category, job_id, asset.id, job.source_key, error)
                raise ConvertFailed(str(error)) from error

        # 4-5. Watermark every page and serialize
        brand = job.brand_label or self.brand
        result = watermark_pdf(pdf_bytes, brand, self.contact)
        LOGGER.info("Watermarked %d pages for asset %s", result.page_count, asset.id)

        # 6. Upload to private storage
        destination = secured_key(asset.id)
        try:
            self.storage.upload_private(result.data, destination, PDF_MIME)
        except Exception as error:
            log_worker_error(UploadFailed.category, job_id, asset.id, job.source_key, error)
            raise UploadFailed(str(error)) from error

        # 7. Mark COMPLETED
        try:
            asset.mark_completed(destination, result.page_count,
                                 rendered_title(job.original_name, asset.id))
            db.session.commit()
        except Exception as error:
            db.session.rollback()
            log_worker_error(DbUpdateFailed.category, job_id, asset.id, job.source_key, error)
            raise DbUpdateFailed(str(error)) from error
        delete_part_documents_cache(asset.part_id)

        # 8. Drop the staged source
        try:
            self.storage.delete(job.source_key)
        except Exception as error:
            LOGGER.warning("Failed to delete staged source file. source_key=%s error=%s",
                           job.source_key, error)

        LOGGER.info("Job %s completed. asset_id=%s storage_key=%s", job_id, asset.id, destination)
        return RenderOutcome(asset.id, RenderStatus.COMPLETED.name, destination, result.page_count)

    def _mark_failed(self, job, job_id):
        try:
            db.session.rollback()
            asset = db.session.get(DocumentAsset, job.asset_id)
            if asset is None:
                return
            asset.mark_failed()
            db.session.commit()
            delete_part_documents_cache(asset.part_id)
            LOGGER.info("Marked job %s as FAILED for asset %s", job_id, asset.id)
        except Exception as error:
            log_worker_error(DbUpdateFailed.category, job_id, job.asset_id, job.source_key, error)
