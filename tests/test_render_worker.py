import io
import logging

import fitz
import pytest

from courseware import db
from courseware.errors import ConversionError, ConvertFailed, DbUpdateFailed, SourceNotFound, StorageError, \
    UploadFailed
from courseware.models import DocumentAsset, RenderStatus
from courseware.processing import DocumentError
from courseware.services.render_queue import RenderJob
from tests.conftest import make_pdf

PDF = "application/pdf"
PPTX = "application/vnd.openxmlformats-officedocument.presentationml.presentation"


def _queue(services, part, render_queue, data, filename="Lecture 3.pdf", mime=PDF):
    result = services.router.ingest(part, io.BytesIO(data), filename, mime)
    _, payload = render_queue.jobs[-1]
    return result.asset, RenderJob.from_payload(payload)


def _asset(asset_id):
    db.session.expire_all()
    return db.session.get(DocumentAsset, asset_id)


def test_pdf_is_watermarked_and_completed(services, part, render_queue):
    asset, job = _queue(services, part, render_queue, make_pdf(pages=3))

    outcome = services.worker.process(job, job_id="job-1")

    assert outcome.status == "COMPLETED"
    assert outcome.storage_key == f"/secured/{asset.id}.pdf"
    asset = _asset(asset.id)
    assert asset.render_status == RenderStatus.COMPLETED
    assert asset.storage_key == f"/secured/{asset.id}.pdf"
    assert asset.page_count == 3
    assert asset.title == "Lecture 3.pdf"
    assert not services.storage.exists(job.source_key)

    document = fitz.open(stream=services.storage.download(asset.storage_key), filetype="pdf")
    assert document.page_count == 3
    text = document[0].get_text()
    assert "Courseware | +1 555 0100" in text
    assert "Lecture page 1" in text
    document.close()


def test_office_document_is_converted_first(services, part, render_queue, converter):
    asset, job = _queue(services, part, render_queue, b"pptx-bytes", filename="Deck.pptx", mime=PPTX)

    outcome = services.worker.process(job, job_id="job-2")

    assert converter.calls == [(b"pptx-bytes", "pdf", ".pptx")]
    assert outcome.page_count == 2
    asset = _asset(asset.id)
    assert asset.title == "Deck.pdf"
    assert asset.display_name == "Deck.pdf"


def test_brand_label_from_job_is_used(services, part, render_queue):
    asset, job = _queue(services, part, render_queue, make_pdf())
    job.brand_label = "Physics 101"

    services.worker.process(job)

    document = fitz.open(stream=services.storage.download(f"/secured/{asset.id}.pdf"), filetype="pdf")
    assert "Physics 101 | +1 555 0100" in document[0].get_text()
    document.close()


def test_missing_source_marks_failed(services, part, render_queue, caplog):
    asset, job = _queue(services, part, render_queue, make_pdf())
    services.storage.delete(job.source_key)

    with caplog.at_level(logging.ERROR), pytest.raises(SourceNotFound):
        services.worker.process(job, job_id="job-3")

    asset = _asset(asset.id)
    assert asset.render_status == RenderStatus.FAILED
    assert asset.storage_key == ""
    assert "[SOURCE_NOT_FOUND] job_id=job-3" in caplog.text


def test_conversion_failure_marks_failed_and_keeps_source(services, part, render_queue, converter):
    converter.error = ConversionError("LibreOffice exited with 1")
    asset, job = _queue(services, part, render_queue, b"pptx", filename="Deck.pptx", mime=PPTX)

    with pytest.raises(ConvertFailed):
        services.worker.process(job)

    assert _asset(asset.id).render_status == RenderStatus.FAILED
    assert services.storage.exists(job.source_key)


def test_corrupt_pdf_marks_failed(services, part, render_queue):
    asset, job = _queue(services, part, render_queue, b"not a pdf at all")

    with pytest.raises(DocumentError):
        services.worker.process(job)

    assert _asset(asset.id).render_status == RenderStatus.FAILED


def test_upload_failure_marks_failed(services, part, render_queue, monkeypatch):
    asset, job = _queue(services, part, render_queue, make_pdf())

    def refuse(*args, **kwargs):
        raise StorageError("HTTP 500")

    monkeypatch.setattr(services.worker.storage, "upload_private", refuse)

    with pytest.raises(UploadFailed):
        services.worker.process(job)

    assert _asset(asset.id).render_status == RenderStatus.FAILED


def test_db_update_failure_after_upload_marks_failed(services, part, render_queue, monkeypatch):
    asset, job = _queue(services, part, render_queue, make_pdf())

    def refuse(self, *args, **kwargs):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(DocumentAsset, "mark_completed", refuse)

    with pytest.raises(DbUpdateFailed):
        services.worker.process(job)

    asset = _asset(asset.id)
    assert asset.render_status == RenderStatus.FAILED
    assert asset.storage_key == ""
    assert services.storage.exists(job.source_key)


def test_staged_source_delete_failure_is_not_fatal(services, part, render_queue, monkeypatch):
    asset, job = _queue(services, part, render_queue, make_pdf())

    def refuse(key):
        raise StorageError("HTTP 503")

    monkeypatch.setattr(services.worker.storage, "delete", refuse)

    outcome = services.worker.process(job)

    assert outcome.status == "COMPLETED"
    assert _asset(asset.id).render_status == RenderStatus.COMPLETED


def test_redelivered_job_is_a_no_op(services, part, render_queue):
    asset, job = _queue(services, part, render_queue, make_pdf(pages=2))
    first = services.worker.process(job, job_id="job-4")

    second = services.worker.process(job, job_id="job-4")

    assert second.skipped
    assert second.storage_key == first.storage_key
    assert second.page_count == 2
    assert _asset(asset.id).render_status == RenderStatus.COMPLETED


def test_rerun_overwrites_the_same_key(services, part, render_queue):
    source = make_pdf(pages=2)
    asset, job = _queue(services, part, render_queue, source)
    first = services.worker.process(job)

    # Operator replay: the source is staged again and the asset reset
    services.storage.upload_private(source, job.source_key, PDF)
    stored = _asset(asset.id)
    stored.mark_processing()
    db.session.commit()

    second = services.worker.process(job)

    assert second.storage_key == first.storage_key
    assert second.page_count == first.page_count
    assert DocumentAsset.query.count() == 1
