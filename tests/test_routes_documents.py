import io

from courseware import db
from courseware.models import Part
from courseware.services.render_queue import RenderJob
from tests.conftest import make_pdf

PDF = "application/pdf"


def _secure_document(services, part, render_queue, pages=2, filename="Lecture 2.pdf"):
    result = services.router.ingest(part, io.BytesIO(make_pdf(pages=pages)), filename, PDF)
    return result.asset, RenderJob.from_payload(render_queue.jobs[-1][1])


def test_metadata_is_pollable_while_processing(client, services, part, render_queue, auth_headers):
    asset, _ = _secure_document(services, part, render_queue)

    response = client.get(f"/api/documents/{asset.id}/metadata", headers=auth_headers("instructor"))

    assert response.status_code == 200
    body = response.get_json()
    assert body["render_status"] == "PROCESSING"
    assert body["page_count"] == 0
    assert "storage_key" not in body


def test_stream_is_locked_until_completed(client, services, part, render_queue, auth_headers):
    asset, job = _secure_document(services, part, render_queue)
    headers = auth_headers("instructor")

    locked = client.get(f"/api/documents/{asset.id}/stream", headers=headers)
    assert locked.status_code == 423
    assert locked.get_json() == {"error": "Document is processing"}

    services.worker.process(job, job_id="job-1")

    response = client.get(f"/api/documents/{asset.id}/stream", headers=headers)
    assert response.status_code == 200
    assert response.mimetype == PDF
    assert response.headers["Content-Disposition"] == 'inline; filename="Lecture 2.pdf"'
    assert response.headers["Cache-Control"] == "private, no-store"
    assert response.data.startswith(b"%PDF")


def test_failed_document_stays_locked(client, services, part, render_queue, auth_headers):
    asset, _ = _secure_document(services, part, render_queue)
    asset.mark_failed()
    db.session.commit()

    response = client.get(f"/api/documents/{asset.id}/stream", headers=auth_headers("admin"))

    assert response.status_code == 423


def test_page_rendering(client, services, part, render_queue, auth_headers):
    asset, job = _secure_document(services, part, render_queue, pages=2)
    services.worker.process(job)
    headers = auth_headers("instructor")

    response = client.get(f"/api/documents/{asset.id}/pages/2", headers=headers)
    assert response.status_code == 200
    assert response.mimetype == "image/png"
    assert response.data.startswith(b"\x89PNG")

    assert client.get(f"/api/documents/{asset.id}/pages/3", headers=headers).status_code == 404


def test_readers_need_access_to_the_part(client, services, part, render_queue, auth_headers):
    asset, job = _secure_document(services, part, render_queue)
    services.worker.process(job)

    assert client.get(f"/api/documents/{asset.id}/stream", headers=auth_headers("student")).status_code == 403
    assert client.get(f"/api/documents/{asset.id}/stream").status_code == 403
    assert client.get("/api/documents/unknown/metadata").status_code == 404


def test_free_parts_are_public(client, services, users, render_queue):
    free_part = Part(title="Intro", owner_id=users["instructor"].id, is_free=True)
    db.session.add(free_part)
    db.session.commit()
    asset, job = _secure_document(services, free_part, render_queue)
    services.worker.process(job)

    response = client.get(f"/api/documents/{asset.id}/stream")

    assert response.status_code == 200


def test_part_listing_reflects_new_documents(client, services, part, render_queue, auth_headers):
    headers = auth_headers("instructor")
    first, job = _secure_document(services, part, render_queue, filename="a.pdf")

    listing = client.get(f"/api/parts/{part.id}/documents", headers=headers).get_json()
    assert [doc["render_status"] for doc in listing["documents"]] == ["PROCESSING"]

    services.worker.process(job)
    services.router.ingest(part, io.BytesIO(b"%PDF"), "b.pdf", PDF, secure=False)

    listing = client.get(f"/api/parts/{part.id}/documents", headers=headers).get_json()
    assert listing["part"]["id"] == part.id
    assert [(doc["title"], doc["render_status"]) for doc in listing["documents"]] == [
        ("a.pdf", "COMPLETED"),
        ("b.pdf", "COMPLETED"),
    ]
