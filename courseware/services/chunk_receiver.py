"""Session initialization and chunk intake for resumable uploads."""

import logging
import os
import uuid

from courseware import db
from courseware.errors import Forbidden, InvalidRequest, NotFound
from courseware.models import Part, UploadSession
from courseware.models.upload_session import expected_chunk_count
from courseware.services import scratch
from courseware.utils.mime import is_supported_document

LOGGER = logging.getLogger(__name__)

MB = 1024 * 1024


def check_owner(session, user):
    if user is None or session.user_id != user.id:
        raise Forbidden('Access denied')


class ChunkReceiver:
    """Validates and persists chunks into the session's scratch directory.

    Chunks may arrive out of order and in parallel. Each write lands in its
    own slot ``(upload_id, index)`` and the received index is recorded with an
    atomic session update, so completeness is never over- or under-counted.
    """

    def __init__(self, session_store, scratch_root, chunk_size, max_file_size):
        self.session_store = session_store
        self.scratch_root = scratch_root
        self.chunk_size = chunk_size
        self.max_file_size = max_file_size

    def init_upload(self, user, filename, file_size, total_chunks, mime_type, part_id, secure=True):
        if not filename:
            raise InvalidRequest('Filename is required')
        if file_size <= 0:
            raise InvalidRequest('File size must be positive')
        if file_size > self.max_file_size:
            raise InvalidRequest(f"File too large. Maximum size is {self.max_file_size // MB}MB")

        expected = expected_chunk_count(file_size, self.chunk_size)
        if total_chunks != expected:
            raise InvalidRequest(f"Invalid chunk count. Expected {expected}, got {total_chunks}")

        if not is_supported_document(mime_type):
            raise InvalidRequest('Unsupported file type. Allowed: PDF, PPTX, PPT, DOC, DOCX, TXT')

        part = db.session.get(Part, part_id)
        if not part:
            raise NotFound('Part not found')
        if not user.can_manage(part):
            raise Forbidden('Access denied')

        upload_id = str(uuid.uuid4())
        scratch_dir = scratch.session_dir(self.scratch_root, upload_id)
        os.makedirs(scratch_dir, exist_ok=False)

        session = UploadSession(
            upload_id=upload_id,
            filename=filename,
            file_size=file_size,
            mime_type=mime_type,
            total_chunks=total_chunks,
            part_id=part.id,
            is_secure=secure,
            user_id=user.id,
            scratch_dir=scratch_dir,
            chunk_size=self.chunk_size,
        )
        try:
            self.session_store.create(session)
        except Exception:
            scratch.purge_dir(scratch_dir)
            raise

        LOGGER.info("Initialized upload session %s for %s (%d chunks)", upload_id, filename, total_chunks)
        return upload_id

    def upload_chunk(self, user, upload_id, chunk_index, total_chunks, data):
        session = self.session_store.get(upload_id)
        check_owner(session, user)

        if total_chunks is not None and total_chunks != session.total_chunks:
            raise InvalidRequest('Total chunk count does not match the upload session')
        if chunk_index < 0 or chunk_index >= session.total_chunks:
            raise InvalidRequest('Invalid chunk index')
        if len(data) > session.chunk_size:
            raise InvalidRequest('Chunk too large')

        expected_size = session.expected_chunk_size(chunk_index)
        if len(data) != expected_size:
            raise InvalidRequest(
                f"Invalid chunk size for chunk {chunk_index}. Expected {expected_size} bytes, got {len(data)}")

        try:
            scratch.write_chunk(session.scratch_dir, chunk_index, data)
        except FileNotFoundError:
            # Scratch dir already purged by a finalize or the sweeper
            raise NotFound('Upload session not found or expired')

        updated = self.session_store.update(upload_id, lambda s: s.mark_received(chunk_index))
        LOGGER.debug("Received chunk %d/%d for %s", chunk_index + 1, updated.total_chunks, upload_id)
        return updated.progress()

    def status(self, user, upload_id):
        session = self.session_store.get(upload_id)
        check_owner(session, user)
        progress = session.progress()
        progress['missing'] = session.missing_chunks()
        return progress

    def abort(self, user, upload_id):
        session = self.session_store.get(upload_id)
        check_owner(session, user)
        if not self.session_store.delete(upload_id):
            raise NotFound('Upload session not found or expired')
        scratch.purge_dir(session.scratch_dir)
        LOGGER.info("Aborted upload session %s", upload_id)
