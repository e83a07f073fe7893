"""Assembly of completed chunked uploads and hand-off to ingestion."""

import logging
import os
import shutil
import uuid

from courseware import db
from courseware.errors import InvalidRequest, NotFound
from courseware.models import Part
from courseware.services import scratch
from courseware.services.chunk_receiver import check_owner

LOGGER = logging.getLogger(__name__)


class Assembler:
    """Finalizes an upload session exactly once.

    Completeness is re-validated here because session expiry is advisory.
    The session key is deleted as a claim before any scratch data is read:
    of two concurrent finalize calls only one delete succeeds and the other
    sees NotFound. Chunks are then concatenated strictly by ascending index.
    If assembly or ingestion fails after the claim the session is restored
    so the client can retry without re-uploading.
    """

    def __init__(self, session_store, router):
        self.session_store = session_store
        self.router = router

    def finalize(self, user, upload_id, part_id=None, secure=None):
        session = self.session_store.get(upload_id)
        check_owner(session, user)

        if part_id and part_id != session.part_id:
            raise InvalidRequest('Target container does not match the upload session')

        if not session.is_complete:
            raise InvalidRequest(f"Missing chunks. Received {session.received_count}/{session.total_chunks}")

        # Claim before touching scratch data; a concurrent finalize loses here
        if not self.session_store.delete(upload_id):
            raise NotFound('Upload session not found or expired')

        effective_secure = session.is_secure if secure is None else secure
        assembled_path = None
        try:
            LOGGER.info("Assembling %d chunks for %s", session.total_chunks, upload_id)
            assembled_path = self.assemble(session)
            part = db.session.get(Part, session.part_id)
            if not part:
                raise NotFound('Part not found')
            with open(assembled_path, 'rb') as source:
                result = self.router.ingest(part, source, session.filename, session.mime_type,
                                            secure=effective_secure)
        except Exception:
            if not self.session_store.restore(session):
                LOGGER.warning("Could not restore upload session %s after failed finalize", upload_id)
            if assembled_path:
                _remove_quietly(assembled_path)
            raise

        if not scratch.purge_dir(session.scratch_dir):
            LOGGER.warning("Scratch data for %s left for the sweeper", upload_id)

        LOGGER.info("Finalized upload %s as asset %s", upload_id, result.asset.id)
        return result

    def assemble(self, session):
        """Concatenate chunk files by ascending index into one file.

        A chunk file that has vanished is dropped from ``session`` so the
        restored session reports it as missing.
        """
        assembled_path = os.path.join(session.scratch_dir, scratch.ASSEMBLED_NAME)
        tmp_path = f"{assembled_path}.{uuid.uuid4().hex}.tmp"
        try:
            with open(tmp_path, 'wb') as out:
                for index in range(session.total_chunks):
                    path = scratch.chunk_path(session.scratch_dir, index)
                    try:
                        with open(path, 'rb') as chunk:
                            shutil.copyfileobj(chunk, out)
                    except FileNotFoundError:
                        if index in session.received_chunks:
                            session.received_chunks.remove(index)
                        raise InvalidRequest(f"Chunk {index} is missing, upload it again")
                size = out.tell()
        except FileNotFoundError:
            raise NotFound('Upload session not found or expired')
        except Exception:
            _remove_quietly(tmp_path)
            raise

        if size != session.file_size:
            _remove_quietly(tmp_path)
            raise InvalidRequest(f"Assembled size {size} does not match declared size {session.file_size}")

        os.replace(tmp_path, assembled_path)
        return assembled_path


def _remove_quietly(path):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        LOGGER.warning("Failed to remove %s: %s", path, e)
