"""Redis-backed store for in-flight chunked upload sessions."""

import json
import logging

import redis

from courseware.errors import NotFound, SessionConflict
from courseware.models.upload_session import UploadSession

LOGGER = logging.getLogger(__name__)

SESSION_KEY_PREFIX = 'upload:session:'


class SessionStore:
    """Sessions are JSON values with a fixed TTL counted from creation.

    Updates run as WATCH/MULTI transactions so concurrent chunk writes for the
    same session never drop each other's received indices. Expiry only frees
    the key; scratch directories are released by the sweeper job.
    """

    def __init__(self, client, ttl, max_retries=100):
        self.client = client
        self.ttl = int(ttl)
        self.max_retries = max_retries

    def _key(self, upload_id):
        return f"{SESSION_KEY_PREFIX}{upload_id}"

    def create(self, session):
        created = self.client.set(
            self._key(session.upload_id),
            json.dumps(session.to_dict()),
            ex=self.ttl,
            nx=True,
        )
        if not created:
            raise SessionConflict(f"Upload session {session.upload_id} already exists")
        return session.upload_id

    def find(self, upload_id):
        raw = self.client.get(self._key(upload_id))
        if raw is None:
            return None
        return UploadSession.from_dict(json.loads(raw))

    def get(self, upload_id):
        session = self.find(upload_id)
        if session is None:
            raise NotFound('Upload session not found or expired')
        return session

    def exists(self, upload_id):
        return bool(self.client.exists(self._key(upload_id)))

    def update(self, upload_id, mutator):
        """Apply ``mutator`` to the stored session atomically and return the result"""
        key = self._key(upload_id)
        for _ in range(self.max_retries):
            with self.client.pipeline() as pipe:
                try:
                    pipe.watch(key)
                    raw = pipe.get(key)
                    if raw is None:
                        raise NotFound('Upload session not found or expired')
                    session = UploadSession.from_dict(json.loads(raw))
                    mutator(session)
                    pipe.multi()
                    pipe.set(key, json.dumps(session.to_dict()), keepttl=True)
                    pipe.execute()
                    return session
                except redis.WatchError:
                    LOGGER.debug("Concurrent update on upload session %s, retrying", upload_id)
                    continue
        raise SessionConflict('Upload session is busy, retry the request')

    def delete(self, upload_id):
        """Remove the session; only one caller ever gets True for a given id"""
        return self.client.delete(self._key(upload_id)) == 1

    def restore(self, session):
        """Put back a session claimed by a finalize that failed later on"""
        remaining = int(self.ttl - session.age_seconds())
        return bool(self.client.set(
            self._key(session.upload_id),
            json.dumps(session.to_dict()),
            ex=max(remaining, 1),
            nx=True,
        ))
