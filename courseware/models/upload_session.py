import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone


def expected_chunk_count(file_size, chunk_size):
    return math.ceil(file_size / chunk_size)


@dataclass
class UploadSession:
    """In-flight chunked upload, kept in the session store until finalize or expiry"""

    upload_id: str
    filename: str
    file_size: int
    mime_type: str
    total_chunks: int
    part_id: str
    is_secure: bool
    user_id: int
    scratch_dir: str
    chunk_size: int
    received_chunks: list = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def received_count(self):
        return len(self.received_chunks)

    @property
    def is_complete(self):
        return set(self.received_chunks) == set(range(self.total_chunks))

    def missing_chunks(self):
        received = set(self.received_chunks)
        return [index for index in range(self.total_chunks) if index not in received]

    def mark_received(self, chunk_index):
        if chunk_index not in self.received_chunks:
            self.received_chunks.append(chunk_index)
            self.received_chunks.sort()

    def expected_chunk_size(self, chunk_index):
        """Every chunk is full-size except possibly the last, which holds the remainder"""
        if chunk_index == self.total_chunks - 1:
            return self.file_size - self.chunk_size * (self.total_chunks - 1)
        return self.chunk_size

    def age_seconds(self, now=None):
        now = now or datetime.now(timezone.utc)
        return (now - datetime.fromisoformat(self.created_at)).total_seconds()

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        return cls(**data)

    def progress(self):
        return {'received': self.received_count, 'total': self.total_chunks}
