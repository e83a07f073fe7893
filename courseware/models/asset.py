import os
import uuid
from datetime import datetime
from enum import Enum

from courseware import db


class AssetType(Enum):
    DOCUMENT = 'document'
    VIDEO = 'video'
    LINK = 'link'


class RenderStatus(Enum):
    PROCESSING = 'processing'
    COMPLETED = 'completed'
    FAILED = 'failed'


def rendered_title(original_name, fallback):
    """Display name of a normalized document: original stem with a .pdf extension"""
    stem = os.path.splitext(os.path.basename(original_name or ''))[0]
    return f"{stem or fallback}.pdf"


class DocumentAsset(db.Model):
    """Durable record of an uploaded document and its rendering lifecycle.

    The storage key is only set while the asset is COMPLETED; readers must
    treat any other status as "still processing" and never serve the key.
    """
    __tablename__ = 'document_assets'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    part_id = db.Column(db.String(36), db.ForeignKey('parts.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    display_name = db.Column(db.String(255), nullable=True)
    type = db.Column(db.Enum(AssetType), default=AssetType.DOCUMENT, nullable=False)
    storage_key = db.Column(db.String(500), nullable=False, default='')
    source_key = db.Column(db.String(500), nullable=True)
    source_mime = db.Column(db.String(255), nullable=True)
    render_status = db.Column(db.Enum(RenderStatus), default=RenderStatus.PROCESSING,
                              nullable=False, index=True)
    is_secure = db.Column(db.Boolean, default=True, nullable=False)
    page_count = db.Column(db.Integer, default=0, nullable=False)
    order = db.Column('order_index', db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __init__(self, part_id, title, is_secure, render_status, storage_key='',
                 display_name=None, source_key=None, source_mime=None, order=0,
                 id=None, type=AssetType.DOCUMENT):
        self.id = id or str(uuid.uuid4())
        self.part_id = part_id
        self.title = title
        self.display_name = display_name
        self.type = type
        self.is_secure = is_secure
        self.render_status = render_status
        self.storage_key = storage_key
        self.source_key = source_key
        self.source_mime = source_mime
        self.page_count = 0
        self.order = order

    @classmethod
    def processing(cls, part_id, title, source_key, source_mime, display_name=None, order=0, id=None):
        """Secure-path record: no storage key until the render worker completes it"""
        return cls(part_id=part_id, title=title, is_secure=True,
                   render_status=RenderStatus.PROCESSING, display_name=display_name,
                   source_key=source_key, source_mime=source_mime, order=order, id=id)

    @classmethod
    def published(cls, part_id, title, storage_key, source_mime=None, order=0, id=None):
        """Direct-publish record, readable immediately"""
        return cls(part_id=part_id, title=title, is_secure=False,
                   render_status=RenderStatus.COMPLETED, storage_key=storage_key,
                   source_mime=source_mime, order=order, id=id)

    @classmethod
    def next_order(cls, part_id):
        last = db.session.query(db.func.max(cls.order)).filter(cls.part_id == part_id).scalar()
        return (last or 0) + 1

    @property
    def is_completed(self):
        return self.render_status == RenderStatus.COMPLETED

    def mark_processing(self):
        self.render_status = RenderStatus.PROCESSING
        self.storage_key = ''
        self.page_count = 0

    def mark_completed(self, storage_key, page_count, display_name=None):
        if not storage_key:
            raise ValueError('A completed asset needs a storage key')
        self.render_status = RenderStatus.COMPLETED
        self.storage_key = storage_key
        self.page_count = page_count
        if display_name:
            self.title = display_name
            self.display_name = display_name

    def mark_failed(self):
        self.render_status = RenderStatus.FAILED
        self.storage_key = ''
        self.page_count = 0

    def download_name(self):
        return self.display_name or rendered_title(self.title, self.id)

    def to_dict(self):
        return {
            'id': self.id,
            'part_id': self.part_id,
            'title': self.title,
            'display_name': self.display_name or self.title,
            'type': self.type.value,
            'render_status': self.render_status.name,
            'is_secure': self.is_secure,
            'page_count': self.page_count,
            'order': self.order,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<DocumentAsset {self.id} {self.render_status.name}>'
