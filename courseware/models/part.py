import uuid
from datetime import datetime

from courseware import db


class Part(db.Model):
    """Content container that owns uploaded lecture documents"""
    __tablename__ = 'parts'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = db.Column(db.String(200), nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    is_free = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    owner = db.relationship('User', backref=db.backref('parts', lazy=True))
    assets = db.relationship(
        'DocumentAsset',
        backref='part',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='DocumentAsset.order',
    )

    def __init__(self, title, owner_id, is_free=False, id=None):
        self.id = id or str(uuid.uuid4())
        self.title = title
        self.owner_id = owner_id
        self.is_free = is_free

    def can_read(self, user):
        """Owners, admins and anyone on a free part may read its documents"""
        if self.is_free:
            return True
        if user is None:
            return False
        return user.can_manage(self)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'owner_id': self.owner_id,
            'is_free': self.is_free,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Part {self.id}>'
