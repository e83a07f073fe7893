from enum import Enum
from datetime import datetime
from courseware import db


class UserRole(Enum):
    ADMIN = "Admin"
    INSTRUCTOR = "Instructor"
    STUDENT = "Student"


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    role = db.Column(db.Enum(UserRole), default=UserRole.STUDENT, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __init__(self, email, username=None, role=UserRole.STUDENT):
        self.email = email
        self.username = username
        self.role = role

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    def can_manage(self, part):
        """Owners and admins may upload documents into a part"""
        return self.is_admin or part.owner_id == self.id

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role.value,
        }

    def __repr__(self):
        return f'<User {self.email}>'
