# core/database_models.py
"""
Tenant-scoped database models

Every table carries a site_key column; repositories filter on it so one
database can serve several sites.
"""

from datetime import datetime, timezone
from enum import Enum

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import (
    Column, Integer, String, DateTime, Text, JSON, UniqueConstraint
)

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


def isoformat_utc(value):
    """Render a timestamp as ISO-8601 UTC with a Z suffix"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


class NotificationType(Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"

    @classmethod
    def values(cls):
        return [member.value for member in cls]


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = Column(Integer, primary_key=True)
    site_key = Column(String(100), nullable=False, index=True)
    message = Column(Text, nullable=False)
    type = Column(String(10), nullable=False, default=NotificationType.INFO.value)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'site_key': self.site_key,
            'message': self.message,
            'type': self.type,
            'created_at': isoformat_utc(self.created_at),
        }

    def to_payload(self):
        """The push wire shape: no tenant key"""
        return {
            'id': self.id,
            'message': self.message,
            'type': self.type,
            'created_at': isoformat_utc(self.created_at),
        }


class AdminUser(db.Model):
    __tablename__ = 'admin_users'
    __table_args__ = (UniqueConstraint('site_key', 'username', name='uq_admin_site_username'),)

    id = Column(Integer, primary_key=True)
    site_key = Column(String(100), nullable=False, index=True)
    username = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    password_salt = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    last_login_at = Column(DateTime)


class Appointment(db.Model):
    __tablename__ = 'appointments'

    id = Column(Integer, primary_key=True)
    site_key = Column(String(100), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    email = Column(String(255))
    service = Column(String(255), nullable=False)
    appointment_date = Column(String(20), nullable=False)
    appointment_time = Column(String(20), nullable=False)
    message = Column(Text)
    created_at = Column(DateTime, default=utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'email': self.email,
            'service': self.service,
            'appointment_date': self.appointment_date,
            'appointment_time': self.appointment_time,
            'message': self.message,
            'created_at': isoformat_utc(self.created_at),
        }


class ContactMessage(db.Model):
    __tablename__ = 'contact_messages'

    id = Column(Integer, primary_key=True)
    site_key = Column(String(100), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255))
    phone = Column(String(50), nullable=False)
    message = Column(Text, nullable=False)
    submitted_at = Column(DateTime, default=utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'message': self.message,
            'submitted_at': isoformat_utc(self.submitted_at),
        }


class BlogPost(db.Model):
    __tablename__ = 'blogs'

    id = Column(Integer, primary_key=True)
    site_key = Column(String(100), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    author = Column(String(100), nullable=False)
    summary = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'author': self.author,
            'summary': self.summary,
            'content': self.content,
            'created_at': isoformat_utc(self.created_at),
            'updated_at': isoformat_utc(self.updated_at),
        }


class Project(db.Model):
    __tablename__ = 'projects'

    id = Column(Integer, primary_key=True)
    site_key = Column(String(100), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    image = Column(String(500), nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'image': self.image,
            'created_at': isoformat_utc(self.created_at),
            'updated_at': isoformat_utc(self.updated_at),
        }


class RoadmapItem(db.Model):
    __tablename__ = 'roadmap_items'

    id = Column(Integer, primary_key=True)
    site_key = Column(String(100), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default='planned')
    priority = Column(String(10), nullable=False, default='medium')
    target_release = Column(String(50), nullable=False, default='TBD')
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'priority': self.priority,
            'targetRelease': self.target_release,
            'tags': self.tags or [],
            'created_at': isoformat_utc(self.created_at),
            'updated_at': isoformat_utc(self.updated_at),
        }


class SiteSettings(db.Model):
    __tablename__ = 'site_settings'

    id = Column(Integer, primary_key=True)
    site_key = Column(String(100), nullable=False, unique=True)
    hero_headline = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=False)
    business_phone = Column(String(50), nullable=False)
    footer_text = Column(Text)
    primary_color = Column(String(20))
    secondary_color = Column(String(20))
    about_us_text = Column(Text)
    facebook_url = Column(String(255))
    instagram_url = Column(String(255))
    twitter_url = Column(String(255))
    tracking_code = Column(Text)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # JSON field name -> column name
    FIELDS = {
        'heroHeadline': 'hero_headline',
        'contactEmail': 'contact_email',
        'businessPhone': 'business_phone',
        'footerText': 'footer_text',
        'primaryColor': 'primary_color',
        'secondaryColor': 'secondary_color',
        'aboutUsText': 'about_us_text',
        'facebookUrl': 'facebook_url',
        'instagramUrl': 'instagram_url',
        'twitterUrl': 'twitter_url',
        'trackingCode': 'tracking_code',
    }

    def to_dict(self):
        return {column: getattr(self, column) for column in self.FIELDS.values()}
