"""
SQLAlchemy models for the practice website.
All database models inherit from Base (declarative base).
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func
from practice_cms.database import Base


class OrderedContentMixin:
    """
    Columns shared by every admin-orderable content table.
    `order` is the zero-based display position; it is not unique.
    """
    id = Column(Integer, primary_key=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class Testimonial(OrderedContentMixin, Base):
    """Client testimonial shown on the home page."""
    __tablename__ = "testimonials"

    name = Column(String, nullable=False)
    service = Column(String, nullable=False)
    testimonial = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False, default=5)
    # Cloudinary URL of an uploaded picture, or an avatar emoji
    photo = Column(String, nullable=True)


class GalleryPhoto(OrderedContentMixin, Base):
    """Office photo shown in the home page carousel."""
    __tablename__ = "gallery_photos"

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String, nullable=False)


class Credential(OrderedContentMixin, Base):
    """Degree, specialization or registration listed in the about section."""
    __tablename__ = "credentials"

    title = Column(String, nullable=False)
    institution = Column(String, nullable=False)
    year = Column(String, nullable=True)


class FaqItem(OrderedContentMixin, Base):
    __tablename__ = "faq_items"

    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)


class Service(OrderedContentMixin, Base):
    __tablename__ = "services"

    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    icon = Column(String, nullable=True)


class Specialty(OrderedContentMixin, Base):
    __tablename__ = "specialties"

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String, nullable=True)


class SiteConfig(Base):
    """Generic key-value settings (contact info, colors, section visibility...)."""
    __tablename__ = "site_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, nullable=False, unique=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False, unique=True)
    password = Column(String, nullable=False)


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
