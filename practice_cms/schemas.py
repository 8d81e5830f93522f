"""
Pydantic schemas for request and response data validation.
Defines data structures for API endpoints with automatic validation and serialization.
"""
from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator, model_validator
from datetime import datetime
from typing import Optional, List
from urllib.parse import urlparse


def _reject_null(value):
    if value is None:
        raise ValueError("Field cannot be null")
    return value


def _validate_http_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Image URL must be an absolute http(s) URL")
    return value


class OrderedResponse(BaseModel):
    """Fields every orderable entity exposes."""
    id: int
    is_active: bool
    order: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


# Testimonials

class TestimonialCreate(BaseModel):
    name: str = Field(..., min_length=1)
    service: str = Field(..., min_length=1)
    testimonial: str = Field(..., min_length=10)
    rating: int = Field(5, ge=1, le=5)
    photo: Optional[str] = None
    is_active: bool = True
    order: Optional[int] = Field(None, ge=0)


class TestimonialUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    service: Optional[str] = Field(None, min_length=1)
    testimonial: Optional[str] = Field(None, min_length=10)
    rating: Optional[int] = Field(None, ge=1, le=5)
    photo: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "service", "testimonial", "rating", "is_active", mode="before")
    @classmethod
    def reject_null(cls, v):
        return _reject_null(v)


class TestimonialResponse(OrderedResponse):
    name: str
    service: str
    testimonial: str
    rating: int
    photo: Optional[str] = None


# Gallery photos

class GalleryPhotoCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    image_url: str
    is_active: bool = True
    order: Optional[int] = Field(None, ge=0)

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v):
        return _validate_http_url(v)


class GalleryPhotoUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("title", "image_url", "is_active", mode="before")
    @classmethod
    def reject_null(cls, v):
        return _reject_null(v)

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v):
        return _validate_http_url(v)


class GalleryPhotoResponse(OrderedResponse):
    title: str
    description: Optional[str] = None
    image_url: str


class GalleryPhotoPublicResponse(BaseModel):
    """
    Public carousel payload. Excludes timestamps and carries the URL the
    frontend should actually render.
    """
    id: int
    title: str
    description: Optional[str] = None
    image_url: str
    display_url: str
    order: int


class PaginationMetadata(BaseModel):
    """
    Pagination metadata for cursor-based pagination.
    """
    next_cursor: Optional[int] = None
    has_more: bool
    total_count: int


class GalleryPhotosPageResponse(BaseModel):
    photos: List[GalleryPhotoPublicResponse]
    pagination: PaginationMetadata


class GalleryUploadError(BaseModel):
    filename: str
    error: str


class GalleryUploadResponse(BaseModel):
    photos: List[GalleryPhotoResponse]
    errors: List[GalleryUploadError] = []


# Credentials

class CredentialCreate(BaseModel):
    title: str = Field(..., min_length=1)
    institution: str = Field(..., min_length=1)
    year: Optional[str] = None
    is_active: bool = True
    order: Optional[int] = Field(None, ge=0)


class CredentialUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    institution: Optional[str] = Field(None, min_length=1)
    year: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("title", "institution", "is_active", mode="before")
    @classmethod
    def reject_null(cls, v):
        return _reject_null(v)


class CredentialResponse(OrderedResponse):
    title: str
    institution: str
    year: Optional[str] = None


# FAQ

class FaqItemCreate(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    is_active: bool = True
    order: Optional[int] = Field(None, ge=0)


class FaqItemUpdate(BaseModel):
    question: Optional[str] = Field(None, min_length=1)
    answer: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None

    @field_validator("question", "answer", "is_active", mode="before")
    @classmethod
    def reject_null(cls, v):
        return _reject_null(v)


class FaqItemResponse(OrderedResponse):
    question: str
    answer: str


# Services

class ServiceCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    icon: Optional[str] = None
    is_active: bool = True
    order: Optional[int] = Field(None, ge=0)


class ServiceUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    icon: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("title", "description", "is_active", mode="before")
    @classmethod
    def reject_null(cls, v):
        return _reject_null(v)


class ServiceResponse(OrderedResponse):
    title: str
    description: str
    icon: Optional[str] = None


# Specialties

class SpecialtyCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool = True
    order: Optional[int] = Field(None, ge=0)


class SpecialtyUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("title", "is_active", mode="before")
    @classmethod
    def reject_null(cls, v):
        return _reject_null(v)


class SpecialtyResponse(OrderedResponse):
    title: str
    description: Optional[str] = None
    icon: Optional[str] = None


# Reordering

class ReorderItem(BaseModel):
    id: int
    order: int = Field(..., ge=0)


class ReorderRequest(RootModel[List[ReorderItem]]):
    """
    Request body for the reorder endpoints: a JSON array of {id, order}
    pairs covering the list as the admin sees it.
    """

    @model_validator(mode="after")
    def validate_unique_ids(self):
        ids = [item.id for item in self.root]
        if not ids:
            raise ValueError("At least one item is required")
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate ids are not allowed")
        return self


# Site configuration

class SiteConfigSet(BaseModel):
    value: str


class SiteConfigResponse(BaseModel):
    key: str
    value: str
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Images

class ImageUploadResponse(BaseModel):
    id: int
    image_url: str
