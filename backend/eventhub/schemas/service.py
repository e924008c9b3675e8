"""
EventHub Backend — Service (Catalog) Schemas
==============================================

ServiceCreate requires name, category and description; every other field
falls back to the same defaults the catalog always used (0 / "" / false).
ServiceUpdate is a partial update: only fields present in the request body
are applied (`model_dump(exclude_unset=True)`).
"""

from typing import List, Optional

from pydantic import Field

from eventhub.schemas.common import CamelModel, UTCDateTime


class ServiceCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    category: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1)
    price: int = Field(default=0, ge=0)
    rating: float = Field(default=0.0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)
    location: str = ""
    duration: str = ""
    capacity: str = ""
    featured: bool = False
    image: str = ""
    images: List[str] = Field(default_factory=list)


class ServiceUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1)
    price: Optional[int] = Field(default=None, ge=0)
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    review_count: Optional[int] = Field(default=None, ge=0)
    location: Optional[str] = None
    duration: Optional[str] = None
    capacity: Optional[str] = None
    featured: Optional[bool] = None
    image: Optional[str] = None
    images: Optional[List[str]] = None


class ServiceResponse(CamelModel):
    id: int
    name: str
    category: str
    description: str
    price: int
    rating: float
    review_count: int
    location: str
    duration: str
    capacity: str
    featured: bool
    image: str
    images: List[str]
    created_at: UTCDateTime


class ServiceSummary(CamelModel):
    """Compact service embedded in booking and review listings."""
    id: int
    name: str
    category: str
    price: int
    image: str


class ImageOrderRequest(CamelModel):
    images: List[str] = Field(description="The full gallery in the desired order")
