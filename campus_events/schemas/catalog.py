"""
Pydantic schemas for the venue and resource catalogue.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List

from campus_events.models import ResourceCategory, VenueStatus


class VenueCreate(BaseModel):
    """Schema for registering a venue."""

    name: str = Field(..., min_length=1, max_length=255)
    capacity: int = Field(..., gt=0, description="Seats available")
    type: Optional[str] = Field(None, max_length=100, description="Auditorium, Lab, Outdoor, ...")
    features: List[str] = Field(default_factory=list)


class VenueResponse(BaseModel):
    id: int
    name: str
    capacity: int
    type: Optional[str] = None
    availability_status: VenueStatus
    features: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ResourceCreate(BaseModel):
    """Schema for registering a pooled resource."""

    name: str = Field(..., min_length=1, max_length=255)
    category: ResourceCategory
    total_quantity: int = Field(..., ge=0)
    available_quantity: Optional[int] = Field(None, ge=0, description="Defaults to total_quantity")
    unit: Optional[str] = Field(None, max_length=50)

    @model_validator(mode='after')
    def validate_quantities(self):
        """Available quantity cannot exceed the pool."""
        if self.available_quantity is not None and self.available_quantity > self.total_quantity:
            raise ValueError('available_quantity cannot exceed total_quantity')
        return self


class ResourceResponse(BaseModel):
    id: int
    name: str
    category: ResourceCategory
    total_quantity: int
    available_quantity: int
    unit: Optional[str] = None

    class Config:
        from_attributes = True
