from datetime import date
from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


EquipmentStatusLiteral = Literal["AVAILABLE", "IN_USE", "NEEDS_REPAIR", "DISCARDED"]


def check_image_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    if not trimmed:
        return ""
    parsed = urlparse(trimmed)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError("Invalid image URL")
    return trimmed


class EquipmentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=100)
    status: EquipmentStatusLiteral
    purchaseDate: date
    imageUrl: Optional[str] = None
    departmentId: str = Field(min_length=1)

    @field_validator("imageUrl")
    @classmethod
    def validate_image_url(cls, value: Optional[str]) -> Optional[str]:
        return check_image_url(value)


class EquipmentUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    status: Optional[EquipmentStatusLiteral] = None
    purchaseDate: Optional[date] = None
    imageUrl: Optional[str] = None
    departmentId: Optional[str] = Field(default=None, min_length=1)

    @field_validator("imageUrl")
    @classmethod
    def validate_image_url(cls, value: Optional[str]) -> Optional[str]:
        return check_image_url(value)


class MaintenanceLogCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    date: date
    cost: float = Field(ge=0)
    description: str = Field(min_length=1, max_length=1000)
