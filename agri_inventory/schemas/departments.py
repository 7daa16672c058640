from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.equipment import check_image_url


class DepartmentUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    id: Optional[str] = Field(default=None, max_length=64, pattern=r"^[a-z0-9][a-z0-9\-]*$")
    name: str = Field(min_length=1, max_length=255)
    location: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    focalPerson: Optional[str] = None
    designation: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    logo: Optional[str] = None


class DepartmentPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    location: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    focalPerson: Optional[str] = None
    designation: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    logo: Optional[str] = None


class ERSSStockInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=100)
    quantityStr: Optional[str] = None
    dateReceived: Optional[date] = None
    lastVerificationDate: Optional[str] = None
    currentStatusRemarks: Optional[str] = None
    status: Literal["AVAILABLE", "IN_USE", "NEEDS_REPAIR", "DISCARDED"] = "AVAILABLE"
    imageUrl: Optional[str] = None

    @field_validator("imageUrl")
    @classmethod
    def validate_image_url(cls, value: Optional[str]) -> Optional[str]:
        return check_image_url(value) or None
