"""Directory schemas - Pydantic models for members and guests"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email


class MemberCreate(BaseModel):
    """Schema for adding a member to the club directory"""

    memberNumber: str = Field(..., min_length=1, max_length=20)
    firstName: str = Field(..., min_length=1, max_length=100)
    lastName: str = Field(..., min_length=1, max_length=100)
    # Used by member class restrictions
    memberClass: Optional[str] = Field(None, max_length=50)


class MemberUpdate(BaseModel):
    """Only the fields sent are changed; memberClass can be cleared with null"""

    memberNumber: Optional[str] = Field(None, min_length=1, max_length=20)
    firstName: Optional[str] = Field(None, min_length=1, max_length=100)
    lastName: Optional[str] = Field(None, min_length=1, max_length=100)
    memberClass: Optional[str] = Field(None, max_length=50)


class MemberResponse(BaseModel):
    id: int
    memberNumber: str
    firstName: str
    lastName: str
    memberClass: Optional[str] = None
    createdAt: Optional[datetime] = None


class GuestCreate(BaseModel):
    firstName: str = Field(..., min_length=1, max_length=100)
    lastName: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class GuestUpdate(BaseModel):
    firstName: Optional[str] = Field(None, min_length=1, max_length=100)
    lastName: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class GuestResponse(BaseModel):
    id: int
    firstName: str
    lastName: str
    email: Optional[str] = None
    createdAt: Optional[datetime] = None
