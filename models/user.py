"""
User request and response models
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.enums import Role


class CamelModel(BaseModel):
    """Base for API models: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class RegisterRequest(CamelModel):
    name: str = Field(min_length=1, max_length=120)
    email: str
    password: str
    role: Role
    phone: str = Field(min_length=1, max_length=40)


class LoginRequest(CamelModel):
    email: str
    password: str


class UserOut(CamelModel):
    id: int
    name: str
    email: str
    phone: str
    role: Role
    subscription_status: str
    subscription_expiry_date: Optional[datetime] = None
    first_time_payment: bool
    id_proof_document: Optional[str] = None
    profile_image: Optional[str] = None
    created_at: Optional[datetime] = None


class OwnerContact(CamelModel):
    id: int
    name: str
    email: str
    phone: str
    profile_image: Optional[str] = None


class InterestedUserContact(CamelModel):
    id: int
    name: str
    email: str
    phone: str
    id_proof_document: Optional[str] = None
