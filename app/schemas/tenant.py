from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models.enums import CustomerStatus, CustomerUserRole, CustomerUserStatus


class CustomerBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=1, max_length=160)
    domain: str = Field(min_length=1, max_length=255)
    admin_name: str = Field(min_length=1, max_length=160)
    admin_email: EmailStr
    status: CustomerStatus = CustomerStatus.active


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str | None = Field(default=None, min_length=1, max_length=160)
    domain: str | None = Field(default=None, min_length=1, max_length=255)
    admin_name: str | None = Field(default=None, min_length=1, max_length=160)
    admin_email: EmailStr | None = None
    status: CustomerStatus | None = None

    @field_validator("name", "domain", "admin_name", "admin_email", "status")
    @classmethod
    def _not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class CustomerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    domain: str
    admin_name: str
    admin_email: str
    status: CustomerStatus
    created_at: datetime
    updated_at: datetime


class CustomerUserCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: EmailStr
    first_name: str = Field(min_length=1, max_length=80)
    last_name: str = Field(min_length=1, max_length=80)
    role: CustomerUserRole = CustomerUserRole.user
    status: CustomerUserStatus = CustomerUserStatus.active


class CustomerUserUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: EmailStr | None = None
    first_name: str | None = Field(default=None, min_length=1, max_length=80)
    last_name: str | None = Field(default=None, min_length=1, max_length=80)
    role: CustomerUserRole | None = None
    status: CustomerUserStatus | None = None

    @field_validator("email", "first_name", "last_name", "role", "status")
    @classmethod
    def _not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class CustomerUserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_id: UUID
    email: str
    first_name: str
    last_name: str
    role: CustomerUserRole
    status: CustomerUserStatus
    created_at: datetime
