from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserRole(StrEnum):
    USER = "user"
    SUPERADMIN = "superadmin"


class UserStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"


class SubscriptionStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELED = "canceled"
    PAST_DUE = "past_due"


class UserSubscription(BaseModel):
    plan_id: str
    status: SubscriptionStatus
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    payment_gateway_subscription_id: Optional[str] = None


class AppUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None
    role: UserRole = UserRole.USER
    display_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    status: UserStatus = UserStatus.ACTIVE
    registration_date: Optional[datetime] = None
    subscription: Optional[UserSubscription] = None
    custom_income_categories: list[str] = Field(default_factory=list)
    custom_expense_categories: list[str] = Field(default_factory=list)
    completed_tracks: list[str] = Field(default_factory=list)


class UserUpdate(BaseModel):
    """Profile changes; every field is checked against the caller's abilities."""

    model_config = ConfigDict(extra="forbid")

    display_name: Optional[str] = Field(None, min_length=1, max_length=120)
    first_name: Optional[str] = Field(None, max_length=80)
    last_name: Optional[str] = Field(None, max_length=80)
    custom_income_categories: Optional[list[str]] = None
    custom_expense_categories: Optional[list[str]] = None
    completed_tracks: Optional[list[str]] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None


class UserListResponse(BaseModel):
    items: list[AppUser]
    total: int


class AbilitiesOut(BaseModel):
    role: Optional[UserRole] = None
    rules: list[dict[str, Any]]
