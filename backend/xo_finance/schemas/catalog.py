from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from xo_finance.services.ai.education.contracts import EducationModule, slugify


class SubscriptionPlanIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=80)
    description: str = ""
    price: float = Field(..., gt=0, allow_inf_nan=False)
    features: list[str] = Field(default_factory=list)
    payment_gateway_id: Optional[str] = Field(None, description="Stripe price id; ad-hoc price data when empty.")
    active: bool = True


class SubscriptionPlanUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=80)
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    features: Optional[list[str]] = None
    payment_gateway_id: Optional[str] = None
    active: Optional[bool] = None


class SubscriptionPlan(SubscriptionPlanIn):
    model_config = ConfigDict(extra="ignore")

    id: str


class EducationContent(BaseModel):
    introduction: str = ""
    modules: list[EducationModule] = Field(default_factory=list)


class EducationTrackIn(BaseModel):
    slug: str = Field(..., min_length=1, max_length=120)
    title: str = Field(..., min_length=1, max_length=160)
    description: str = ""
    icon: str = "BookOpen"
    color: str = "text-primary"
    bg_color: str = "bg-primary/10"
    border_color: str = "border-primary/20"
    order: int = 0
    content: EducationContent = Field(default_factory=EducationContent)

    def normalized_slug(self) -> str:
        return slugify(self.slug)


class EducationTrack(EducationTrackIn):
    model_config = ConfigDict(extra="ignore")

    id: str


class LogEntry(BaseModel):
    id: str
    level: str
    message: str
    created_by: str
    created_by_name: Optional[str] = None
    timestamp: Optional[datetime] = None
