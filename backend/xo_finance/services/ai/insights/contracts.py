from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

ANCHOR_FIELD = "summary"
MAX_ACTION_POINTS = 3


class FinancialInsights(BaseModel):
    summary: str = Field(
        ...,
        min_length=1,
        description='Parágrafo curto (2-3 frases) começando com "Olá, [nome]!" e citando o balanço do mês.',
    )
    action_points: list[str] = Field(
        default_factory=list,
        description="2 a 3 pontos de ação curtos, claros e práticos.",
    )

    @field_validator("summary", mode="before")
    @classmethod
    def strip_summary(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("action_points", mode="after")
    @classmethod
    def cap_action_points(cls, v: list[str]) -> list[str]:
        cleaned = [point.strip() for point in v if point and point.strip()]
        return cleaned[:MAX_ACTION_POINTS]
