"""Trusted inputs handed to the generative scopes.

Records come from the document store (snake_case) or straight from a client
(camelCase); both spellings are accepted.
"""

from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _AIInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class AITransaction(_AIInput):
    id: str = ""
    type: Literal["income", "expense"] = "expense"
    amount: float = Field(..., allow_inf_nan=False)
    date: dt.date
    description: str = ""
    category: str = Field(..., min_length=1)
    is_recurring: bool = False
    status: Literal["paid", "pending"] = "paid"


class AIDebt(_AIInput):
    id: str = ""
    name: str
    total_amount: float = Field(..., allow_inf_nan=False)
    paid_amount: float = Field(0.0, allow_inf_nan=False)
    creditor: str = ""


class AIGoal(_AIInput):
    id: str = ""
    name: str
    target_amount: float = Field(..., allow_inf_nan=False)
    current_amount: float = Field(0.0, allow_inf_nan=False)
