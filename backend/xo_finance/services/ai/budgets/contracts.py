"""Budget suggestion scope contracts."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

# Below this many expense records there is nothing worth analysing.
MIN_TRANSACTIONS = 5
MIN_SUGGESTIONS = 2
MAX_SUGGESTIONS = 3

# Fixed, contract-like spending is not something a monthly cap helps with.
FIXED_CATEGORY_KEYWORDS = (
    "moradia",
    "aluguel",
    "condominio",
    "condomínio",
    "financiamento",
    "educacao",
    "educação",
    "mensalidade",
    "housing",
    "rent",
)


class SuggestedBudget(BaseModel):
    category: str = Field(..., min_length=1, description="Categoria de despesa (ex: 'Alimentação').")
    amount: float = Field(
        ...,
        gt=0,
        allow_inf_nan=False,
        description="Limite mensal sugerido, arredondado (ex: 50, 100, 450, 500).",
    )
    justification: str = Field(
        ...,
        min_length=1,
        description="Frase curta explicando o limite com base nos gastos do usuário.",
    )

    @field_validator("category", "justification", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v
