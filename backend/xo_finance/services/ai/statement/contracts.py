"""Contracts for bank statement transaction extraction."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, field_validator

DEFAULT_CATEGORY = "Outros"


class ExtractedTransaction(BaseModel):
    """One statement line. Debits are negative, credits positive."""

    date: dt.date = Field(..., description="Data da transação (YYYY-MM-DD).")
    description: str = Field(..., min_length=1, description="Descrição completa como aparece no extrato.")
    amount: float = Field(
        ...,
        allow_inf_nan=False,
        description="Valor: NEGATIVO para despesas (débito), POSITIVO para receitas (crédito).",
    )
    suggested_category: str = Field(
        DEFAULT_CATEGORY,
        description='Categoria sugerida em português (ex: "Alimentação", "Transporte", "Salário").',
    )

    @field_validator("description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("suggested_category", mode="before")
    @classmethod
    def default_category(cls, v):
        if isinstance(v, str):
            return v.strip() or DEFAULT_CATEGORY
        return v

    @field_validator("amount")
    @classmethod
    def amount_not_zero(cls, v: float) -> float:
        if v == 0:
            msg = "A transaction amount of zero is not a transaction"
            raise ValueError(msg)
        return round(v, 2)

    @property
    def transaction_type(self) -> str:
        return "expense" if self.amount < 0 else "income"
