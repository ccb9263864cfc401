"""Contracts for payslip and service invoice extraction."""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

ANCHOR_FIELD = "net_amount"


class NameAmount(BaseModel):
    name: str = Field(..., min_length=1, description='Nome do item (ex: "Salário Base", "INSS").')
    amount: float = Field(..., allow_inf_nan=False, description="Valor do item.")


class PayslipData(BaseModel):
    """Structured payslip data. ``net_amount`` is the anchor: no net amount, no result."""

    company_name: Optional[str] = Field(None, description="Nome da empresa pagadora.")
    net_amount: float = Field(
        ...,
        gt=0,
        allow_inf_nan=False,
        description="Valor líquido final recebido (Líquido a Receber).",
    )
    gross_amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False, description="Total de proventos.")
    total_deductions: Optional[float] = Field(None, ge=0, allow_inf_nan=False, description="Total de descontos.")
    earnings: Optional[list[NameAmount]] = Field(None, description="Cada provento individualmente.")
    deductions: Optional[list[NameAmount]] = Field(None, description="Cada desconto individualmente.")
    fgts_amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False, description="Depósito de FGTS do mês.")
    issue_date: Optional[date] = Field(None, description="Data de competência/pagamento (YYYY-MM-DD).")
    description: Optional[str] = Field(None, description='Descrição curta, ex: "Salário de Abril/2024".')
