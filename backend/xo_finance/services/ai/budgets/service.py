"""Best-effort budget suggestions. ``None`` means "nothing to suggest".

Nothing in here raises to the caller: model failures, unusable output and
short histories all end in ``None``.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections import defaultdict
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from pydantic import ValidationError

from xo_finance.core.errors import AppError
from xo_finance.storage.document_store import DocumentStore

from ..common.inputs import AITransaction
from ..common.pipeline import JSON_ONLY_RULE, generate_items, schema_instructions
from .contracts import (
    FIXED_CATEGORY_KEYWORDS,
    MAX_SUGGESTIONS,
    MIN_SUGGESTIONS,
    MIN_TRANSACTIONS,
    SuggestedBudget,
)

logger = logging.getLogger(__name__)

BUDGET_PROMPT = """Você é um consultor financeiro especialista em orçamentos.
Analise as despesas do usuário dos últimos 3 meses e sugira 2 ou 3 limites de gastos mensais realistas.

Despesas do usuário:
{transactions}

Média mensal atual por categoria:
{averages}

Seu objetivo:
1. Escolher as 2 ou 3 categorias com maior gasto médio mensal que façam sentido para um orçamento (ex: "Alimentação", "Lazer", "Transporte"). Ignore categorias de custo fixo como "Moradia" ou "Educação" (aluguéis, mensalidades).
2. Sugerir um limite mensal um pouco ABAIXO da média atual, para incentivar a economia sem ser irrealista. Arredonde para um número redondo (ex: 450, 500, 800).
3. Escrever uma justificativa curta e motivadora para cada sugestão. Ex: "Você gastou em média R$550 com lazer, que tal tentar um limite de R$500?"."""


def _coerce_transactions(transactions: Sequence[Any]) -> list[AITransaction]:
    records: list[AITransaction] = []
    for item in transactions:
        if isinstance(item, AITransaction):
            records.append(item)
            continue
        if not isinstance(item, Mapping):
            continue
        try:
            records.append(AITransaction.model_validate(item))
        except ValidationError:
            logger.debug("Skipping malformed budget input transaction %r", item.get("id"))
    return [record for record in records if record.type == "expense"]


def monthly_averages(transactions: Sequence[AITransaction]) -> dict[str, float]:
    """Average monthly spend per category over the months the history spans."""
    if not transactions:
        return {}
    months = {(t.date.year, t.date.month) for t in transactions}
    totals: dict[str, float] = defaultdict(float)
    for t in transactions:
        totals[t.category] += abs(t.amount)
    return {category: round(total / len(months), 2) for category, total in totals.items()}


def round_to_friendly(amount: float, ceiling: Optional[float] = None) -> float:
    """Round down to a multiple of 10 below 100 and of 50 above.

    With a *ceiling* (the current monthly average) the result stays strictly
    under it; ``0.0`` means no friendly cap exists below the ceiling.
    """
    target = amount if ceiling is None else min(amount, ceiling)
    step = 10 if target < 100 else 50
    rounded = math.floor(target / step) * step
    if ceiling is not None and rounded >= ceiling:
        rounded -= step
    return float(max(rounded, 0))


def is_fixed_category(category: str) -> bool:
    words = set(re.findall(r"\w+", category.lower()))
    return any(keyword in words for keyword in FIXED_CATEGORY_KEYWORDS)


def usable_suggestions(
    suggestions: Sequence[SuggestedBudget],
    averages: Optional[Mapping[str, float]] = None,
) -> list[SuggestedBudget]:
    ceilings = {category.lower(): average for category, average in (averages or {}).items()}
    seen: set[str] = set()
    usable: list[SuggestedBudget] = []
    for suggestion in suggestions:
        key = suggestion.category.lower()
        if key in seen or is_fixed_category(suggestion.category):
            continue
        seen.add(key)
        amount = round_to_friendly(suggestion.amount, ceilings.get(key))
        if amount <= 0:
            logger.debug("Dropping budget suggestion for %s: no cap below the average", suggestion.category)
            continue
        usable.append(suggestion.model_copy(update={"amount": amount}))
    return usable[:MAX_SUGGESTIONS]


async def suggest_budgets(
    transactions: Optional[Sequence[Any]],
    *,
    store: Optional[DocumentStore] = None,
    actor_id: Optional[str] = None,
) -> Optional[list[SuggestedBudget]]:
    """Suggest 2–3 monthly spending caps from the expense history.

    Returns ``None`` (never raises) when fewer than ``MIN_TRANSACTIONS``
    expenses are given (the model is not called), when the model fails, or
    when fewer than ``MIN_SUGGESTIONS`` usable suggestions come back.
    """
    expenses = _coerce_transactions(transactions or [])
    if len(expenses) < MIN_TRANSACTIONS:
        return None

    payload = [t.model_dump(mode="json") for t in expenses]
    averages = monthly_averages(expenses)
    prompt = (
        BUDGET_PROMPT.format(
            transactions=json.dumps(payload, ensure_ascii=False),
            averages=json.dumps(averages, ensure_ascii=False),
        )
        + f"\n\n{JSON_ONLY_RULE}\n\n{schema_instructions(SuggestedBudget, items_key='suggestions')}"
    )

    try:
        suggestions = await generate_items(
            "budgets",
            prompt,
            SuggestedBudget,
            items_key="suggestions",
            store=store,
            actor_id=actor_id,
        )
    except AppError as exc:
        logger.warning("Budget suggestion skipped: %s", exc.detail)
        return None
    except Exception:
        logger.exception("Budget suggestion failed unexpectedly")
        return None

    usable = usable_suggestions(suggestions, averages)
    if len(usable) < MIN_SUGGESTIONS:
        logger.info("Budget suggestion produced %d usable item(s); returning none", len(usable))
        return None
    return usable
