"""Monthly financial insights for the dashboard card."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from xo_finance.storage.document_store import DocumentStore

from ..common.inputs import AIDebt, AIGoal, AITransaction
from ..common.pipeline import JSON_ONLY_RULE, generate_record, schema_instructions
from .contracts import ANCHOR_FIELD, FinancialInsights

logger = logging.getLogger(__name__)

INSIGHTS_PROMPT = """Você é um especialista em finanças pessoais amigável e motivador. Seu nome é "xô planilhas".
Analise os dados financeiros do usuário para o mês atual e forneça um resumo rápido e 2-3 dicas práticas.
Seja positivo e encorajador, mesmo que a situação seja desafiadora. Use o nome do usuário para tornar a comunicação pessoal.

Dados do usuário:
- Nome: {user_name}
- Rendas do mês: {incomes}
- Despesas do mês: {expenses}
- Dívidas totais: {debts}
- Metas de economia: {goals}

Seu objetivo é:
1. Escrever um parágrafo de "summary" (2-3 frases no máximo). Comece com "Olá, {user_name}!". Mencione o balanço (renda - despesa) e o principal destaque do mês.
2. Criar uma lista de 2 a 3 "action_points", cada um uma sugestão curta e acionável."""


def _coerce(items: Optional[Sequence[Any]], model: type[BaseModel]) -> list[BaseModel]:
    coerced = []
    for item in items or []:
        if isinstance(item, model):
            coerced.append(item)
        elif isinstance(item, Mapping):
            try:
                coerced.append(model.model_validate(item))
            except ValidationError:
                logger.debug("Skipping malformed %s input %r", model.__name__, item.get("id"))
    return coerced


def _dump(records: Sequence[BaseModel]) -> str:
    return json.dumps([record.model_dump(mode="json") for record in records], ensure_ascii=False)


async def get_financial_insights(
    user_name: str,
    incomes: Optional[Sequence[Any]],
    expenses: Optional[Sequence[Any]],
    debts: Optional[Sequence[Any]],
    goals: Optional[Sequence[Any]],
    *,
    store: Optional[DocumentStore] = None,
    actor_id: Optional[str] = None,
) -> FinancialInsights:
    """Summarise the month and propose up to three action points.

    Raises ``ModelUnavailable`` / ``ModelOutputInvalid`` like any other scope.
    """
    name = (user_name or "").strip() or "você"
    prompt = INSIGHTS_PROMPT.format(
        user_name=name,
        incomes=_dump(_coerce(incomes, AITransaction)),
        expenses=_dump(_coerce(expenses, AITransaction)),
        debts=_dump(_coerce(debts, AIDebt)),
        goals=_dump(_coerce(goals, AIGoal)),
    )
    prompt = f"{prompt}\n\n{JSON_ONLY_RULE}\n\n{schema_instructions(FinancialInsights)}"
    insights = await generate_record(
        "insights",
        prompt,
        FinancialInsights,
        anchor=ANCHOR_FIELD,
        store=store,
        actor_id=actor_id,
    )
    logger.info("Insights generated with %d action point(s)", len(insights.action_points))
    return insights
