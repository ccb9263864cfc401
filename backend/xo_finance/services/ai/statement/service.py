"""Bank statement extraction; malformed lines are dropped."""

from __future__ import annotations

import logging
from typing import Optional

from xo_finance.storage.document_store import DocumentStore

from ..common.pipeline import extract_batch
from .contracts import ExtractedTransaction

logger = logging.getLogger(__name__)

STATEMENT_INSTRUCTIONS = """Você é um especialista em análise de extratos bancários em PDF.
Extraia TODAS as transações do extrato anexado. Para cada transação:
- date: data da transação. Assuma o ano corrente se não estiver especificado.
- description: descrição completa como aparece no extrato.
- amount: despesa (débito) NEGATIVA, receita (crédito) POSITIVA.
- suggested_category: categoria apropriada em português (ex: "Alimentação", "Transporte", "Moradia", "Salário", "Lazer").

Ignore cabeçalhos, rodapés, saldos e qualquer texto que não seja uma transação real."""


async def extract_transactions_from_pdf(
    document: bytes | str,
    *,
    filename: str = "extrato.pdf",
    store: Optional[DocumentStore] = None,
    actor_id: Optional[str] = None,
) -> list[ExtractedTransaction]:
    """Extract statement transactions.

    Malformed entries are dropped silently; a statement without transactions
    yields an empty list.
    """
    transactions = await extract_batch(
        document,
        ExtractedTransaction,
        instructions=STATEMENT_INSTRUCTIONS,
        scope="statement",
        items_key="transactions",
        filename=filename,
        store=store,
        actor_id=actor_id,
    )
    logger.info("Statement extraction accepted %d transaction(s)", len(transactions))
    return transactions
