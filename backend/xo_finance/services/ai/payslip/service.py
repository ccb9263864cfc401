"""Payslip extraction service. Results are proposals and never persisted here.

The caller shows the result to the user and writes it through the records
API after confirmation.
"""

from __future__ import annotations

import logging
from typing import Optional

from xo_finance.storage.document_store import DocumentStore

from ..common.pipeline import extract
from .contracts import ANCHOR_FIELD, PayslipData

logger = logging.getLogger(__name__)

PAYSLIP_INSTRUCTIONS = """Você é um assistente especialista em documentos financeiros como holerites (recibos de pagamento) e notas fiscais de serviço.
Analise o CONTEÚDO VISUAL do PDF anexado e extraia:

1. company_name: empresa ou empregador que realiza o pagamento.
2. earnings: cada provento individualmente (name, amount), ex: "Salário Base", "Horas Extras".
3. deductions: cada desconto individualmente (name, amount), ex: "INSS", "Vale Transporte". Valores positivos.
4. gross_amount: total antes dos descontos ("Total de Proventos", "Salário Bruto"). Se não houver, some os proventos.
5. total_deductions: soma dos descontos ("Total de Descontos"). Se não houver, some os descontos.
6. net_amount: valor final recebido ("Líquido a Receber", "Valor Líquido"). Campo OBRIGATÓRIO e o mais importante.
7. fgts_amount: depósito do FGTS do mês, se houver. Não afeta o líquido.
8. issue_date: data de competência ou pagamento. Se houver apenas mês/ano, use o dia 01.
9. description: descrição curta, ex: "Salário de Abril/2024" ou "Pagamento de serviço para [Empresa]".

Os valores deste documento são todos positivos; o sinal não se aplica aqui."""


async def extract_payslip_data(
    document: bytes | str,
    *,
    filename: str = "holerite.pdf",
    store: Optional[DocumentStore] = None,
    actor_id: Optional[str] = None,
) -> PayslipData:
    """Extract payslip data from a PDF.

    Raises ``InvalidInput`` for an empty document, ``ModelUnavailable`` when
    the model cannot be reached and ``ModelOutputInvalid`` when no valid net
    amount was found.
    """
    result = await extract(
        document,
        PayslipData,
        anchor=ANCHOR_FIELD,
        instructions=PAYSLIP_INSTRUCTIONS,
        scope="payslip",
        filename=filename,
        store=store,
        actor_id=actor_id,
    )
    logger.info("Payslip extracted (earnings=%d, deductions=%d)", len(result.earnings or []), len(result.deductions or []))
    return result
