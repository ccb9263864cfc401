"""AI endpoints: document extraction, budget suggestions, insights, track drafts.

Nothing produced here is persisted as user data; the client confirms and
writes through the records API. Only the ``ai_runs`` audit trail is stored.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from xo_finance.core.abilities import AbilitySet
from xo_finance.core.auth import CurrentUser, get_abilities, require_roles
from xo_finance.core.config import get_settings
from xo_finance.core.dependencies import get_active_user, get_db, get_store
from xo_finance.services.ai.budgets.contracts import SuggestedBudget
from xo_finance.services.ai.budgets.service import suggest_budgets
from xo_finance.services.ai.education.contracts import EducationTrackDraft
from xo_finance.services.ai.education.service import generate_education_track
from xo_finance.services.ai.insights.contracts import FinancialInsights
from xo_finance.services.ai.insights.service import get_financial_insights
from xo_finance.services.ai.payslip.contracts import PayslipData
from xo_finance.services.ai.payslip.service import extract_payslip_data
from xo_finance.services.ai.statement.contracts import ExtractedTransaction
from xo_finance.services.ai.statement.service import extract_transactions_from_pdf
from xo_finance.services.users import get_profile
from xo_finance.storage.document_store import DocumentStore, user_collection

logger = logging.getLogger(__name__)

router = APIRouter()

BUDGET_HISTORY_DAYS = 90


class StatementResponse(BaseModel):
    transactions: list[ExtractedTransaction]


class BudgetSuggestionsResponse(BaseModel):
    suggestions: Optional[list[SuggestedBudget]] = None


class EducationTrackRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=300)


async def _read_upload(file: UploadFile) -> bytes:
    # One byte past the limit is enough for the size check to reject it.
    return await file.read(get_settings().ai_max_document_bytes + 1)


@router.post("/ai/payslip", response_model=PayslipData)
async def ai_extract_payslip(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(get_active_user),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    content = await _read_upload(file)
    try:
        return await extract_payslip_data(
            content,
            filename=file.filename or "holerite.pdf",
            store=store,
            actor_id=current_user.id,
        )
    finally:
        db.commit()


@router.post("/ai/statement", response_model=StatementResponse)
async def ai_extract_statement(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(get_active_user),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    content = await _read_upload(file)
    try:
        transactions = await extract_transactions_from_pdf(
            content,
            filename=file.filename or "extrato.pdf",
            store=store,
            actor_id=current_user.id,
        )
    finally:
        db.commit()
    return StatementResponse(transactions=transactions)


@router.post("/ai/budget-suggestions", response_model=BudgetSuggestionsResponse)
async def ai_budget_suggestions(
    current_user: CurrentUser = Depends(get_active_user),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    since = (dt.date.today() - dt.timedelta(days=BUDGET_HISTORY_DAYS)).isoformat()
    expenses = [
        record
        for record in store.read(user_collection(current_user.id, "transactions"), where={"type": "expense"})
        if str(record.get("date") or "") >= since
    ]
    suggestions = await suggest_budgets(expenses, store=store, actor_id=current_user.id)
    db.commit()
    return BudgetSuggestionsResponse(suggestions=suggestions)


@router.post("/ai/insights", response_model=FinancialInsights)
async def ai_financial_insights(
    current_user: CurrentUser = Depends(get_active_user),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    profile = get_profile(store, current_user.id)
    month = dt.date.today().strftime("%Y-%m")
    this_month = [
        record
        for record in store.read(user_collection(current_user.id, "transactions"))
        if str(record.get("date") or "").startswith(month)
    ]
    try:
        return await get_financial_insights(
            profile.first_name or profile.display_name or "",
            [record for record in this_month if record.get("type") == "income"],
            [record for record in this_month if record.get("type") == "expense"],
            store.read(user_collection(current_user.id, "debts")),
            store.read(user_collection(current_user.id, "goals")),
            store=store,
            actor_id=current_user.id,
        )
    finally:
        db.commit()


@router.post("/admin/ai/education-track", response_model=EducationTrackDraft)
async def ai_education_track(
    payload: EducationTrackRequest,
    current_user: CurrentUser = Depends(require_roles("superadmin")),
    abilities: AbilitySet = Depends(get_abilities),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    abilities.ensure("create", "EducationTrack")
    try:
        return await generate_education_track(payload.topic, store=store, actor_id=current_user.id)
    finally:
        db.commit()
