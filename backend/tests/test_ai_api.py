"""AI endpoints: error mapping, persistence rules and role gates."""

import datetime as dt
import json
from unittest.mock import patch

from xo_finance.services.ai.common.providers.base import BaseProvider
from xo_finance.services.ai.common.providers.mock import MockProvider

PROVIDER_PATH = "xo_finance.services.ai.common.router.get_provider"


class _DownProvider(BaseProvider):
    name = "down"
    supports_media = True

    async def generate(self, prompt, **kwargs):
        raise ConnectionError("backend unreachable")


def _mock(payload) -> MockProvider:
    return MockProvider(raw_text=json.dumps(payload, ensure_ascii=False))


def _pdf(content: bytes = b"%PDF-1.4 holerite"):
    return {"file": ("holerite.pdf", content, "application/pdf")}


def test_payslip_upload_returns_extraction_without_persisting(api):
    api.login("u1")
    with patch(PROVIDER_PATH, return_value=_mock({"net_amount": 3200.5, "company_name": "ACME"})):
        resp = api.client.post("/api/v1/ai/payslip", files=_pdf())

    assert resp.status_code == 200
    assert resp.json()["net_amount"] == 3200.5
    assert api.fetch_all("users/u1/transactions") == []
    [run] = api.fetch_all("ai_runs")
    assert run["scope"] == "payslip"
    assert run["actor_id"] == "u1"


def test_payslip_error_mapping(api):
    api.login("u1")

    resp = api.client.post("/api/v1/ai/payslip", files=_pdf(b""))
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_input"

    with patch(PROVIDER_PATH, return_value=_mock({"company_name": "ACME"})):
        resp = api.client.post("/api/v1/ai/payslip", files=_pdf())
    assert resp.status_code == 422
    assert resp.json()["code"] == "model_output_invalid"
    assert resp.json()["retryable"] is True

    with patch(PROVIDER_PATH, return_value=_DownProvider()):
        resp = api.client.post("/api/v1/ai/payslip", files=_pdf())
    assert resp.status_code == 503
    assert resp.json()["code"] == "model_unavailable"
    assert "backend unreachable" not in resp.text

    # Rejected runs are still audited.
    assert [run["outcome"] for run in api.fetch_all("ai_runs")] == ["model_output_invalid"]


def test_statement_upload(api):
    api.login("u1")
    payload = {
        "transactions": [
            {"date": "2024-05-01", "description": "PIX SALARIO", "amount": 4200, "suggested_category": "Salário"},
            {"date": "2024-05-02", "description": "IFOOD", "amount": -58.9, "suggested_category": "Alimentação"},
            {"date": "2024-05-03", "description": "", "amount": -1},
        ]
    }
    with patch(PROVIDER_PATH, return_value=_mock(payload)):
        resp = api.client.post("/api/v1/ai/statement", files=_pdf())

    assert resp.status_code == 200
    assert [t["description"] for t in resp.json()["transactions"]] == ["PIX SALARIO", "IFOOD"]


def _seed_expenses(api, uid: str, count: int, days_ago: int = 5):
    day = (dt.date.today() - dt.timedelta(days=days_ago)).isoformat()
    for i in range(count):
        api.seed(
            f"users/{uid}/transactions",
            {"type": "expense", "amount": 100 + i, "date": day, "description": f"d{i}", "category": "Lazer" if i % 2 else "Alimentação"},
        )


def test_budget_suggestions(api):
    api.login("u1")
    _seed_expenses(api, "u1", 6)
    reply = {
        "suggestions": [
            {"category": "Alimentação", "amount": 290, "justification": "Tente R$250."},
            {"category": "Lazer", "amount": 270, "justification": "Tente R$250."},
        ]
    }
    provider = _mock(reply)
    with patch(PROVIDER_PATH, return_value=provider):
        resp = api.client.post("/api/v1/ai/budget-suggestions")

    assert resp.status_code == 200
    suggestions = resp.json()["suggestions"]
    assert [s["amount"] for s in suggestions] == [250.0, 250.0]
    assert len(provider.calls) == 1


def test_budget_suggestions_ignore_old_history(api):
    api.login("u1")
    _seed_expenses(api, "u1", 6, days_ago=200)
    provider = _mock({"suggestions": []})
    with patch(PROVIDER_PATH, return_value=provider):
        resp = api.client.post("/api/v1/ai/budget-suggestions")

    assert resp.json() == {"suggestions": None}
    assert provider.calls == []


def test_budget_suggestions_null_on_model_failure(api):
    api.login("u1")
    _seed_expenses(api, "u1", 6)
    with patch(PROVIDER_PATH, return_value=_DownProvider()):
        resp = api.client.post("/api/v1/ai/budget-suggestions")

    assert resp.status_code == 200
    assert resp.json() == {"suggestions": None}


def test_insights_use_current_month(api):
    api.login("u1", name="Ana Souza")
    today = dt.date.today()
    api.seed("users/u1/transactions", {"type": "income", "amount": 5000, "date": today.isoformat(), "description": "Salário ACME", "category": "Salário"})
    api.seed("users/u1/transactions", {"type": "expense", "amount": 80, "date": "2001-01-01", "description": "Antigo", "category": "Lazer"})
    provider = _mock({"summary": "Olá, Ana! Mês positivo.", "action_points": ["Poupe 10%."]})

    with patch(PROVIDER_PATH, return_value=provider):
        resp = api.client.post("/api/v1/ai/insights")

    assert resp.status_code == 200
    assert resp.json()["action_points"] == ["Poupe 10%."]
    prompt = provider.calls[0]["prompt"]
    assert "Salário ACME" in prompt
    assert "Antigo" not in prompt
    assert "Olá, Ana!" in prompt


def test_education_draft_is_superadmin_only(api):
    api.login("u1")
    assert api.client.post("/api/v1/admin/ai/education-track", json={"topic": "Investimentos"}).status_code == 403

    api.login("admin", role="superadmin")
    draft = {
        "title": "Investir do zero",
        "slug": "investir-do-zero",
        "modules": [{"type": "microHabits", "title": "Hábitos", "habits": ["Guarde 5%"]}],
    }
    with patch(PROVIDER_PATH, return_value=_mock(draft)):
        resp = api.client.post("/api/v1/admin/ai/education-track", json={"topic": "Investimentos"})

    assert resp.status_code == 200
    assert resp.json()["slug"] == "investir-do-zero"
    # Drafts are not published until an admin saves them.
    assert api.fetch_all("education_tracks") == []


def test_ai_endpoints_require_authentication(api):
    assert api.client.post("/api/v1/ai/payslip", files=_pdf()).status_code == 401
    assert api.client.post("/api/v1/ai/budget-suggestions").status_code == 401


def test_oversized_upload_is_rejected_without_reading_it_all(api, monkeypatch):
    from starlette.datastructures import UploadFile

    from xo_finance.core.config import get_settings

    monkeypatch.setenv("AI_MAX_DOCUMENT_BYTES", "16")
    get_settings.cache_clear()
    sizes = []
    original_read = UploadFile.read

    async def recording_read(self, size=-1):
        sizes.append(size)
        return await original_read(self, size)

    monkeypatch.setattr(UploadFile, "read", recording_read)
    api.login("u1")
    provider = _mock({"net_amount": 1})

    with patch(PROVIDER_PATH, return_value=provider):
        resp = api.client.post("/api/v1/ai/payslip", files=_pdf(b"%PDF" + b"0" * 4096))

    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_input"
    assert sizes == [17]
    assert provider.calls == []
