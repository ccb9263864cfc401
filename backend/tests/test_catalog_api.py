"""Subscription plans, education tracks and the admin log viewer."""

PLAN = {"name": "Pro", "description": "Tudo liberado", "price": 19.9, "features": ["IA ilimitada"]}

TRACK = {
    "slug": "Investir do Zero!",
    "title": "Investir do zero",
    "description": "Primeiros passos",
    "order": 2,
    "content": {
        "introduction": "Vamos começar.",
        "modules": [{"type": "narrative", "title": "A história da Ana", "description": "Ana guardou 10%..."}],
    },
}


def test_public_plan_list_only_shows_active_plans_by_price(api):
    api.seed("subscription_plans", {"name": "Premium", "price": 49.9, "active": True}, doc_id="premium")
    api.seed("subscription_plans", {"name": "Pro", "price": 19.9, "active": True}, doc_id="pro")
    api.seed("subscription_plans", {"name": "Legacy", "price": 9.9, "active": False}, doc_id="legacy")

    resp = api.client.get("/api/v1/plans")

    assert resp.status_code == 200
    assert [plan["id"] for plan in resp.json()] == ["pro", "premium"]


def test_plan_admin_is_superadmin_only(api):
    api.login("u1")
    assert api.client.post("/api/v1/admin/plans", json=PLAN).status_code == 403
    assert api.fetch_all("subscription_plans") == []

    api.logout()
    assert api.client.post("/api/v1/admin/plans", json=PLAN).status_code == 401


def test_plan_create_update_delete(api):
    api.login("admin", role="superadmin")

    resp = api.client.post("/api/v1/admin/plans", json=PLAN)
    assert resp.status_code == 201
    plan_id = resp.json()["id"]

    resp = api.client.patch(f"/api/v1/admin/plans/{plan_id}", json={"price": 24.9, "active": False})
    assert resp.status_code == 200
    assert resp.json()["price"] == 24.9
    assert api.fetch("subscription_plans", plan_id)["active"] is False

    assert api.client.delete(f"/api/v1/admin/plans/{plan_id}").status_code == 204
    assert api.fetch("subscription_plans", plan_id) is None
    assert api.client.delete(f"/api/v1/admin/plans/{plan_id}").status_code == 404

    messages = [entry["message"] for entry in api.fetch_all("logs")]
    assert "Plano criado: Pro" in messages
    assert "Plano excluído: Pro" in messages


def test_plan_price_must_be_positive(api):
    api.login("admin", role="superadmin")
    assert api.client.post("/api/v1/admin/plans", json={**PLAN, "price": 0}).status_code == 422


def test_education_track_is_stored_under_normalized_slug(api):
    api.login("admin", role="superadmin")

    resp = api.client.post("/api/v1/admin/education", json=TRACK)
    assert resp.status_code == 201
    assert resp.json()["id"] == "investir-do-zero"

    api.logout()
    resp = api.client.get("/api/v1/education/investir-do-zero")
    assert resp.status_code == 200
    assert resp.json()["content"]["modules"][0]["title"] == "A história da Ana"
    assert [track["slug"] for track in api.client.get("/api/v1/education").json()] == ["investir-do-zero"]


def test_education_tracks_are_listed_by_order(api):
    api.seed("education_tracks", {"slug": "b", "title": "B", "order": 2}, doc_id="b")
    api.seed("education_tracks", {"slug": "a", "title": "A", "order": 1}, doc_id="a")

    assert [track["id"] for track in api.client.get("/api/v1/education").json()] == ["a", "b"]


def test_education_track_rejects_module_without_content(api):
    api.login("admin", role="superadmin")
    track = {**TRACK, "content": {"modules": [{"type": "finalQuiz", "title": "Quiz"}]}}
    assert api.client.post("/api/v1/admin/education", json=track).status_code == 422


def test_education_track_delete(api):
    api.seed("education_tracks", {"slug": "dividas", "title": "Dívidas"}, doc_id="dividas")

    api.login("u1")
    assert api.client.delete("/api/v1/admin/education/dividas").status_code == 403

    api.login("admin", role="superadmin")
    assert api.client.delete("/api/v1/admin/education/dividas").status_code == 204
    assert api.client.get("/api/v1/education/dividas").status_code == 404
    assert api.client.delete("/api/v1/admin/education/dividas").status_code == 404


def test_admin_logs_filter_by_level(api):
    api.seed("logs", {"level": "info", "message": "a", "created_by": "x", "timestamp": "2024-01-01T10:00:00+00:00"})
    api.seed("logs", {"level": "error", "message": "b", "created_by": "x", "timestamp": "2024-01-02T10:00:00+00:00"})
    api.seed("logs", {"level": "info", "message": "c", "created_by": "x", "timestamp": "2024-01-03T10:00:00+00:00"})

    api.login("u1")
    assert api.client.get("/api/v1/admin/logs").status_code == 403

    api.login("admin", role="superadmin")
    assert [entry["message"] for entry in api.client.get("/api/v1/admin/logs").json()] == ["c", "b", "a"]
    assert [entry["message"] for entry in api.client.get("/api/v1/admin/logs?level=info").json()] == ["c", "a"]
    assert api.client.get("/api/v1/admin/logs?level=debug").status_code == 422
