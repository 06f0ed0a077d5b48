import pytest
from fastapi.testclient import TestClient

from storefront import __version__
from storefront.app_setup import create_app
from storefront.config import Settings


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["status"] == "healthy"
    assert body["version"] == __version__
    assert body["uptime"] >= 0
    assert body["timestamp"].endswith("Z")


def test_health_detailed(client):
    body = client.get("/api/health/detailed").json()
    assert body["environment"] == "test"
    assert body["services"]["stripe"] == "configured"
    assert body["services"]["database"] == "configured"
    assert body["services"]["email"] == "missing"
    assert body["rateLimit"]["enabled"] is False


def test_wrong_method_returns_405_with_allowed_list(client):
    res = client.get("/api/create-payment-intent")
    assert res.status_code == 405
    body = res.json()
    assert body["success"] is False
    assert body["error"] == "Method not allowed"
    assert "POST" in body["allowed"]


def test_unknown_route_returns_envelope(client):
    res = client.get("/api/nope")
    assert res.status_code == 404
    assert res.json()["success"] is False
    assert res.json()["error"] == "Not found"


def test_security_headers(client):
    res = client.get("/api/health")
    assert res.headers["X-Frame-Options"] == "DENY"
    assert res.headers["X-Content-Type-Options"] == "nosniff"


def test_missing_required_settings_fail_startup():
    app = create_app(Settings(stripe_secret_key="sk_test"))
    with pytest.raises(RuntimeError) as exc:
        with TestClient(app):
            pass
    assert "STRIPE_WEBHOOK_SECRET" in str(exc.value)
    assert "SUPABASE_URL" in str(exc.value)


def test_lifespan_builds_resources(test_settings):
    app = create_app(test_settings)
    with TestClient(app) as c:
        resources = app.state.resources
        assert resources.settings is test_settings
        assert app.state.started_at is not None
        assert resources.payments.policy.max_attempts == 3
        assert resources.payments.policy.delays() == [2.0, 4.0]
        assert c.get("/api/health").status_code == 200
    assert app.state.resources is None


def test_unhandled_error_hides_details_in_production(test_settings, payment_service, monkeypatch):
    from storefront.dependencies import get_payment_service

    def boom(*args, **kwargs):
        raise KeyError("secret detail")

    monkeypatch.setattr(payment_service, "create_payment_intent", boom)
    app = create_app(test_settings)
    app.dependency_overrides[get_payment_service] = lambda: payment_service
    with TestClient(app, raise_server_exceptions=False) as c:
        res = c.post("/api/create-payment-intent", json={"amount": 100})
    assert res.status_code == 500
    assert res.json()["error"] == "Internal server error"
    assert "message" not in res.json()
    assert "stack" not in res.json()


def test_local_rate_limit_fallback(test_settings, payment_service):
    from dataclasses import replace

    from storefront.dependencies import get_payment_service

    app = create_app(replace(test_settings, local_rate_limit_fallback=True))
    app.dependency_overrides[get_payment_service] = lambda: payment_service
    with TestClient(app) as c:
        codes = [c.post("/api/create-payment-intent", json={"amount": 100}).status_code for _ in range(11)]
    assert codes[:10] == [200] * 10
    assert codes[10] == 429


def _dev_client(test_settings, payment_service):
    from dataclasses import replace

    from storefront.dependencies import get_payment_service

    app = create_app(replace(test_settings, environment="development"))
    app.dependency_overrides[get_payment_service] = lambda: payment_service
    return TestClient(app, raise_server_exceptions=False)


def test_processor_error_details_in_development(test_settings, payment_service, fake_gateway, sleeps):
    import stripe

    fake_gateway.failures = [stripe.CardError("Your card was declined.", "number", "card_declined", http_status=402)]

    with _dev_client(test_settings, payment_service) as c:
        res = c.post("/api/create-payment-intent", json={"amount": 100})

    assert res.status_code == 500
    body = res.json()
    assert body["error"] == "Failed to create payment intent"
    assert "declined" in body["message"]
    assert body["details"]["type"] == "CardError"
    assert body["details"]["code"] == "card_declined"
    assert body["details"]["statusCode"] == 402
    # erreur carte: aucun retry
    assert len(fake_gateway.intent_calls) == 1
    assert sleeps == []


def test_unhandled_error_exposes_stack_in_development(test_settings, payment_service, monkeypatch):
    def boom(*args, **kwargs):
        raise KeyError("secret detail")

    monkeypatch.setattr(payment_service, "create_payment_intent", boom)

    with _dev_client(test_settings, payment_service) as c:
        res = c.post("/api/create-payment-intent", json={"amount": 100})

    assert res.status_code == 500
    body = res.json()
    assert body["error"] == "Internal server error"
    assert "secret detail" in body["message"]
    assert isinstance(body["stack"], list)
    assert any("KeyError" in line for line in body["stack"])
