from httpx import ASGITransport, AsyncClient

from app.main import create_app
from app.observability.metrics import InMemoryEmitter


async def test_metrics_endpoint_returns_in_memory_snapshot() -> None:
    emitter = InMemoryEmitter()
    app = create_app(emitter=emitter)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        assert (await client.get("/health")).status_code == 200
        assert (await client.get("/api/products/8")).status_code == 404

        resp = await client.get("/api/metrics")
        assert resp.status_code == 200
        metrics = resp.json()["metrics"]

        # /api/metrics itself is not counted.
        again = (await client.get("/api/metrics")).json()["metrics"]

    assert metrics["Traffic/AllRequests"]["count"] == 2
    assert metrics["Traffic/StatusCode/200"]["count"] == 1
    assert metrics["Resource/8/ClientError"]["count"] == 1
    assert metrics["ResponseTime/AllEndpoints"]["min"] >= 0
    assert again["Traffic/AllRequests"]["count"] == 2


async def test_metrics_endpoint_is_hidden_for_write_only_backends(api_client) -> None:
    resp = await api_client.get("/api/metrics")
    assert resp.status_code == 404


async def test_metrics_endpoint_can_be_disabled(monkeypatch) -> None:
    from app.config import get_settings

    monkeypatch.setenv("ENABLE_METRICS_ENDPOINT", "false")
    get_settings.cache_clear()
    app = create_app(emitter=InMemoryEmitter())

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/api/metrics")
    assert resp.status_code == 404


def test_in_memory_emitter_aggregates_and_resets() -> None:
    emitter = InMemoryEmitter()
    emitter.record_metric("ResponseTime/GET", 4.0)
    emitter.record_metric("ResponseTime/GET", 2.0)

    snap = emitter.snapshot()["metrics"]["ResponseTime/GET"]
    assert snap == {"count": 2, "total": 6.0, "min": 2.0, "max": 4.0}
    assert emitter.current_transaction() is None
    assert emitter.is_attached() is False

    emitter.reset()
    assert emitter.snapshot() == {"metrics": {}}


async def test_settings_passed_to_create_app_win_over_environment(tmp_path) -> None:
    from sqlalchemy.orm import Session

    from app.config import Settings
    from app.db.models import Product
    from app.db.session import get_engine, init_db

    settings = Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'explicit.db'}",
        ENABLE_METRICS_ENDPOINT=False,
        METRICS_EMISSION_TIMEOUT_MS=0,
    )
    init_db(settings)
    app = create_app(emitter=InMemoryEmitter(), settings=settings)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        created = await client.post("/api/products", json={"name": "Explicit", "price": 1.0})
        assert created.status_code == 201
        assert (await client.get("/api/metrics")).status_code == 404

    product_id = created.json()["id"]
    with Session(get_engine(settings)) as db:
        assert db.get(Product, product_id).name == "Explicit"
    with Session(get_engine()) as db:
        assert db.get(Product, product_id) is None
