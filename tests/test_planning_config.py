import pytest

from painel.database import get_db, get_engine
from painel.main import app
from painel.models.config import ConfigEntry


# ============================================
# PLANNING
# ============================================

def test_save_planning_is_idempotent_per_product_and_day(client, user_headers, make_product):
    product = make_product()

    for quantidade in (10, 25):
        response = client.post(
            "/planning",
            json={"produto_id": product.id, "data": "2024-03-05", "quantidade_planejada": quantidade},
            headers=user_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["quantidade_planejada"] == quantidade

    rows = client.get(
        "/planning",
        params={"start_date": "2024-03-01", "end_date": "2024-03-31"},
        headers=user_headers,
    ).json()["planejamentos"]

    assert len(rows) == 1
    assert rows[0]["quantidade_planejada"] == 25
    assert rows[0]["produto_nome"] == "Pão Francês"


def test_planning_rows_are_ordered_by_day_then_name(client, user_headers, make_product, add_planning):
    sonho = make_product(nome="Sonho", setor="Confeitaria")
    broa = make_product(nome="Broa")
    add_planning(sonho.id, "2024-03-06", 5)
    add_planning(sonho.id, "2024-03-05", 5)
    add_planning(broa.id, "2024-03-05", 5)

    rows = client.get(
        "/planning",
        params={"start_date": "2024-03-01", "end_date": "2024-03-31"},
        headers=user_headers,
    ).json()["planejamentos"]

    assert [(r["data"], r["produto_nome"]) for r in rows] == [
        ("2024-03-05", "Broa"),
        ("2024-03-05", "Sonho"),
        ("2024-03-06", "Sonho"),
    ]


def test_save_planning_unknown_product(client, user_headers):
    response = client.post(
        "/planning",
        json={"produto_id": 999, "data": "2024-03-05", "quantidade_planejada": 1},
        headers=user_headers,
    )

    assert response.status_code == 404


def test_save_planning_rejects_negative_quantity(client, user_headers, make_product):
    product = make_product()

    response = client.post(
        "/planning",
        json={"produto_id": product.id, "data": "2024-03-05", "quantidade_planejada": -1},
        headers=user_headers,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "invalid quantidade_planejada"}


def test_get_planning_requires_dates(client, user_headers):
    response = client.get("/planning", headers=user_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "start_date, end_date required"}


# ============================================
# CONFIG
# ============================================

def test_save_config_requires_admin(client, user_headers):
    response = client.post("/config", json={"chave": "meta", "valor": "10"}, headers=user_headers)

    assert response.status_code == 403
    assert response.json() == {"error": "Admin privileges required"}


def test_save_config_upserts(client, admin_headers, user_headers):
    first = client.post(
        "/config",
        json={"chave": "meta_perda", "valor": "5", "descricao": "Meta de perda (%)"},
        headers=admin_headers,
    )
    assert first.status_code == 200

    second = client.post("/config", json={"chave": "meta_perda", "valor": "3"}, headers=admin_headers)
    assert second.json()["data"]["valor"] == "3"

    entry = client.get("/config", params={"chave": "meta_perda"}, headers=user_headers).json()
    assert entry["valor"] == "3"
    assert entry["descricao"] == "Meta de perda (%)"

    listing = client.get("/config", headers=user_headers).json()
    assert [c["chave"] for c in listing["configuracoes"]] == ["meta_perda"]


def test_get_unknown_config(client, user_headers):
    response = client.get("/config", params={"chave": "nada"}, headers=user_headers)

    assert response.status_code == 404
    assert "nada" in response.json()["error"]


# ============================================
# INFRASTRUCTURE
# ============================================

def test_missing_database_url_is_reported(client, user_headers):
    app.dependency_overrides.pop(get_db)

    response = client.get("/products", headers=user_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "DATABASE_URL is not configured"}


def test_unauthenticated_request_never_reaches_the_store(client):
    app.dependency_overrides.pop(get_db)

    assert client.get("/products").status_code == 401


def test_database_diagnostics(client, admin_headers, make_product):
    make_product()

    response = client.get("/diagnostics/database", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [s["step"] for s in body["steps"]] == ["configuration", "connection", "tables", "counts"]
    assert body["steps"][-1]["detail"]["produtos"] == 1


def test_database_diagnostics_without_store(client, admin_headers):
    app.dependency_overrides[get_engine] = lambda: None

    response = client.get("/diagnostics/database", headers=admin_headers)

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["steps"] == [
        {"step": "configuration", "status": "failed", "detail": "DATABASE_URL is not configured"}
    ]


def test_database_diagnostics_requires_admin(client, user_headers):
    assert client.get("/diagnostics/database", headers=user_headers).status_code == 403


@pytest.mark.parametrize("path", ["/", "/docs"])
def test_public_endpoints(client, path):
    assert client.get(path).status_code == 200


def test_query_failure_is_reported_with_hint(client, user_headers, engine):
    ConfigEntry.__table__.drop(engine)

    response = client.get("/config", headers=user_headers)

    assert response.status_code == 500
    body = response.json()
    assert "configuracoes" in body["error"]
    assert body["hint"] == "OperationalError"
    assert "stack" not in body

    ConfigEntry.__table__.create(engine)
