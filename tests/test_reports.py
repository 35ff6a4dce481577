from datetime import date
from io import BytesIO

import pytest
from openpyxl import load_workbook
from sqlalchemy import insert
from sqlalchemy.exc import OperationalError

from painel.models.movements import Sale
from painel.services.movements import MovementAggregator

MARCH = {"start_date": "2024-03-01", "end_date": "2024-03-31"}


@pytest.fixture
def movements(make_product, add_sale, add_loss):
    pao = make_product(nome="Pão Francês", setor="Padaria", unidade="KG")
    sonho = make_product(nome="Sonho", setor="Confeitaria")

    add_sale(pao.id, "2024-03-05", 10, 50)
    add_sale(pao.id, "2024-03-06", 5, 25)
    add_sale(sonho.id, "2024-03-05", 2, 40)
    # Product 999 was never registered
    add_sale(999, "2024-03-06", 1, 3)
    # Outside the range
    add_sale(pao.id, "2024-04-02", 100, 500)

    add_loss(pao.id, "2024-03-05", 1, 5)

    return {"pao": pao, "sonho": sonho}


def test_sales_report_totals_reconcile(client, user_headers, movements):
    response = client.get("/reports/sales", params=MARCH, headers=user_headers)

    assert response.status_code == 200
    data = response.json()["data"]

    assert data["total_geral"] == pytest.approx(118.0)
    assert data["quantidade_total"] == pytest.approx(18.0)
    assert sum(s["total_valor"] for s in data["by_sector"]) == pytest.approx(data["total_geral"])
    assert sum(d["total_valor"] for d in data["daily"]) == pytest.approx(data["total_geral"])
    assert sum(p["total_valor"] for p in data["by_sector_product"]) == pytest.approx(data["total_geral"])


def test_sales_report_groups(client, user_headers, movements):
    data = client.get("/reports/sales", params=MARCH, headers=user_headers).json()["data"]

    assert [s["setor"] for s in data["by_sector"]] == ["Padaria", "Confeitaria", "Sem Setor"]
    assert data["by_sector"][0]["total_valor"] == pytest.approx(75.0)
    assert data["by_sector"][0]["total_produtos"] == 1

    assert [d["data"] for d in data["daily"]] == ["2024-03-05", "2024-03-06"]
    assert data["daily"][0]["total_valor"] == pytest.approx(90.0)


def test_orphan_rows_are_kept_with_fallback_labels(client, user_headers, movements):
    data = client.get("/reports/sales", params=MARCH, headers=user_headers).json()["data"]

    orphan = next(p for p in data["by_product"] if p["produto_id"] == 999)
    assert orphan["produto_nome"] == "Produto #999"
    assert orphan["setor"] == "Sem Setor"
    assert orphan["unidade"] == "un"
    assert orphan["total_valor"] == pytest.approx(3.0)


def test_top_n_limits_products(client, user_headers, movements):
    data = client.get(
        "/reports/sales", params={**MARCH, "top_n": 1}, headers=user_headers
    ).json()["data"]

    assert len(data["by_product"]) == 1
    assert data["by_product"][0]["produto_id"] == movements["pao"].id
    # Drill-down is not truncated
    assert len(data["by_sector_product"]) == 3


def test_sector_filter(client, user_headers, movements):
    data = client.get(
        "/reports/sales", params={**MARCH, "sector": "Padaria"}, headers=user_headers
    ).json()["data"]

    assert data["total_geral"] == pytest.approx(75.0)
    assert [s["setor"] for s in data["by_sector"]] == ["Padaria"]


def test_losses_report(client, user_headers, movements):
    data = client.get("/reports/losses", params=MARCH, headers=user_headers).json()["data"]

    assert data["total_geral"] == pytest.approx(5.0)
    assert data["by_product"][0]["produto_nome"] == "Pão Francês"


def test_compare_period(client, user_headers, movements):
    body = client.get(
        "/reports/sales",
        params={**MARCH, "compare_start_date": "2024-04-01", "compare_end_date": "2024-04-30"},
        headers=user_headers,
    ).json()

    assert body["compare_period"] == {"start": "2024-04-01", "end": "2024-04-30"}
    assert body["compare_data"]["total_geral"] == pytest.approx(500.0)


def test_compare_period_needs_both_dates(client, user_headers, movements):
    response = client.get(
        "/reports/sales",
        params={**MARCH, "compare_start_date": "2024-04-01"},
        headers=user_headers,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "compare_start_date, compare_end_date required"}


def test_inverted_range_is_rejected(client, user_headers):
    response = client.get(
        "/reports/sales",
        params={"start_date": "2024-03-31", "end_date": "2024-03-01"},
        headers=user_headers,
    )

    assert response.status_code == 400


def test_empty_range_has_no_groups(client, user_headers, movements):
    data = client.get(
        "/reports/sales",
        params={"start_date": "2023-01-01", "end_date": "2023-01-31"},
        headers=user_headers,
    ).json()["data"]

    assert data["by_sector"] == []
    assert data["total_geral"] == 0


# ============================================
# MULTI-PERIOD
# ============================================

def test_multi_period_keeps_order_and_labels(client, user_headers, movements):
    payload = {
        "periods": [
            {"start_date": "2024-03-06", "end_date": "2024-03-06", "label": "Quarta"},
            {"start_date": "2024-03-05", "end_date": "2024-03-05"},
        ],
        "report_type": "sales",
    }

    response = client.post("/reports/multi-period", json=payload, headers=user_headers)

    assert response.status_code == 200
    periods = response.json()["periods"]

    assert [p["label"] for p in periods] == ["Quarta", "Período 2"]
    assert periods[0]["data"]["total_geral"]["valor_reais"] == pytest.approx(28.0)
    assert periods[1]["data"]["total_geral"]["valor_reais"] == pytest.approx(90.0)

    by_product = periods[1]["data"]["total_by_product"]
    assert by_product[str(movements["sonho"].id)]["valor_reais"] == pytest.approx(40.0)
    assert periods[1]["data"]["total_by_sector"]["Padaria"]["quantidade"] == pytest.approx(10.0)
    assert len(periods[1]["data"]["raw"]) == 2


def test_multi_period_product_filter(client, user_headers, movements):
    payload = {
        "periods": [{"start_date": "2024-03-01", "end_date": "2024-03-31"}],
        "product_ids": [movements["sonho"].id],
    }

    periods = client.post("/reports/multi-period", json=payload, headers=user_headers).json()["periods"]

    assert periods[0]["data"]["total_geral"]["valor_reais"] == pytest.approx(40.0)


def test_multi_period_fails_as_a_whole(client, user_headers, movements, monkeypatch):
    original = MovementAggregator.by_date_product
    calls = []

    def second_period_fails(self):
        calls.append(self.start_date)
        if len(calls) == 2:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return original(self)

    monkeypatch.setattr(MovementAggregator, "by_date_product", second_period_fails)

    payload = {
        "periods": [
            {"start_date": "2024-03-01", "end_date": "2024-03-31"},
            {"start_date": "2024-04-01", "end_date": "2024-04-30"},
            {"start_date": "2024-05-01", "end_date": "2024-05-31"},
        ]
    }

    response = client.post("/reports/multi-period", json=payload, headers=user_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "database is locked", "hint": "OperationalError"}
    assert len(calls) == 2


def test_multi_period_requires_periods(client, user_headers):
    response = client.post("/reports/multi-period", json={"periods": []}, headers=user_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "periods required"}


# ============================================
# WEEKLY / DASHBOARD / PRODUCT MOVEMENT
# ============================================

def test_weekly_report(client, user_headers, movements):
    weeks = client.get("/reports/weekly", params=MARCH, headers=user_headers).json()["weeks"]

    assert len(weeks) == 1
    week = weeks[0]
    assert week["numero_semana"] == 10
    assert week["data_inicio"] == "2024-03-05"
    assert week["vendas_valor"] == pytest.approx(118.0)
    assert week["perdas_valor"] == pytest.approx(5.0)
    assert week["taxa_perda"] == pytest.approx(100 / 18)


def test_weekly_report_covers_bulk_inserted_rows(client, db, user_headers, make_product):
    product = make_product()
    db.execute(insert(Sale), [
        {"produto_id": product.id, "data": date(2024, 3, 5), "quantidade": 4, "valor_reais": 20},
        {"produto_id": product.id, "data": date(2024, 3, 11), "quantidade": 1, "valor_reais": 5},
    ])
    db.commit()

    weeks = client.get("/reports/weekly", params=MARCH, headers=user_headers).json()["weeks"]

    assert [(w["ano"], w["numero_semana"]) for w in weeks] == [(2024, 10)]
    assert weeks[0]["vendas_valor"] == pytest.approx(25.0)

    body = client.get(
        "/reports/product-movement",
        params={"product_id": product.id, "week_number": 10, "year": 2024},
        headers=user_headers,
    ).json()
    assert body["current_week"]["sales"] == pytest.approx(5.0)


def test_weekly_report_splits_a_week_across_new_year(client, user_headers, make_product, add_sale):
    product = make_product()
    add_sale(product.id, "2023-12-31", 2, 10)
    add_sale(product.id, "2024-01-01", 3, 15)

    weeks = client.get(
        "/reports/weekly",
        params={"start_date": "2023-12-26", "end_date": "2024-01-01"},
        headers=user_headers,
    ).json()["weeks"]

    assert [(w["ano"], w["numero_semana"]) for w in weeks] == [(2023, 52), (2024, 0)]
    assert {w["data_inicio"] for w in weeks} == {"2023-12-26"}
    assert {w["data_fim"] for w in weeks} == {"2024-01-01"}
    assert [w["vendas_valor"] for w in weeks] == [pytest.approx(10.0), pytest.approx(15.0)]


def test_dashboard(client, user_headers, movements):
    body = client.get("/reports/dashboard", params=MARCH, headers=user_headers).json()

    assert body["top_sales"][0]["produto"] == "Pão Francês"
    assert body["top_sales"][0]["total_vendas"] == pytest.approx(15.0)

    assert len(body["loss_analysis"]) == 1
    loss = body["loss_analysis"][0]
    assert loss["perda"] == pytest.approx(1.0)
    assert loss["venda"] == pytest.approx(15.0)
    assert loss["taxa_perda"] == pytest.approx(100 / 15)


def test_product_movement(client, user_headers, movements, add_sale):
    pao = movements["pao"]
    add_sale(pao.id, "2024-02-27", 5, 25)

    body = client.get(
        "/reports/product-movement",
        params={"product_id": pao.id, "week_number": 10, "year": 2024},
        headers=user_headers,
    ).json()

    assert body["current_week"] == {"sales": pytest.approx(15.0), "losses": pytest.approx(1.0)}
    # Weeks 9 and 10 only; week 14 is after the requested week
    assert body["average_4_weeks"]["sales"] == pytest.approx(10.0)
    assert body["average_4_weeks"]["losses"] == pytest.approx(0.5)


# ============================================
# EXPORT
# ============================================

def test_export_report(client, user_headers, movements):
    response = client.get(
        "/exports/report", params={**MARCH, "type": "sales"}, headers=user_headers
    )

    assert response.status_code == 200
    assert "attachment" in response.headers["content-disposition"]

    workbook = load_workbook(BytesIO(response.content))
    assert workbook.sheetnames == ["Vendas por Setor", "Vendas por Produto"]

    detail = workbook["Vendas por Produto"]
    assert detail.max_row == 4
