import pytest
from fastapi.testclient import TestClient

from landed_cost.api.main import app
from landed_cost.api.state import get_estimates_service
from landed_cost.services.estimates_service import EstimatesService


CALCULATION_BODY = {
    "products": [
        {"name": "Basmati Rice", "quantity": 10, "unitPrice": 100, "included": True, "margin": 15},
        {"name": "Red Lentils", "quantity": 0, "unitPrice": 80, "included": True, "margin": 15},
    ],
    "transportCost": 0,
    "packingCost": 0,
    "fumigationCost": 0,
    "customsClearanceCost": 0,
    "exportDutyRate": 0,
    "freightCost": 0,
    "importDuty": 0,
    "destinationCustomsClearance": 0,
    "destinationTransport": 0,
    "distributorMargin": 0,
    "retailerMargin": 0,
}


def estimate_body(**overrides):
    body = {
        "containerId": "CONT-2024-001",
        "destination": "Germany",
        "estimateDate": "2024-05-01",
        "products": [
            {"name": "Basmati Rice", "quantity": 10, "unitPrice": 100, "included": True, "margin": 15},
        ],
        "createdBy": "analyst-1",
        "userRole": "ops_analyst",
    }
    body.update(overrides)
    return body


@pytest.fixture
def client():
    service = EstimatesService()
    app.dependency_overrides[get_estimates_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_root(client):
    assert client.get("/").json()["status"] == "online"


def test_calculate(client):
    response = client.post("/calculate", json=CALCULATION_BODY)

    assert response.status_code == 200
    data = response.json()
    assert data["rawMaterialsCost"] == pytest.approx(1000)
    assert data["invoiceValue"] == pytest.approx(1150)
    assert data["weightedMargin"] == pytest.approx(15)
    assert len(data["productBreakdown"]) == 1
    assert data["productBreakdown"][0]["invoicePrice"] == pytest.approx(115)


@pytest.mark.parametrize("field, value", [
    ("transportCost", -1),
    ("transportCost", "100"),
    ("retailerMargin", None),
])
def test_calculate_rejects_bad_numbers(client, field, value):
    body = dict(CALCULATION_BODY, **{field: value})

    assert client.post("/calculate", json=body).status_code == 422


def test_calculate_rejects_negative_quantity(client):
    body = dict(CALCULATION_BODY)
    body["products"] = [{"name": "A", "quantity": -2, "unitPrice": 10, "included": True, "margin": 5}]

    assert client.post("/calculate", json=body).status_code == 422


def test_calculate_rejects_duplicate_names(client):
    body = dict(CALCULATION_BODY)
    body["products"] = [CALCULATION_BODY["products"][0], CALCULATION_BODY["products"][0]]

    response = client.post("/calculate", json=body)

    assert response.status_code == 422
    assert "Duplicate product name(s): Basmati Rice" in response.text


def test_create_and_get(client):
    response = client.post("/api/estimates", json=estimate_body())

    assert response.status_code == 201
    created = response.json()
    assert created["id"] == 1
    assert created["status"] == "draft"
    assert created["distributorMargin"] == 12
    assert created["calculationResults"]["invoiceValue"] == pytest.approx(1150)

    fetched = client.get("/api/estimates/1")
    assert fetched.status_code == 200
    assert fetched.json()["containerId"] == "CONT-2024-001"


def test_create_invalid(client):
    response = client.post("/api/estimates", json=estimate_body(containerId="", packingCost=-10))

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["message"] == "Invalid data"
    fields = {error["field"] for error in detail["errors"]}
    assert {"containerId", "packingCost"} <= fields


def test_create_keeps_supplied_results(client):
    results = client.post("/calculate", json=CALCULATION_BODY).json()
    results["importerTotalCost"] = 999.0

    response = client.post("/api/estimates", json=estimate_body(calculationResults=results))

    assert response.status_code == 201
    stored = response.json()["calculationResults"]
    assert stored["importerTotalCost"] == 999.0
    assert stored["productBreakdown"][0]["unitCost"] == 100


@pytest.mark.parametrize("results", [
    {"importerTotalCost": "n/a"},
    {"importerTotalCost": 10.0},
    "not-an-object",
])
def test_create_rejects_malformed_results(client, results):
    response = client.post("/api/estimates", json=estimate_body(calculationResults=results))

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Invalid data"
    assert client.get("/api/estimates").json() == []
    assert client.get("/api/estimates/summary").status_code == 200


def test_create_rejects_duplicate_product_names(client):
    product = {"name": "Black Gram", "quantity": 1, "unitPrice": 1, "included": True, "margin": 1}
    response = client.post("/api/estimates", json=estimate_body(products=[product, product]))

    assert response.status_code == 400
    assert response.json()["detail"]["errors"] == ["Duplicate product name 'Black Gram'"]


def test_list_filter_and_search(client):
    client.post("/api/estimates", json=estimate_body(containerId="MSKU-1", destination="Japan"))
    client.post("/api/estimates", json=estimate_body(containerId="CONT-2", status="completed"))
    client.post("/api/estimates", json=estimate_body(containerId="CONT-3", destination="Canada"))

    assert [e["id"] for e in client.get("/api/estimates").json()] == [3, 2, 1]
    assert [e["id"] for e in client.get("/api/estimates/status/completed").json()] == [2]
    assert [e["id"] for e in client.get("/api/estimates", params={"status": "draft"}).json()] == [3, 1]
    assert [e["id"] for e in client.get("/api/estimates/search", params={"q": "japan"}).json()] == [1]
    assert [e["id"] for e in client.get("/api/estimates/search", params={"q": "cont"}).json()] == [3, 2]


def test_search_requires_query(client):
    response = client.get("/api/estimates/search")

    assert response.status_code == 400
    assert response.json()["detail"] == "Search query is required"


def test_missing_estimate(client):
    assert client.get("/api/estimates/5").status_code == 404
    assert client.patch("/api/estimates/5", json={"status": "completed"}).status_code == 404
    assert client.delete("/api/estimates/5").status_code == 404
    assert client.get("/api/estimates/5/export.csv").status_code == 404
    response = client.post("/api/estimates/5/duplicate")
    assert response.status_code == 404
    assert response.json()["detail"] == "Original estimate not found"


def test_patch_recalculates(client):
    client.post("/api/estimates", json=estimate_body())

    response = client.patch("/api/estimates/1", json={"exportDutyRate": 10, "status": "completed"})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["exportDutyRate"] == 10
    assert data["calculationResults"]["invoiceValue"] == pytest.approx(1265)


def test_patch_with_null_results_recalculates(client):
    client.post("/api/estimates", json=estimate_body())

    response = client.patch("/api/estimates/1", json={"transportCost": 500, "calculationResults": None})

    assert response.status_code == 200
    assert response.json()["calculationResults"]["invoiceValue"] == pytest.approx(1725)


def test_patch_invalid_status(client):
    client.post("/api/estimates", json=estimate_body())

    response = client.patch("/api/estimates/1", json={"status": "deleted"})

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Invalid data"


def test_delete(client):
    client.post("/api/estimates", json=estimate_body())

    assert client.delete("/api/estimates/1").status_code == 204
    assert client.get("/api/estimates/1").status_code == 404


def test_duplicate(client):
    client.post("/api/estimates", json=estimate_body(status="completed"))

    response = client.post("/api/estimates/1/duplicate")

    assert response.status_code == 201
    data = response.json()
    assert data["id"] == 2
    assert data["containerId"] == "CONT-2024-001-COPY"
    assert data["status"] == "draft"


def test_export_csv(client):
    client.post("/api/estimates", json=estimate_body(distributorMargin=0, retailerMargin=0))

    response = client.get("/api/estimates/1/export.csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "Basmati Rice,10 MT,$100.00,$115.00,$115.00,$115.00" in response.text


def test_optimize(client):
    client.post("/api/estimates", json=estimate_body(transportCost=200))

    response = client.get("/api/estimates/1/optimize", params={"target_margin": 90})

    assert response.status_code == 200
    data = response.json()
    categories = [r["category"] for r in data["recommendations"]]
    assert categories[0] == "Raw Materials"
    assert "Margin Enhancement" in categories
    assert data["net_benefit"] == pytest.approx(data["total_savings"] - data["implementation_cost"])


def test_summary(client):
    client.post("/api/estimates", json=estimate_body(status="completed"))
    client.post("/api/estimates", json=estimate_body(containerId="C-2", defaultMargin=25))

    summary = client.get("/api/estimates/summary").json()

    assert summary["total_estimates"] == 2
    assert summary["completed"] == 1
    assert summary["total_value"] == pytest.approx(2300)
    assert summary["average_margin"] == pytest.approx(20)
