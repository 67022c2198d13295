"""Itinerary CRUD, expenses, budget status and calendar export"""
import pytest


def itinerary_payload(**overrides):
    payload = {
        "title": "Kerala backwaters",
        "start_date": "2026-12-20",
        "end_date": "2026-12-27",
        "destinations": [
            {
                "name": "Kochi",
                "coordinates": {"lat": 9.9312, "lng": 76.2673},
                "arrival_date": "2026-12-20",
                "departure_date": "2026-12-23",
                "activities": ["Fort Kochi walk", "Kathakali show"]
            },
            {"name": "Alleppey"}
        ],
        "budget": {"total": 1000, "currency": "INR"},
        "notes": "Houseboat on day 4"
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def created(client):
    response = client.post("/api/itineraries", json=itinerary_payload())
    assert response.status_code == 201
    return response.json()["itinerary"]


def test_create_returns_derived_fields(client):
    response = client.post("/api/itineraries", json=itinerary_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Itinerary created"

    itinerary = body["itinerary"]
    assert itinerary["id"] == "1"
    assert itinerary["status"] == "planning"
    assert itinerary["duration_days"] == 7
    assert itinerary["budget"]["currency"] == "INR"
    assert itinerary["budget_status"] == "on-track"
    assert itinerary["budget_summary"] == {"total": 1000, "spent": 0, "remaining": 1000, "percentage": 0}
    assert itinerary["ai_recommendations"] == []
    assert itinerary["created_at"]


def test_create_requires_title(client):
    payload = itinerary_payload()
    del payload["title"]

    response = client.post("/api/itineraries", json=payload)

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "ValidationError"
    assert any("title" in error["loc"] for error in detail["details"]["errors"])


def test_end_date_must_follow_start_date(client):
    response = client.post("/api/itineraries", json=itinerary_payload(end_date="2026-12-20"))

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "End date must be after start date"


def test_destinations_without_names_are_rejected(client):
    response = client.post(
        "/api/itineraries",
        json=itinerary_payload(destinations=[{"name": "   "}, "Kochi", {"notes": "no name"}])
    )

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Please provide at least one destination with a name"


def test_unnamed_destinations_are_dropped(client):
    response = client.post(
        "/api/itineraries",
        json=itinerary_payload(destinations=[{"name": ""}, {"name": " Munnar "}])
    )

    assert response.status_code == 201
    assert [d["name"] for d in response.json()["itinerary"]["destinations"]] == ["Munnar"]


@pytest.mark.parametrize("total", ["abc", -50, None])
def test_unusable_budget_totals_become_zero(client, total):
    response = client.post("/api/itineraries", json=itinerary_payload(budget={"total": total}))

    assert response.status_code == 201
    itinerary = response.json()["itinerary"]
    assert itinerary["budget"]["total"] == 0
    assert itinerary["budget_status"] == "no-budget"


def test_unsupported_currency_is_rejected(client):
    response = client.post("/api/itineraries", json=itinerary_payload(budget={"total": 100, "currency": "XYZ"}))

    assert response.status_code == 400


def test_lowercase_currency_is_normalized(client):
    response = client.post("/api/itineraries", json=itinerary_payload(budget={"total": 100, "currency": "usd"}))

    assert response.status_code == 201
    assert response.json()["itinerary"]["budget"]["currency"] == "USD"


def test_partial_coordinates_are_dropped(client):
    response = client.post(
        "/api/itineraries",
        json=itinerary_payload(destinations=[{"name": "Kochi", "coordinates": {"lat": 9.9}}])
    )

    assert response.status_code == 201
    assert response.json()["itinerary"]["destinations"][0]["coordinates"] is None


@pytest.mark.parametrize("coordinates", [{"lat": 95, "lng": 10}, {"lat": 10, "lng": -181}])
def test_out_of_range_coordinates_are_dropped(client, coordinates):
    response = client.post(
        "/api/itineraries",
        json=itinerary_payload(destinations=[{"name": "Kochi", "coordinates": coordinates}])
    )

    assert response.status_code == 201
    assert response.json()["itinerary"]["destinations"][0]["coordinates"] is None


def test_list_is_newest_first_and_filters_by_status(client):
    client.post("/api/itineraries", json=itinerary_payload(title="First"))
    client.post("/api/itineraries", json=itinerary_payload(title="Second", status="active"))

    response = client.get("/api/itineraries")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [i["title"] for i in body["itineraries"]] == ["Second", "First"]

    active = client.get("/api/itineraries", params={"status": "active"}).json()
    assert [i["title"] for i in active["itineraries"]] == ["Second"]


def test_get_unknown_itinerary_is_404(client):
    response = client.get("/api/itineraries/999")

    assert response.status_code == 404
    assert response.json()["detail"]["message"] == "Itinerary not found"


def test_update_merges_fields(client, created):
    response = client.put(f"/api/itineraries/{created['id']}", json={"title": "Kerala in winter", "status": "active"})

    assert response.status_code == 200
    itinerary = response.json()["itinerary"]
    assert itinerary["title"] == "Kerala in winter"
    assert itinerary["status"] == "active"
    assert itinerary["destinations"][0]["name"] == "Kochi"


def test_update_that_breaks_dates_is_rejected(client, created):
    response = client.put(f"/api/itineraries/{created['id']}", json={"end_date": "2026-12-01"})

    assert response.status_code == 400
    unchanged = client.get(f"/api/itineraries/{created['id']}").json()["itinerary"]
    assert unchanged["end_date"] == "2026-12-27"


def test_delete(client, created):
    response = client.delete(f"/api/itineraries/{created['id']}")

    assert response.status_code == 200
    assert response.json() == {"message": "Itinerary deleted", "deleted_id": created["id"]}
    assert client.get(f"/api/itineraries/{created['id']}").status_code == 404
    assert client.delete(f"/api/itineraries/{created['id']}").status_code == 404


def test_expenses_drive_budget_status(client, created):
    response = client.post(
        f"/api/itineraries/{created['id']}/expenses",
        json={"category": "food", "amount": 950, "description": "Seafood dinner"}
    )
    assert response.status_code == 201
    assert response.json()["itinerary"]["budget_status"] == "low-budget"

    budget = client.get(f"/api/itineraries/{created['id']}/budget").json()
    assert budget["summary"] == {"total": 1000, "spent": 950, "remaining": 50, "percentage": 95.0}
    assert budget["status"] == "low-budget"
    assert budget["budget"]["expenses"][0]["category"] == "food"

    client.post(f"/api/itineraries/{created['id']}/expenses", json={"category": "shopping", "amount": 150})
    assert client.get(f"/api/itineraries/{created['id']}/budget").json()["status"] == "over-budget"


def test_budget_update_keeps_currency_and_expenses(client, created):
    client.post(f"/api/itineraries/{created['id']}/expenses", json={"category": "food", "amount": 300})

    response = client.put(f"/api/itineraries/{created['id']}", json={"budget": {"total": 2000}})

    assert response.status_code == 200
    budget = response.json()["itinerary"]["budget"]
    assert budget["total"] == 2000
    assert budget["currency"] == "INR"
    assert [expense["amount"] for expense in budget["expenses"]] == [300]
    assert response.json()["itinerary"]["budget_summary"]["remaining"] == 1700


def test_expense_with_unknown_category_is_rejected(client, created):
    response = client.post(f"/api/itineraries/{created['id']}/expenses", json={"category": "gifts", "amount": 10})

    assert response.status_code == 400


def test_ical_export(client, created):
    response = client.get(f"/api/itineraries/{created['id']}/export/ical")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/calendar")
    assert "attachment" in response.headers["content-disposition"]

    body = response.text
    assert "BEGIN:VCALENDAR" in body
    assert "SUMMARY:Kerala backwaters" in body
    assert "SUMMARY:Kerala backwaters: Kochi" in body
    assert "DTSTART;VALUE=DATE:20261220" in body
    assert "DTEND;VALUE=DATE:20261228" in body
    # Alleppey has no arrival date, so only the trip and Kochi become events
    assert body.count("BEGIN:VEVENT") == 2


def test_ical_export_unknown_itinerary(client):
    assert client.get("/api/itineraries/42/export/ical").status_code == 404
