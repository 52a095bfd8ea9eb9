"""
Tests for the venue and resource catalogue endpoints.
"""


class TestVenuesAPI:

    def test_list_requires_authentication(self, client):
        assert client.get("/api/v1/venues").status_code in (401, 403)

    def test_list(self, client, login, coordinator, make_venue):
        login(coordinator)
        make_venue(name="Main Auditorium")

        response = client.get("/api/v1/venues")

        assert response.status_code == 200
        assert response.json()[0]["name"] == "Main Auditorium"
        assert response.json()[0]["availability_status"] == "Available"

    def test_admin_creates_venue(self, client, login, admin):
        login(admin)

        response = client.post("/api/v1/venues", json={
            "name": "Open Amphitheater", "capacity": 300, "type": "Outdoor", "features": ["Stage"]
        })

        assert response.status_code == 201
        assert response.json()["features"] == ["Stage"]
        assert response.json()["availability_status"] == "Available"

    def test_non_admin_refused(self, client, login, head):
        login(head)

        response = client.post("/api/v1/venues", json={"name": "Annex", "capacity": 20})

        assert response.status_code == 403
        assert response.json()["error_message"] == "Admin access required"

    def test_zero_capacity(self, client, login, admin):
        login(admin)

        response = client.post("/api/v1/venues", json={"name": "Closet", "capacity": 0})

        assert response.status_code == 422


class TestResourcesAPI:

    def test_admin_creates_resource(self, client, login, admin):
        login(admin)

        response = client.post("/api/v1/resources", json={
            "name": "Coffee Break Kit", "category": "Food", "total_quantity": 500, "unit": "kits"
        })

        assert response.status_code == 201
        assert response.json()["available_quantity"] == 500

    def test_available_above_total(self, client, login, admin):
        login(admin)

        response = client.post("/api/v1/resources", json={
            "name": "Chairs", "category": "Facility", "total_quantity": 10, "available_quantity": 20
        })

        assert response.status_code == 422

    def test_unknown_category(self, client, login, admin):
        login(admin)

        response = client.post("/api/v1/resources", json={
            "name": "Drone", "category": "Toys", "total_quantity": 1
        })

        assert response.status_code == 422

    def test_list(self, client, login, dean, make_resource):
        login(dean)
        make_resource(name="Projector", total=15, available=9)

        response = client.get("/api/v1/resources")

        assert response.json() == [{
            "id": 1, "name": "Projector", "category": "Equipment",
            "total_quantity": 15, "available_quantity": 9, "unit": "units"
        }]
