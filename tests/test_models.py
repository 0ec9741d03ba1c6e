"""
Tests for the /api/models endpoints.

Tests cover:
- Creating models and the duplicate-name conflict
- Listing with live command counts
- Updating (not found, rename conflict)
- Deleting (blocked while commands exist, not found)
"""

from conftest import create_command, create_model


class TestCreateModel:
    """Test POST /api/models."""

    def test_create_model_success(self, client):
        response = client.post("/api/models", json={"name": "TK103", "description": "Basic tracker"})

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Model added successfully"
        assert data["data"]["name"] == "TK103"
        assert data["data"]["description"] == "Basic tracker"
        assert data["data"]["command_count"] == 0
        assert "id" in data["data"]
        assert "created_at" in data["data"]

    def test_name_is_trimmed(self, client):
        response = client.post("/api/models", json={"name": "  GT06  "})

        assert response.status_code == 201
        assert response.json()["data"]["name"] == "GT06"

    def test_duplicate_name_conflict(self, client):
        """Creating the same name twice yields one success and one conflict."""
        first = client.post("/api/models", json={"name": "TK103"})
        second = client.post("/api/models", json={"name": "TK103"})

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json() == {"success": False, "error": "Model name already exists"}

        listing = client.get("/api/models").json()
        assert listing["count"] == 1

    def test_missing_name_rejected(self, client):
        response = client.post("/api/models", json={"description": "no name"})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_blank_name_rejected(self, client):
        response = client.post("/api/models", json={"name": "   "})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert "Model name is required" in body["message"]


class TestListModels:
    """Test GET /api/models and GET /api/models/{id}."""

    def test_empty_list(self, client):
        response = client.get("/api/models")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": [], "count": 0}

    def test_ordered_by_name_with_command_counts(self, client):
        tk = create_model(client, "TK103")
        gt = create_model(client, "GT06")
        create_command(client, tk["id"], "RESET123456")
        create_command(client, tk["id"], "STATUS123456")

        data = client.get("/api/models").json()

        assert [m["name"] for m in data["data"]] == ["GT06", "TK103"]
        counts = {m["name"]: m["command_count"] for m in data["data"]}
        assert counts == {"GT06": 0, "TK103": 2}
        assert gt["command_count"] == 0

    def test_get_single_model(self, client):
        model = create_model(client, "ST901")
        create_command(client, model["id"], "*123456*000#")

        response = client.get(f"/api/models/{model['id']}")

        assert response.status_code == 200
        assert response.json()["data"]["command_count"] == 1

    def test_get_unknown_model(self, client):
        response = client.get("/api/models/9999")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Model not found"}


class TestUpdateModel:
    """Test PUT /api/models/{id}."""

    def test_update_success(self, client):
        model = create_model(client, "TK102", "old")

        response = client.put(f"/api/models/{model['id']}", json={"name": "TK102B", "description": "new"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "TK102B"
        assert data["description"] == "new"

    def test_update_unknown_model(self, client):
        response = client.put("/api/models/9999", json={"name": "X"})

        assert response.status_code == 404

    def test_rename_to_existing_name_conflict(self, client):
        create_model(client, "TK103")
        other = create_model(client, "GT06")

        response = client.put(f"/api/models/{other['id']}", json={"name": "TK103"})

        assert response.status_code == 409
        names = [m["name"] for m in client.get("/api/models").json()["data"]]
        assert sorted(names) == ["GT06", "TK103"]

    def test_non_integer_id_rejected(self, client):
        response = client.put("/api/models/abc", json={"name": "X"})

        assert response.status_code == 400


class TestDeleteModel:
    """Test DELETE /api/models/{id}."""

    def test_delete_model_without_commands(self, client):
        model = create_model(client, "GT02A")

        response = client.delete(f"/api/models/{model['id']}")

        assert response.status_code == 200
        assert response.json()["message"] == "Model deleted successfully"
        assert client.get("/api/models").json()["count"] == 0

    def test_delete_blocked_by_commands(self, client):
        """A model with a command is refused with 409 and stays listed."""
        model = create_model(client, "TK103")
        create_command(client, model["id"], "RESET123456")

        response = client.delete(f"/api/models/{model['id']}")

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert "1 associated commands" in body["error"]
        assert "suggestion" in body

        listing = client.get("/api/models").json()
        assert listing["count"] == 1
        assert listing["data"][0]["command_count"] == 1
        commands = client.get(f"/api/models/{model['id']}/commands").json()
        assert commands["count"] == 1

    def test_delete_after_removing_commands(self, client):
        model = create_model(client, "TK103")
        command = create_command(client, model["id"], "RESET123456")

        assert client.delete(f"/api/commands/{command['id']}").status_code == 200
        assert client.delete(f"/api/models/{model['id']}").status_code == 200

    def test_delete_unknown_model(self, client):
        response = client.delete("/api/models/9999")

        assert response.status_code == 404
