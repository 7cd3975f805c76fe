import uuid

from conftest import CLIENT_PAYLOAD
from delivery_service import crud


def test_create_and_read_client(api, create_client):
    created = create_client()

    assert created["name"] == CLIENT_PAYLOAD["name"]
    assert len(created["id"]) == 36

    response = api.get(f"/clients/{created['id']}")
    assert response.status_code == 200
    assert response.json()["cpf"] == CLIENT_PAYLOAD["cpf"]

    listed = api.get("/clients").json()
    assert [c["id"] for c in listed] == [created["id"]]


def test_missing_fields_are_rejected(api):
    response = api.post("/clients", json={"name": "Only a name"})

    assert response.status_code == 400


def test_malformed_cpf_is_rejected(api):
    response = api.post("/clients", json={**CLIENT_PAYLOAD, "cpf": "12345678900"})

    assert response.status_code == 400


def test_duplicate_cpf_and_email_are_rejected(api, create_client):
    create_client()

    same_cpf = api.post("/clients", json={**CLIENT_PAYLOAD, "email": "other@example.com"})
    assert same_cpf.status_code == 400
    assert "CPF" in same_cpf.json()["detail"]

    same_email = api.post("/clients", json={**CLIENT_PAYLOAD, "cpf": "999.999.999-99"})
    assert same_email.status_code == 400
    assert "E-mail" in same_email.json()["detail"]


def test_unknown_client_is_404(api):
    assert api.get(f"/clients/{uuid.uuid4()}").status_code == 404


def test_malformed_client_id_is_400(api):
    assert api.get("/clients/not-a-uuid").status_code == 400


def test_update_keeps_fields_not_sent(api, create_client):
    created = create_client()

    response = api.put(f"/clients/{created['id']}", json={"phone": "1133334444"})

    assert response.status_code == 200
    updated = response.json()
    assert updated["phone"] == "1133334444"
    assert updated["name"] == created["name"]
    assert updated["email"] == created["email"]


def test_update_rejects_unchanged_or_taken_cpf(api, create_client):
    first = create_client()
    second = create_client(cpf="111.222.333-44", email="joao@example.com")

    unchanged = api.put(f"/clients/{first['id']}", json={"cpf": first["cpf"]})
    assert unchanged.status_code == 400

    taken = api.put(f"/clients/{first['id']}", json={"email": second["email"]})
    assert taken.status_code == 400


def test_update_unknown_client_is_404(api):
    assert api.put(f"/clients/{uuid.uuid4()}", json={"phone": "1"}).status_code == 404


def test_delete_client(api, create_client):
    created = create_client()

    assert api.delete(f"/clients/{created['id']}").status_code == 204
    assert api.get(f"/clients/{created['id']}").status_code == 404
    assert api.delete(f"/clients/{created['id']}").status_code == 404


def test_client_with_orders_cannot_be_deleted(api, create_client, create_order):
    created = create_client()
    create_order(client_id=created["id"])

    response = api.delete(f"/clients/{created['id']}")

    assert response.status_code == 409
    assert api.get(f"/clients/{created['id']}").status_code == 200


def test_failed_client_update_is_logged_as_server_error(api, create_client, monkeypatch, caplog):
    created = create_client()

    async def broken_update(*args, **kwargs):
        raise RuntimeError("duplicate key value violates unique constraint")

    monkeypatch.setattr(crud, "update_client", broken_update)

    response = api.put(f"/clients/{created['id']}", json={"phone": "1133334444"})

    assert response.status_code == 500
    assert f"Error updating client {created['id']}" in caplog.text
