from orderdesk.model import ContactMessage

MESSAGE = {"name": "Efua", "email": "Efua@Example.com", "subject": "Catering",
           "message": "Do you cater weddings?"}


def test_contact_form_validation(client):
    assert client.post("/api/contact", json={**MESSAGE, "subject": " "}).status_code == 400
    assert client.post("/api/contact", json={**MESSAGE, "email": "not-an-email"}).status_code == 400
    assert ContactMessage.query.count() == 0


def test_contact_form_saves_unread_message(client):
    resp = client.post("/api/contact", json=MESSAGE)
    assert resp.status_code == 201
    msg = ContactMessage.query.one()
    assert msg.is_read is False
    assert msg.email == "efua@example.com"
    assert msg.phone is None


def test_admin_reads_and_deletes_messages(client, admin_headers):
    client.post("/api/contact", json=MESSAGE)
    client.post("/api/contact", json={**MESSAGE, "subject": "Opening hours"})

    data = client.get("/api/admin/messages", headers=admin_headers).get_json()["data"]
    assert data["unread"] == 2
    first = data["items"][0]["id"]

    resp = client.patch(f"/api/admin/messages/{first}", json={"is_read": True}, headers=admin_headers)
    assert resp.get_json()["data"]["is_read"] is True

    unread = client.get("/api/admin/messages?unread=true", headers=admin_headers).get_json()["data"]
    assert len(unread["items"]) == 1
    assert unread["unread"] == 1

    stats = client.get("/api/admin/dashboard", headers=admin_headers).get_json()["data"]["stats"]
    assert stats["unread_messages"] == 1

    assert client.delete(f"/api/admin/messages/{first}", headers=admin_headers).status_code == 200
    assert ContactMessage.query.count() == 1
    assert client.patch("/api/admin/messages/9999", json={}, headers=admin_headers).status_code == 404


def test_messages_are_admin_only(client, customer_headers):
    assert client.get("/api/admin/messages", headers=customer_headers).status_code == 403
    assert client.get("/api/admin/messages").status_code == 401
