import sqlite3
from io import BytesIO

import billing

CREATE_FORM = {
    "memberId": "M200",
    "client": "Mona Ali",
    "contactNumber": "01000000002",
    "package": "1 month",
    "joiningDate": "2024-05-01",
    "endDate": "2024-06-01",
    "price": "300",
    "admissionCharges": "50",
    "discountAmount": "20",
    "amountPaid": "200",
}


def create(client, **overrides):
    form = dict(CREATE_FORM)
    form.update(overrides)
    resp = client.post("/bills", data=form, content_type="multipart/form-data")
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def test_create_returns_201_with_member_id(client):
    resp = client.post("/bills", data=CREATE_FORM, content_type="multipart/form-data")

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["memberId"] == "M200"
    assert body["data"]["balance"] == 300 + 50 - 20 - 200
    assert len(body["data"]["renewalHistory"]) == 1


def test_create_accepts_json(client):
    resp = client.post("/bills", json={"memberId": "J1", "price": 100, "amountPaid": 40})
    assert resp.status_code == 201
    assert resp.get_json()["data"]["balance"] == 60


def test_create_validation_and_conflict_are_400(client):
    resp = client.post("/bills", data={"memberId": "  ", "client": "x"}, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Member ID is required"

    resp = client.post("/bills", json={})
    assert resp.status_code == 400

    create(client)
    resp = client.post("/bills", data=CREATE_FORM, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert "already exists" in resp.get_json()["message"]
    assert len(client.get("/bills").get_json()) == 1


def test_list_includes_total_paid(client):
    bill = create(client)
    client.put(f"/bills/renew/{bill['_id']}", json={"price": 300, "amountPaid": 300})

    resp = client.get("/bills")

    assert resp.status_code == 200
    [listed] = resp.get_json()
    assert listed["totalPaidIncludingRenewals"] == 300 + 200 + 300


def test_image_upload_and_retrieval(client, upload_dir):
    form = dict(CREATE_FORM)
    form["profilePicture"] = (BytesIO(b"png-bytes"), "me.png", "image/png")
    resp = client.post("/bills", data=form, content_type="multipart/form-data")
    assert resp.status_code == 201
    bill = resp.get_json()["data"]
    assert bill["profilePicture"] == {"contentType": "image/png"}
    assert list(upload_dir.iterdir()) == []

    image = client.get(f"/bills/image/{bill['_id']}")
    assert image.status_code == 200
    assert image.data == b"png-bytes"
    assert image.headers["Content-Type"] == "image/png"
    assert image.headers["Cache-Control"] == "public, max-age=31536000"
    assert image.headers["Content-Length"] == str(len(b"png-bytes"))


def test_image_missing_is_404(client):
    bill = create(client)
    assert client.get(f"/bills/image/{bill['_id']}").status_code == 404
    assert client.get("/bills/image/unknown").status_code == 404


def test_update_bill(client):
    bill = create(client)

    resp = client.put(
        f"/bills/{bill['_id']}",
        data={"client": "Mona A.", "status": "Inactive"},
        content_type="multipart/form-data",
    )

    assert resp.status_code == 200
    assert resp.get_json()["client"] == "Mona A."
    assert resp.get_json()["status"] == "Inactive"
    assert client.put("/bills/unknown", data={"client": "x"}).status_code == 404


def test_renew(client):
    bill = create(client, status="Inactive")

    resp = client.put(
        f"/bills/renew/{bill['_id']}",
        json={"package": "3 months", "price": 800, "discountAmount": 100, "amountPaid": 500, "balance": 1},
    )

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "Active"
    assert data["balance"] == 200
    assert len(data["renewalHistory"]) == 2
    assert client.put("/bills/renew/unknown", json={"price": 1}).status_code == 404


def test_edit_renewal_returns_raw_result(client):
    bill = create(client)
    renew_id = bill["renewalHistory"][0]["_id"]

    resp = client.put(f"/bills/renew/edit/{bill['_id']}/{renew_id}", json={"package": "Zumba", "price": 10})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["matchedCount"] == 1

    resp = client.put(f"/bills/renew/edit/{bill['_id']}/unknown", json={"package": "Zumba"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["matchedCount"] == 0


def test_delete_renewal(client):
    bill = create(client)
    renew_id = bill["renewalHistory"][0]["_id"]

    resp = client.delete(f"/bills/renew/delete/{bill['_id']}/{renew_id}")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["renewalHistory"] == []

    assert client.delete(f"/bills/renew/delete/unknown/{renew_id}").status_code == 404


def test_payment_and_followup_survive_bill_delete(client):
    bill = create(client)

    resp = client.put(
        f"/bills/payment/{bill['_id']}",
        json={
            "amountPaid": 250,
            "balance": 80,
            "paymentHistory": {"amount": 50, "mode": "Cash", "note": "second instalment"},
            "followUpDate": "2024-05-15",
        },
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["amountPaid"] == 250
    assert data["balance"] == 80
    assert len(data["paymentHistory"]) == 1

    resp = client.delete(f"/bills/{bill['_id']}")
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Client deleted successfully"

    followups = client.get(f"/followups?client={bill['_id']}").get_json()
    assert len(followups) == 1
    assert followups[0]["status"] == "Pending"
    assert client.put("/bills/payment/unknown", json={"amountPaid": 1}).status_code == 404


def test_invoice_download(client):
    bill = create(client)

    resp = client.get(f"/bills/{bill['_id']}/invoice")

    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.data.startswith(b"%PDF")
    assert "invoice-M200.pdf" in resp.headers["Content-Disposition"]
    assert client.get("/bills/unknown/invoice").status_code == 404


def test_export_csv(client):
    create(client)

    resp = client.get("/bills/export.csv")

    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    lines = resp.data.decode("utf-8").splitlines()
    assert lines[0].startswith("_id,memberId,client")
    assert "M200" in lines[1]


def test_revenue_summary(client):
    bill = create(client)
    client.put(f"/bills/payment/{bill['_id']}", json={"paymentHistory": {"amount": 100}})

    resp = client.get("/bills/revenue")

    assert resp.status_code == 200
    [row] = resp.get_json()
    assert row["revenue"] == 200 + 100


def test_storage_error_is_500_with_error_text(client, monkeypatch):
    def broken():
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(billing, "list_bills", broken)

    resp = client.get("/bills")

    assert resp.status_code == 500
    assert resp.get_json()["error"] == "disk I/O error"


def test_unknown_route_stays_404(client):
    assert client.get("/nope").status_code == 404


def test_init_db_command_seeds_admin_once(gym_db):
    from app import app

    runner = app.test_cli_runner()
    result = runner.invoke(args=["init-db", "--password", "s3cret!"])
    assert "Admin user created" in result.output

    result = runner.invoke(args=["init-db", "--password", "s3cret!"])
    assert "Admin already exists" in result.output
