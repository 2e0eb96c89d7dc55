"""
Integration tests for the order capture HTTP endpoints.
"""
from datetime import datetime, timedelta

import pytest

from promo_capture.models import BrandModel, CapturedOrderModel
from promo_capture.services.auth import create_session_token


ORDER_RESULT = {
    "orderId": "ORD123",
    "deliveryAddress": "12 Main St",
    "orderPlaced": "2024-01-01",
    "promoVoucher": "50",
}


def _post_order(client, headers, images, **fields):
    data = {"entryType": "order", "projectId": "p1", "latitude": "12.97", "longitude": "77.59"}
    data.update(fields)
    files = [("images", (f"img-{i}.jpg", content, "image/jpeg")) for i, content in enumerate(images)]
    return client.post("/api/order", data=data, files=files, headers=headers)


class TestCaptureOrder:
    def test_order_success(self, client, auth_headers, extractor, db):
        extractor.results[b"receipt"] = ORDER_RESULT
        resp = _post_order(client, auth_headers, [b"receipt"], promoterId="promoter-1")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Images processed and data saved"
        assert body["data"]["orderId"] == "ORD123"

        rows = db.query(CapturedOrderModel).all()
        assert len(rows) == 1
        assert rows[0].cashback_amount == 50
        assert rows[0].order_address == "12 Main St"
        assert rows[0].order_placed_at == "2024-01-01"
        assert rows[0].status == "PENDING"
        assert rows[0].order_image.startswith("https://blobs.test/uploads/")

    def test_second_submission_rejected(self, client, auth_headers, extractor, db):
        extractor.results[b"receipt"] = ORDER_RESULT
        assert _post_order(client, auth_headers, [b"receipt"]).status_code == 200

        resp = _post_order(client, auth_headers, [b"receipt"])
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": "Order already exists"}
        assert db.query(CapturedOrderModel).count() == 1

    def test_same_order_in_other_project_allowed(self, client, auth_headers, extractor, db):
        extractor.results[b"receipt"] = ORDER_RESULT
        assert _post_order(client, auth_headers, [b"receipt"]).status_code == 200
        resp = _post_order(client, auth_headers, [b"receipt"], projectId="p2")
        assert resp.status_code == 200
        assert db.query(CapturedOrderModel).count() == 2

    @pytest.mark.parametrize("placeholder", ["N/A", "string", "  "])
    def test_placeholder_order_id_is_missing(self, client, auth_headers, extractor, placeholder):
        extractor.results[b"receipt"] = {**ORDER_RESULT, "orderId": placeholder}
        resp = _post_order(client, auth_headers, [b"receipt"])
        assert resp.status_code == 400
        assert resp.json()["message"] == "Order Image is required"

    def test_signup_with_empty_phone(self, client, auth_headers, extractor):
        extractor.results[b"profile"] = {"phone": ""}
        resp = _post_order(client, auth_headers, [b"profile"], entryType="signup")
        assert resp.status_code == 400
        assert resp.json()["message"] == "Profile Image is required"

    def test_signup_uses_profile_identity(self, client, auth_headers, extractor, db):
        extractor.results[b"profile"] = {"name": "Ravi", "phone": "9876543210"}
        resp = _post_order(
            client, auth_headers, [b"profile"],
            entryType="signup", name="Typed Name", phone="1111111111",
        )
        assert resp.status_code == 200
        row = db.query(CapturedOrderModel).one()
        assert row.customer_name == "Ravi"
        assert row.customer_phone == "9876543210"
        assert row.order_id is None
        assert row.profile_image is not None

    def test_duplicate_profile_phone_rejected(self, client, auth_headers, extractor):
        extractor.results[b"profile"] = {"name": "Ravi", "phone": "9876543210"}
        assert _post_order(client, auth_headers, [b"profile"], entryType="signup").status_code == 200
        resp = _post_order(client, auth_headers, [b"profile"], entryType="signup")
        assert resp.status_code == 400
        assert resp.json()["message"] == "This customer phone number already exists."

    def test_padded_profile_phone_stored_normalised(self, client, auth_headers, extractor, db):
        extractor.results[b"profile"] = {"name": "Ravi", "phone": "9876543210 "}
        assert _post_order(client, auth_headers, [b"profile"], entryType="signup").status_code == 200
        assert db.query(CapturedOrderModel).one().customer_phone == "9876543210"

        resp = _post_order(client, auth_headers, [b"profile"], entryType="signup")
        assert resp.status_code == 400
        assert resp.json()["message"] == "This customer phone number already exists."
        assert db.query(CapturedOrderModel).count() == 1

    def test_receipt_name_keeps_typed_phone(self, client, auth_headers, extractor, db):
        extractor.results[b"receipt"] = {**ORDER_RESULT, "customerName": "Ravi"}
        resp = _post_order(client, auth_headers, [b"receipt"], name="Typed", phone="5550001111")
        assert resp.status_code == 200
        row = db.query(CapturedOrderModel).one()
        assert row.customer_name == "Ravi"
        assert row.customer_phone == "5550001111"

    def test_form_phone_not_deduplicated(self, client, auth_headers, extractor, db):
        extractor.results[b"r1"] = {**ORDER_RESULT, "orderId": "A1"}
        extractor.results[b"r2"] = {**ORDER_RESULT, "orderId": "A2"}
        assert _post_order(client, auth_headers, [b"r1"], phone="5550001111").status_code == 200
        assert _post_order(client, auth_headers, [b"r2"], phone="5550001111").status_code == 200
        assert db.query(CapturedOrderModel).filter_by(customer_phone="5550001111").count() == 2

    def test_phone_printed_on_receipt_is_deduplicated(self, client, auth_headers, extractor):
        extractor.results[b"r1"] = {**ORDER_RESULT, "orderId": "A1", "customerPhone": "9000"}
        extractor.results[b"r2"] = {**ORDER_RESULT, "orderId": "A2", "customerPhone": "9000"}
        assert _post_order(client, auth_headers, [b"r1"]).status_code == 200
        resp = _post_order(client, auth_headers, [b"r2"])
        assert resp.status_code == 400
        assert resp.json()["message"] == "This customer phone number already exists."

    def test_both_requires_profile_image(self, client, auth_headers, extractor):
        extractor.results[b"receipt"] = ORDER_RESULT
        resp = _post_order(client, auth_headers, [b"receipt"], entryType="both")
        assert resp.status_code == 400
        assert resp.json()["message"] == "Both Order and Profile images are required"

    def test_both_success(self, client, auth_headers, extractor, db, blob_store):
        extractor.results[b"receipt"] = ORDER_RESULT
        extractor.results[b"profile"] = {"name": "Ravi", "phone": "9876543210"}
        resp = _post_order(client, auth_headers, [b"receipt", b"profile", b"history"], entryType="both")
        assert resp.status_code == 200
        row = db.query(CapturedOrderModel).one()
        assert row.order_id == "ORD123"
        assert row.customer_phone == "9876543210"
        assert row.order_history_image is not None
        assert len(blob_store.blobs) == 3
        assert blob_store.deleted == []

    def test_first_order_image_wins(self, client, auth_headers, extractor, db, blob_store):
        extractor.results[b"first"] = {**ORDER_RESULT, "orderId": "FIRST"}
        extractor.results[b"second"] = {**ORDER_RESULT, "orderId": "SECOND"}
        resp = _post_order(client, auth_headers, [b"first", b"second"])
        assert resp.status_code == 200
        assert db.query(CapturedOrderModel).one().order_id == "FIRST"
        # the second receipt is not referenced by the row, so its blob is removed
        assert len(blob_store.deleted) == 1
        assert len(blob_store.blobs) == 1

    def test_placeholder_receipt_does_not_take_order_slot(self, client, auth_headers, extractor, db):
        extractor.results[b"blurry"] = {**ORDER_RESULT, "orderId": "N/A"}
        extractor.results[b"good"] = {**ORDER_RESULT, "orderId": "ORD777"}
        resp = _post_order(client, auth_headers, [b"blurry", b"good"])
        assert resp.status_code == 200
        row = db.query(CapturedOrderModel).one()
        assert row.order_id == "ORD777"
        assert row.order_image is not None

    def test_rejection_cleans_up_blobs(self, client, auth_headers, extractor, blob_store):
        resp = _post_order(client, auth_headers, [b"blurry", b"also-blurry"])
        assert resp.status_code == 400
        assert blob_store.blobs == {}
        assert len(blob_store.deleted) == 2

    def test_brand_prompt_forwarded(self, client, auth_headers, extractor, db):
        db.add(BrandModel(id="b1", name="Snacks", ocr_prompt="Read the snack receipt"))
        db.commit()
        extractor.results[b"receipt"] = ORDER_RESULT
        _post_order(client, auth_headers, [b"receipt"], brandId="b1")
        assert extractor.calls[0][1] == "Read the snack receipt"

    def test_refreshes_promoter_last_active(self, client, auth_headers, extractor, db, promoter):
        extractor.results[b"receipt"] = ORDER_RESULT
        _post_order(client, auth_headers, [b"receipt"], promoterId=promoter.id)
        db.refresh(promoter)
        assert promoter.last_active is not None

    def test_no_images(self, client, auth_headers):
        resp = client.post("/api/order", data={"entryType": "order"}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "No images uploaded"

    def test_invalid_entry_type(self, client, auth_headers):
        resp = _post_order(client, auth_headers, [b"x"], entryType="lunch")
        assert resp.status_code == 422

    def test_storage_failure_is_500(self, client, auth_headers, extractor, blob_store):
        def _boom(name, data, content_type="image/png"):
            raise ConnectionError("storage down")

        blob_store.upload = _boom
        resp = _post_order(client, auth_headers, [b"receipt"])
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "message": "Processing failed"}


class TestGuards:
    def test_outdated_app_version(self, client, auth_headers):
        headers = {**auth_headers, "x-app-version": "0.9.0"}
        resp = _post_order(client, headers, [b"receipt"])
        assert resp.status_code == 426

    def test_missing_token(self, client, auth_headers):
        headers = {k: v for k, v in auth_headers.items() if k != "Authorization"}
        resp = _post_order(client, headers, [b"receipt"])
        assert resp.status_code == 401

    def test_token_not_current_session(self, client, auth_headers, promoter):
        stale = create_session_token(promoter, datetime.utcnow() - timedelta(minutes=5))
        headers = {**auth_headers, "Authorization": f"Bearer {stale}"}
        resp = _post_order(client, headers, [b"receipt"])
        assert resp.status_code == 401

    def test_expired_session(self, client, auth_headers, promoter, db):
        promoter.session_token = create_session_token(promoter, datetime.utcnow() - timedelta(days=2))
        db.commit()
        headers = {**auth_headers, "Authorization": f"Bearer {promoter.session_token}"}
        resp = _post_order(client, headers, [b"receipt"])
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Unauthorized: Invalid session"

    def test_api_key_required(self, client):
        resp = client.get("/api/orders/anything", headers={"x-api-key": "wrong"})
        assert resp.status_code == 403


def _seed(db, **overrides):
    row = CapturedOrderModel(id=overrides.pop("id", "row-1"), project_id="p1", **overrides)
    db.add(row)
    db.commit()
    return row


class TestAdminActions:
    def test_get_order(self, client, auth_headers, db):
        _seed(db, order_id="ORD1")
        resp = client.get("/api/orders/row-1", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["orderId"] == "ORD1"
        assert resp.json()["isFlagged"] is False

    def test_get_order_not_found(self, client, auth_headers):
        assert client.get("/api/orders/missing", headers=auth_headers).status_code == 404

    def test_bulk_status(self, client, auth_headers, db):
        _seed(db, id="row-1", order_id="ORD1")
        _seed(db, id="row-2", order_id="ORD2")
        resp = client.post(
            "/api/orders/status",
            json={"orders": [
                {"id": "row-1", "status": "APPROVED"},
                {"orderId": "ORD2", "status": "REJECTED"},
                {"id": "row-1"},
            ]},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "Updated 2 orders successfully."
        db.expire_all()
        assert db.get(CapturedOrderModel, "row-1").status == "APPROVED"
        assert db.get(CapturedOrderModel, "row-2").status == "REJECTED"

    def test_bulk_status_empty(self, client, auth_headers):
        resp = client.post("/api/orders/status", json={"orders": []}, headers=auth_headers)
        assert resp.status_code == 400

    def test_bulk_status_unknown_value(self, client, auth_headers):
        resp = client.post(
            "/api/orders/status",
            json={"orders": [{"id": "row-1", "status": "DONE"}]},
            headers=auth_headers,
        )
        assert resp.status_code == 422

    def test_flag(self, client, auth_headers, db):
        _seed(db)
        resp = client.patch("/api/orders/flag", json={"id": "row-1", "isFlagged": True}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["isFlagged"] is True

    def test_correct_order(self, client, auth_headers, db):
        _seed(db, order_id="ORD1")
        resp = client.patch(
            "/api/orders/row-1",
            json={"orderId": "ORD9", "cashbackAmount": 25.5},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["orderId"] == "ORD9"
        assert resp.json()["data"]["cashbackAmount"] == 25.5

    def test_correct_order_duplicate_id(self, client, auth_headers, db):
        _seed(db, id="row-1", order_id="ORD1")
        _seed(db, id="row-2", order_id="ORD2")
        resp = client.patch("/api/orders/row-2", json={"orderId": "ORD1"}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Order ID already exists"
