"""Tests for the /api/telegram endpoints."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from pydantic import SecretStr

from aobridge.telegram.models import DocumentCapture, UploadStatus


def _queue(client, file_id: str = "size-2048", name: str = "report.pdf") -> str:
    capture = DocumentCapture(file_id, name, "application/pdf", 0, "alice")
    return client.app.state.pending_queue.add(capture).id


def _received_file(client) -> dict:
    """Queue a document, start the bot and replay it. Returns the public file dict."""
    message_id = _queue(client)
    assert client.post("/api/telegram/start").status_code == 200
    resp = client.post(f"/api/telegram/messages/{message_id}/process")
    assert resp.status_code == 200
    return resp.json()["file"]


class TestBotLifecycle:
    def test_status_before_start(self, api_client):
        resp = api_client.get("/api/telegram/status")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["initialized"] is False
        assert body["active"] is False

    def test_start_and_stop(self, api_client):
        resp = api_client.post("/api/telegram/start")
        assert resp.status_code == 200
        assert resp.json()["status"]["active"] is True

        resp = api_client.post("/api/telegram/stop")
        assert resp.status_code == 200
        assert resp.json()["status"]["active"] is False
        assert resp.json()["status"]["phase"] == "inactive"

    def test_initialize_alias(self, api_client):
        resp = api_client.post("/api/telegram/initialize")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Telegram bot initialized successfully"

    def test_start_failure_reports_error(self, api_client, fake_app):
        fake_app.bot.fail_get_me = True
        resp = api_client.post("/api/telegram/start")
        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert "Unauthorized" in body["error"]


class TestPendingMessages:
    def test_list_pending(self, api_client):
        _queue(api_client, name="a.pdf")
        _queue(api_client, name="b.pdf")
        resp = api_client.get("/api/telegram/messages/pending")
        body = resp.json()
        assert body["count"] == 2
        assert [m["fileName"] for m in body["messages"]] == ["a.pdf", "b.pdf"]

    def test_process_creates_file_once(self, api_client):
        message_id = _queue(api_client)
        api_client.post("/api/telegram/start")

        resp = api_client.post(f"/api/telegram/messages/{message_id}/process")
        assert resp.status_code == 200
        file = resp.json()["file"]
        assert file["fileName"] == "report.pdf"
        assert file["fileSize"] == 2048
        assert file["arweaveUploadStatus"] == "pending"
        assert "localPath" not in file

        again = api_client.post(f"/api/telegram/messages/{message_id}/process")
        assert again.status_code == 404
        assert again.json()["error"] == "Pending message not found"

    def test_failed_download_reports_500(self, api_client):
        message_id = _queue(api_client, file_id="missing-7")
        api_client.post("/api/telegram/start")
        resp = api_client.post(f"/api/telegram/messages/{message_id}/process")
        assert resp.status_code == 500
        assert resp.json()["success"] is False
        assert api_client.get("/api/telegram/files").json()["files"] == []


class TestFiles:
    def test_get_and_download(self, api_client):
        file = _received_file(api_client)

        resp = api_client.get(f"/api/telegram/files/{file['id']}")
        assert resp.status_code == 200
        assert resp.json()["file"]["id"] == file["id"]

        download = api_client.get(f"/api/telegram/files/{file['id']}/download")
        assert download.status_code == 200
        assert download.content == b"x" * 2048
        assert download.headers["content-type"].startswith("application/pdf")

    def test_unknown_file(self, api_client):
        resp = api_client.get("/api/telegram/files/nope")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "File not found"}

    def test_download_redirects_to_permanent_copy(self, api_client, make_record):
        record = make_record(with_file=False)
        record.mark_success("tx-9", "https://arweave.net/tx-9")
        api_client.app.state.file_cache.insert(record)

        resp = api_client.get(f"/api/telegram/files/{record.id}/download", follow_redirects=False)

        assert resp.status_code == 302
        assert resp.headers["location"] == "https://arweave.net/tx-9"

    def test_download_without_content(self, api_client, make_record):
        record = make_record(with_file=False)
        api_client.app.state.file_cache.insert(record)
        resp = api_client.get(f"/api/telegram/files/{record.id}/download")
        assert resp.status_code == 404
        assert "not available" in resp.json()["error"]

    def test_delete(self, api_client, make_record):
        record = make_record()
        api_client.app.state.file_cache.insert(record)

        resp = api_client.delete(f"/api/telegram/files/{record.id}")
        assert resp.status_code == 200
        assert "warning" not in resp.json()
        assert not record.local_path.exists()
        assert api_client.delete(f"/api/telegram/files/{record.id}").status_code == 404

    def test_delete_after_upload_warns(self, api_client):
        file = _received_file(api_client)
        api_client.post(f"/api/telegram/ardrive/files/{file['id']}/upload")

        resp = api_client.delete(f"/api/telegram/files/{file['id']}")

        assert resp.status_code == 200
        assert "https://arweave.net/tx-1" in resp.json()["warning"]

    def test_recent_filters(self, api_client, make_record):
        cache = api_client.app.state.file_cache
        now = datetime.now(UTC)
        cache.insert(make_record(file_name="old.png", content_type="image/png", created_at=now - timedelta(days=2)))
        cache.insert(make_record(file_name="a.jpg", content_type="image/jpeg", created_at=now - timedelta(hours=1)))
        cache.insert(make_record(file_name="b.pdf", content_type="application/pdf", created_at=now))

        resp = api_client.get("/api/telegram/files/recent", params={"type": "image", "limit": 1})
        body = resp.json()
        assert body["count"] == 1
        assert body["files"][0]["fileName"] == "a.jpg"

        since = (now - timedelta(days=1)).isoformat()
        resp = api_client.get("/api/telegram/files/recent", params={"since": since})
        assert [f["fileName"] for f in resp.json()["files"]] == ["b.pdf", "a.jpg"]

    def test_recent_with_naive_since(self, api_client, make_record):
        api_client.app.state.file_cache.insert(make_record())
        resp = api_client.get("/api/telegram/files/recent", params={"since": "2000-01-01T00:00:00"})
        assert resp.status_code == 200
        assert resp.json()["count"] == 1

    def test_recent_rejects_bad_since(self, api_client):
        resp = api_client.get("/api/telegram/files/recent", params={"since": "yesterday-ish"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request"


class TestArdrive:
    def test_balance(self, api_client):
        resp = api_client.get("/api/telegram/ardrive/balance")
        assert resp.json()["balance"] == {"winc": 10**12, "ar": "1.000000"}

    def test_balance_failure(self, api_client, fake_backend):
        fake_backend.fail_balance = "payment service down"
        resp = api_client.get("/api/telegram/ardrive/balance")
        assert resp.status_code == 500
        assert "payment service down" in resp.json()["error"]

    def test_cost(self, api_client, make_record):
        record = make_record()
        api_client.app.state.file_cache.insert(record)
        resp = api_client.get(f"/api/telegram/ardrive/files/{record.id}/cost")
        cost = resp.json()["cost"]
        assert cost["winc"] == 100
        assert cost["sufficient"] is True

    def test_upload_success_and_idempotence(self, api_client, fake_backend):
        file = _received_file(api_client)
        url = f"/api/telegram/ardrive/files/{file['id']}/upload"

        resp = api_client.post(url, json={"tags": [{"name": "Department", "value": "legal"}]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["arweave_id"] == "tx-1"
        assert body["arweave_url"] == "https://arweave.net/tx-1"
        assert fake_backend.uploads[0][2][-1].name == "Department"

        again = api_client.post(url)
        assert again.json()["arweave_id"] == "tx-1"
        assert len(fake_backend.uploads) == 1

        status = api_client.get(f"/api/telegram/files/{file['id']}").json()["file"]
        assert status["arweaveUploadStatus"] == "success"
        assert status["arweaveId"] == "tx-1"

    def test_insufficient_balance(self, api_client, fake_backend):
        file = _received_file(api_client)
        fake_backend.balance = 0

        resp = api_client.post(f"/api/telegram/ardrive/files/{file['id']}/upload")

        assert resp.status_code == 402
        body = resp.json()
        assert body["success"] is False
        assert body["checkoutUrl"] == fake_backend.checkout_url
        assert body["fileId"] == file["id"]
        record = api_client.app.state.file_cache.get(file["id"])
        assert record.upload_status == UploadStatus.PENDING

    def test_backend_failure(self, api_client, fake_backend):
        file = _received_file(api_client)
        fake_backend.fail_upload = "bundler offline"

        resp = api_client.post(f"/api/telegram/ardrive/files/{file['id']}/upload")

        assert resp.status_code == 500
        assert "bundler offline" in resp.json()["error"]
        status = api_client.get(f"/api/telegram/files/{file['id']}").json()["file"]
        assert status["arweaveUploadStatus"] == "failed"
        assert "bundler offline" in status["arweaveUploadError"]

    def test_upload_unknown_file(self, api_client):
        resp = api_client.post("/api/telegram/ardrive/files/nope/upload")
        assert resp.status_code == 404

    def test_upload_without_local_copy(self, api_client, make_record):
        record = make_record(with_file=False)
        api_client.app.state.file_cache.insert(record)
        resp = api_client.post(f"/api/telegram/ardrive/files/{record.id}/upload")
        assert resp.status_code == 404
        assert record.upload_status == UploadStatus.UNSET


class TestWebhook:
    def test_update_is_accepted(self, api_client, fake_app):
        resp = api_client.post("/api/telegram/webhook", json={"update_id": 11})
        assert resp.json() == {"success": True}
        assert fake_app.processed[0].update_id == 11

    def test_secret_mismatch_is_hidden(self, api_client, fake_app):
        api_client.app.state.config.telegram.webhook_secret = SecretStr("s3cret")

        resp = api_client.post(
            "/api/telegram/webhook",
            json={"update_id": 11},
            headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"},
        )

        assert resp.status_code == 404
        assert fake_app.processed == []

    def test_matching_secret(self, api_client, fake_app):
        api_client.app.state.config.telegram.webhook_secret = SecretStr("s3cret")
        resp = api_client.post(
            "/api/telegram/webhook",
            json={"update_id": 12},
            headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
        )
        assert resp.json()["success"] is True

    def test_malformed_body_is_rejected(self, api_client, fake_app):
        resp = api_client.post(
            "/api/telegram/webhook",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Webhook body must be valid JSON"}
        assert fake_app.processed == []

    def test_non_object_body_is_rejected(self, api_client, fake_app):
        resp = api_client.post("/api/telegram/webhook", json=[1, 2])
        assert resp.status_code == 400
        assert resp.json()["error"] == "Webhook body must be a JSON object"
