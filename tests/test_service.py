from dataclasses import replace

from assetledger.signing import verify_export
from ledger_service import main as service


def as_(principal):
    return {"X-Principal": principal}


def test_register_returns_record(client, registered):
    assert registered["asset_id"] == 1
    assert registered["owner"] == "alice"
    assert registered["registered_at"] == 1
    assert registered["tags"] == ["geo", "lidar"]


def test_register_auto_assigns_identifier(client, registered):
    r = client.post("/assets", json={"designation": "Next", "size_bytes": 1, "summary": "Next asset",
                                     "tags": ["x"]}, headers=as_("bob"))
    assert r.status_code == 201
    assert r.json()["asset_id"] == 2


def test_duplicate_registration_conflict(client, registered):
    r = client.post("/assets", json={"asset_id": 1, "designation": "Copy", "size_bytes": 1,
                                     "summary": "Copy", "tags": ["x"]}, headers=as_("mallory"))
    assert r.status_code == 409
    assert r.json()["error"] == "DuplicateRegistration"
    assert client.get("/assets/1").json()["owner"] == "alice"


def test_validation_errors_are_422_with_kind(client):
    body = {"designation": "x" * 65, "size_bytes": 1, "summary": "s", "tags": ["t"]}
    r = client.post("/assets", json=body, headers=as_("alice"))
    assert r.status_code == 422
    assert r.json()["error"] == "InvalidTitle"

    body = {"designation": "ok", "size_bytes": 0, "summary": "s", "tags": ["t"]}
    r = client.post("/assets", json=body, headers=as_("alice"))
    assert r.json()["error"] == "FileSizeBoundaryViolation"

    body = {"designation": "ok", "size_bytes": 1, "summary": "s", "tags": []}
    r = client.post("/assets", json=body, headers=as_("alice"))
    assert r.json()["error"] == "InvalidTagSet"


def test_missing_principal_header(client):
    r = client.post("/assets", json={"designation": "ok", "size_bytes": 1, "summary": "s", "tags": ["t"]})
    assert r.status_code == 422


def test_get_missing_asset(client):
    r = client.get("/assets/99")
    assert r.status_code == 404
    assert r.json() == {"error": "MissingAsset", "detail": "asset 99 does not exist"}


def test_view_requires_grant(client, registered):
    r = client.get("/assets/1/view", headers=as_("bob"))
    assert r.status_code == 403
    assert r.json()["error"] == "ViewAuthorizationRejected"

    r = client.put("/assets/1/grants/bob", json={"level": "auditor"}, headers=as_("alice"))
    assert r.status_code == 200
    assert r.json()["level"] == "auditor"

    r = client.get("/assets/1/view", headers=as_("bob"))
    assert r.status_code == 200
    assert r.json()["designation"] == "Survey"


def test_grant_lookup_and_revoke(client, registered):
    assert client.get("/assets/1/grants/bob").json()["authorized"] is False

    client.put("/assets/1/grants/bob", headers=as_("alice"))
    lookup = client.get("/assets/1/grants/bob").json()
    assert lookup["authorized"] is True
    assert lookup["grant"]["level"] == "viewer"

    r = client.delete("/assets/1/grants/bob", headers=as_("alice"))
    assert r.status_code == 200
    assert r.json()["granted"] is False
    assert client.get("/assets/1/grants/bob").json()["authorized"] is False


def test_stranger_cannot_grant(client, registered):
    r = client.put("/assets/1/grants/mallory", headers=as_("mallory"))
    assert r.status_code == 403
    assert r.json()["error"] == "AccessPermissionDenied"


def test_update_metadata_owner_only(client, registered):
    r = client.patch("/assets/1", json={"summary": "Revised"}, headers=as_("bob"))
    assert r.status_code == 403
    assert r.json()["error"] == "OwnershipVerificationFailed"

    r = client.patch("/assets/1", json={"summary": "Revised"}, headers=as_("alice"))
    assert r.status_code == 200
    assert r.json()["summary"] == "Revised"
    assert r.json()["last_modified_at"] > registered["last_modified_at"]


def test_transfer_and_history(client, registered):
    r = client.post("/assets/1/transfer", json={"new_owner": "bob", "reason": "sale"}, headers=as_("alice"))
    assert r.status_code == 200
    assert r.json()["sequence"] == 0

    r = client.post("/assets/1/transfer", json={"new_owner": "carol"}, headers=as_("alice"))
    assert r.status_code == 403

    client.post("/assets/1/transfer", json={"new_owner": "carol", "reason": "gift"}, headers=as_("bob"))
    history = client.get("/assets/1/history").json()
    assert [e["to_owner"] for e in history["entries"]] == ["bob", "carol"]
    assert history["chain_valid"] is True
    assert client.get("/assets/1").json()["owner"] == "carol"


def test_status_is_administrator_only(client, registered):
    r = client.post("/assets/1/status", json={"status": "suspended"}, headers=as_("alice"))
    assert r.status_code == 403
    assert r.json()["error"] == "AdministrativeAccessRequired"

    r = client.post("/assets/1/status", json={"status": "suspended"}, headers=as_("admin"))
    assert r.status_code == 200
    assert r.json()["status"] == "suspended"


def test_signed_export_verifies(client, registered, public_key):
    client.post("/assets/1/transfer", json={"new_owner": "bob", "reason": "sale"}, headers=as_("alice"))
    bundle = client.get("/assets/1/history/export").json()
    assert bundle["head_entry_hash"] == bundle["entries"][-1]["entry_hash"]
    assert verify_export(bundle, public_key) == (True, "ok")


def test_export_without_signer(client, registered):
    service.SIGNER = None
    r = client.get("/assets/1/history/export")
    assert r.status_code == 503


def test_analytics_uses_service_height(client, registered):
    client.put("/assets/1/grants/bob", headers=as_("alice"))
    client.put("/assets/1/grants/carol", headers=as_("alice"))

    r = client.get("/assets/1/analytics", headers=as_("bob"))
    assert r.status_code == 200
    report = r.json()
    assert report["computed_at"] == 3
    assert report["tenure"] == 2
    assert report["maturity_score"] == 25
    assert report["access_complexity"] == 2

    r = client.get("/assets/1/analytics", headers=as_("mallory"))
    assert r.status_code == 403


def test_height_advances_per_mutation(client, registered):
    assert client.get("/health").json()["height"] == 1
    client.put("/assets/1/grants/bob", headers=as_("alice"))
    client.get("/assets/1/view", headers=as_("bob"))
    assert client.get("/health").json()["height"] == 2


def test_metrics_endpoint(client, registered):
    client.post("/assets/1/transfer", json={"new_owner": "bob", "reason": "sale"}, headers=as_("alice"))
    body = client.get("/metrics").json()
    assert body["counters"]["total-registered-assets"]["value"] == 1
    assert body["counters"]["ownership-transfer-counter"]["value"] == 1
    assert body["performance_score"] == 7


def test_request_id_echoed(client):
    r = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert r.headers["X-Request-ID"] == "req-42"
    assert r.json()["status"] == "ok"


def test_malformed_register_fields_keep_their_error_kind(client):
    base = {"designation": "ok", "size_bytes": 1, "summary": "s", "tags": ["t"]}
    cases = [
        ({"tags": ["geo", 5]}, "MetadataTagValidationError"),
        ({"size_bytes": 1.5}, "FileSizeBoundaryViolation"),
        ({"size_bytes": True}, "FileSizeBoundaryViolation"),
        ({"size_bytes": "10"}, "FileSizeBoundaryViolation"),
        ({"designation": None}, "InvalidTitle"),
        ({"summary": 7}, "InvalidAbstract"),
        ({"tags": "geo"}, "InvalidTagSet"),
        ({"asset_id": True}, "InvalidFieldValue"),
    ]
    for override, kind in cases:
        r = client.post("/assets", json={**base, **override}, headers=as_("alice"))
        assert r.status_code == 422, override
        assert r.json()["error"] == kind, override
        assert "detail" in r.json()
    assert client.get("/metrics").json()["counters"] == {}


def test_malformed_update_fields_keep_their_error_kind(client, registered):
    r = client.patch("/assets/1", json={"tags": [None]}, headers=as_("alice"))
    assert r.json()["error"] == "MetadataTagValidationError"
    r = client.patch("/assets/1", json={"size_bytes": False}, headers=as_("alice"))
    assert r.json()["error"] == "FileSizeBoundaryViolation"
    assert client.get("/assets/1").json()["size_bytes"] == 2048


def test_owner_cannot_lift_suspension(client, registered):
    client.post("/assets/1/status", json={"status": "suspended"}, headers=as_("admin"))
    r = client.patch("/assets/1", json={"status": "active"}, headers=as_("alice"))
    assert r.status_code == 403
    assert r.json()["error"] == "AdministrativeAccessRequired"
    assert client.get("/assets/1").json()["status"] == "suspended"


def test_history_validity_matches_returned_entries(client, registered):
    client.post("/assets/1/transfer", json={"new_owner": "bob", "reason": "sale"}, headers=as_("alice"))
    entries = service.LEDGER.store._transitions[1]
    entries[0] = replace(entries[0], reason="theft")
    history = client.get("/assets/1/history").json()
    assert history["entries"][0]["reason"] == "theft"
    assert history["chain_valid"] is False


def test_production_refuses_unsafe_settings(monkeypatch, tmp_path):
    from ledger_service import config

    monkeypatch.setattr(config, "ENV", "dev")
    assert config.production_issues() == []

    monkeypatch.setattr(config, "ENV", "prod")
    monkeypatch.setattr(config, "STORE_BACKEND", "memory")
    monkeypatch.setattr(config, "SIGNING_KEY_PATH", str(tmp_path / "missing.json"))
    issues = config.production_issues()
    assert len(issues) == 2

    monkeypatch.setattr(service, "production_issues", lambda: issues)
    try:
        service._startup()
    except RuntimeError as e:
        assert "refusing to start" in str(e)
    else:
        raise AssertionError("startup accepted production issues")
