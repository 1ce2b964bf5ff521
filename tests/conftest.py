import pytest
from fastapi.testclient import TestClient

from assetledger import AssetLedger, LedgerConfig
from assetledger.signing import HistorySigner, generate_signing_key
from ledger_service import main as service
from ledger_service.main import app

ADMIN = "admin"

# Generate the export key once per session
_KEY_FILE, PUBLIC_KEY_B64 = generate_signing_key("history-test")


# Fresh ledger and height counter before each test for isolation
@pytest.fixture(autouse=True)
def _reset_service():
    signer = HistorySigner(_KEY_FILE["kid"], _KEY_FILE["private_key_b64"])
    service.init_service(AssetLedger(LedgerConfig(administrator=ADMIN)), signer)
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def public_key():
    return PUBLIC_KEY_B64


@pytest.fixture
def registered(client):
    """Asset 1 owned by alice."""
    r = client.post(
        "/assets",
        json={"asset_id": 1, "designation": "Survey", "size_bytes": 2048,
              "summary": "Site survey", "tags": ["geo", "lidar"]},
        headers={"X-Principal": "alice"},
    )
    assert r.status_code == 201, r.text
    return r.json()
