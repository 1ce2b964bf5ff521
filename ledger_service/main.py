import threading
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from assetledger import (
    AssetLedger,
    AuthorizationError,
    CallContext,
    DuplicateRegistration,
    LedgerError,
    LedgerValidationError,
    MissingAsset,
)
from assetledger.hashing import verify_entry_chain
from assetledger.logging_config import configure_logging, set_request_id
from assetledger.signing import HistorySigner
from assetledger.validation import check_principal
from .config import (
    LOG_FILE,
    LOG_JSON,
    LOG_LEVEL,
    build_ledger_config,
    build_store,
    is_debug,
    load_signer,
    production_issues,
    validate_config,
)
from .models import GrantRequest, RegisterRequest, StatusRequest, TransferRequest, UpdateMetadataRequest

app = FastAPI(title="AssetLedger", debug=is_debug())


class HeightCounter:
    """Process-wide block height; each mutating request advances it by one."""

    def __init__(self, start: int = 0):
        self._lock = threading.Lock()
        self._height = start

    def current(self) -> int:
        with self._lock:
            return self._height

    def advance(self) -> int:
        with self._lock:
            self._height += 1
            return self._height


LEDGER: Optional[AssetLedger] = None
SIGNER: Optional[HistorySigner] = None
HEIGHT = HeightCounter()


def _resume_height(ledger: AssetLedger) -> int:
    # Every mutation bumps at least one counter, so the newest counter marks the last height used
    counters = ledger.metrics_snapshot().values()
    return max((c.updated_at for c in counters), default=0)


def init_service(ledger: AssetLedger, signer: Optional[HistorySigner] = None) -> AssetLedger:
    """Install a ledger (and optional export signer) as the live service state."""
    global LEDGER, SIGNER, HEIGHT
    LEDGER = ledger
    SIGNER = signer
    HEIGHT = HeightCounter(_resume_height(ledger))
    return ledger


@app.on_event("startup")
def _startup():
    configure_logging(level=LOG_LEVEL, json_format=LOG_JSON, log_file=LOG_FILE)
    issues = production_issues()
    if issues:
        raise RuntimeError("refusing to start: " + "; ".join(issues))
    init_service(AssetLedger(build_ledger_config(), store=build_store()), load_signer())


@app.on_event("shutdown")
def _shutdown():
    if LEDGER is not None:
        LEDGER.store.close()


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = set_request_id(request.headers.get("X-Request-ID"))
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def status_for(error: LedgerError) -> int:
    if isinstance(error, MissingAsset):
        return 404
    if isinstance(error, DuplicateRegistration):
        return 409
    if isinstance(error, LedgerValidationError):
        return 422
    if isinstance(error, AuthorizationError):
        return 403
    return 400


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    return JSONResponse(status_code=status_for(exc), content=exc.to_dict())


def _mutating(principal: str) -> CallContext:
    check_principal("principal", principal)
    return CallContext(principal=principal, height=HEIGHT.advance())


def _reading(principal: str) -> CallContext:
    check_principal("principal", principal)
    return CallContext(principal=principal, height=HEIGHT.current())


# ============================================================
# Registry
# ============================================================

@app.post("/assets", status_code=201)
def register_asset(req: RegisterRequest, x_principal: str = Header(...)):
    ctx = _mutating(x_principal)
    asset_id = LEDGER.register(
        ctx, req.asset_id, req.designation, req.size_bytes, req.summary, req.tags, req.status
    )
    return LEDGER.get(asset_id).to_dict()


@app.get("/assets/{asset_id}")
def get_asset(asset_id: int):
    record = LEDGER.get(asset_id)
    if record is None:
        raise MissingAsset(asset_id)
    return record.to_dict()


@app.get("/assets/{asset_id}/view")
def view_asset(asset_id: int, x_principal: str = Header(...)):
    return LEDGER.view(_reading(x_principal), asset_id).to_dict()


@app.patch("/assets/{asset_id}")
def update_asset(asset_id: int, req: UpdateMetadataRequest, x_principal: str = Header(...)):
    record = LEDGER.update_metadata(
        _mutating(x_principal), asset_id,
        designation=req.designation, summary=req.summary, tags=req.tags,
        size_bytes=req.size_bytes, status=req.status
    )
    return record.to_dict()


@app.post("/assets/{asset_id}/transfer")
def transfer_asset(asset_id: int, req: TransferRequest, x_principal: str = Header(...)):
    entry = LEDGER.transfer_ownership(_mutating(x_principal), asset_id, req.new_owner, req.reason)
    return entry.to_dict()


@app.post("/assets/{asset_id}/status")
def set_asset_status(asset_id: int, req: StatusRequest, x_principal: str = Header(...)):
    return LEDGER.set_status(_mutating(x_principal), asset_id, req.status).to_dict()


# ============================================================
# Access grants
# ============================================================

@app.put("/assets/{asset_id}/grants/{viewer}")
def grant_access(asset_id: int, viewer: str, req: Optional[GrantRequest] = None,
                 x_principal: str = Header(...)):
    level = req.level if req is not None else GrantRequest().level
    return LEDGER.grant(_mutating(x_principal), asset_id, viewer, level).to_dict()


@app.delete("/assets/{asset_id}/grants/{viewer}")
def revoke_access(asset_id: int, viewer: str, x_principal: str = Header(...)):
    return LEDGER.revoke(_mutating(x_principal), asset_id, viewer).to_dict()


@app.get("/assets/{asset_id}/grants/{viewer}")
def lookup_access(asset_id: int, viewer: str):
    grant = LEDGER.lookup_grant(asset_id, viewer)
    return {
        "asset_id": asset_id,
        "viewer": viewer,
        "authorized": grant.granted if grant is not None else False,
        "grant": grant.to_dict() if grant is not None else None,
    }


# ============================================================
# History, analytics, metrics
# ============================================================

@app.get("/assets/{asset_id}/history")
def asset_history(asset_id: int):
    entries = [e.to_dict() for e in LEDGER.history(asset_id)]
    # Validity is computed over the exact entries returned
    return {
        "asset_id": asset_id,
        "entries": entries,
        "chain_valid": verify_entry_chain(entries),
    }


@app.get("/assets/{asset_id}/history/export")
def export_asset_history(asset_id: int):
    bundle = LEDGER.export_history(asset_id, HEIGHT.current())
    if SIGNER is None:
        raise HTTPException(503, "SIGNING_KEY_UNAVAILABLE")
    return SIGNER.sign(bundle)


@app.get("/assets/{asset_id}/analytics")
def asset_analytics(asset_id: int, x_principal: str = Header(...)):
    return LEDGER.analyze(_reading(x_principal), asset_id).to_dict()


@app.get("/metrics")
def metrics():
    return {
        "counters": {category: c.to_dict() for category, c in LEDGER.metrics_snapshot().items()},
        "performance_score": LEDGER.performance_score(),
        "height": HEIGHT.current(),
    }


@app.get("/health")
def health():
    return {
        "status": "ok",
        "store": type(LEDGER.store).__name__,
        "height": HEIGHT.current(),
        "files": validate_config(),
    }
