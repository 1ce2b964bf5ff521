from pydantic import BaseModel, Field
from typing import Any, Optional


# Fields are passed through untyped: the ledger checks them so each bad value
# surfaces its own error kind rather than a generic schema error

class RegisterRequest(BaseModel):
    asset_id: Any = None
    designation: Any
    size_bytes: Any
    summary: Any
    tags: Any = Field(default_factory=list)
    status: Any = "active"

class UpdateMetadataRequest(BaseModel):
    designation: Optional[Any] = None
    summary: Optional[Any] = None
    tags: Optional[Any] = None
    size_bytes: Optional[Any] = None
    status: Optional[Any] = None

class TransferRequest(BaseModel):
    new_owner: Any
    reason: Any = ""

class StatusRequest(BaseModel):
    status: Any

class GrantRequest(BaseModel):
    level: Any = "viewer"
