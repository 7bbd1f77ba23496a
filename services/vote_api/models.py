"""Pydantic models for request/response validation."""
from datetime import datetime
from typing import Literal, Optional, Dict
from pydantic import BaseModel, Field, validator


class VoteRequest(BaseModel):
    """Vote submission request model."""

    session_id: int = Field(..., alias="sessionId", description="Voting session identifier")
    index: int = Field(..., description="Chosen candidate slot")
    address: str = Field(..., description="Voter wallet address")

    @validator("address")
    def validate_address(cls, v):
        """Address must be non-empty; stored lowercased."""
        if not v or not v.strip():
            raise ValueError("Address cannot be empty")
        return v.strip().lower()

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "sessionId": 3,
                "index": 7,
                "address": "0x5bcaef9a3059340f39e640875fe803422b5100c8"
            }
        }


class VoteResponse(BaseModel):
    """Vote submission response model."""

    ok: bool = Field(default=True, description="Vote was recorded")


class WinnerResponse(BaseModel):
    """Winner query response model."""

    session_id: int = Field(..., alias="sessionId")
    winning_index: Optional[int] = Field(None, alias="winningIndex", description="Leading index, null if no votes")
    votes: int = Field(0, description="Votes for the leading index")
    counts: Dict[str, int] = Field(default_factory=dict, description="Votes per candidate index")
    tie_break_ts: int = Field(0, alias="tieBreakTs", description="Earliest vote time of the leading index")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "sessionId": 3,
                "winningIndex": 0,
                "votes": 2,
                "counts": {"0": 2, "1": 1},
                "tieBreakTs": 1718000000
            }
        }


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    services: dict = Field(..., description="Status of individual services")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Health check timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "services": {"ledger": "connected"},
                "timestamp": "2024-01-15T10:30:00"
            }
        }


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error message")

    class Config:
        json_schema_extra = {
            "example": {"error": "already voted"}
        }


class DeploymentComparison(BaseModel):
    """Configured vs. latest deployed address for one contract."""

    current: str
    latest: str
    is_up_to_date: bool = Field(..., alias="isUpToDate")
    needs_update: bool = Field(..., alias="needsUpdate")

    class Config:
        populate_by_name = True


class DeploymentCheckResponse(BaseModel):
    """Deployment check response model."""

    success: bool = True
    current_addresses: Dict[str, Optional[str]] = Field(..., alias="currentAddresses")
    latest_deployments: Dict[str, str] = Field(..., alias="latestDeployments")
    comparison: Dict[str, DeploymentComparison]
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        populate_by_name = True
