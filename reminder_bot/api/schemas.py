"""Pydantic models for API responses."""

from pydantic import BaseModel, Field


class SweepResponse(BaseModel):
    """Result of one due sweep."""
    status: str = Field("ok", description="'ok' when the sweep ran")
    cutoff_ms: int = Field(..., description="Reminders due at or before this epoch millis were processed")
    users_scanned: int = Field(0, description="Users with pending reminders")
    sent: int = Field(0, description="Notifications delivered")
    failed: int = Field(0, description="Notifications that could not be delivered")
    dropped: int = Field(0, description="Undeliverable reminders given up on")
    removal_failures: int = Field(0, description="Users whose delivered reminders could not be removed")
    read_failures: int = Field(0, description="Users whose reminders could not be read")


class HealthResponse(BaseModel):
    status: str
    platform: str
    store: str
