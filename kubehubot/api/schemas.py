"""Pydantic response models for the status API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str
    version: str


class WatchStatus(BaseModel):
    """State of one watch subscription."""

    label: str
    kind: str
    state: str
    close_reason: str = ""


class WatchesResponse(BaseModel):
    """All subscriptions held by the supervisor.

    ``status`` is ``ok`` while every started subscription is active,
    ``degraded`` once any has closed or failed to open, and ``starting``
    before the supervisor has run.
    """

    status: str
    namespace: str
    extended_available: bool | None = None
    watches: list[WatchStatus] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)
