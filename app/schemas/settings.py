"""Pydantic schemas for the account settings endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ModeResponse(BaseModel):
    mode: str = Field(..., description="MANUAL or AUTO")
    status: str = Field(..., description="active or paused")


class AccountStatusUpdate(BaseModel):
    # Any type; the service rejects everything but "active" and "paused"
    account_status: Any = Field(None, alias="accountStatus")

    model_config = ConfigDict(populate_by_name=True)


class AccountStatusResponse(BaseModel):
    success: bool
    account_status: str = Field(..., alias="accountStatus")

    model_config = ConfigDict(populate_by_name=True)
