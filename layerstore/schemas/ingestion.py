"""Inbound record schemas for batch ingestion."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class NewAccountPlatformData(BaseModel):
    """One platform-reported attribute for an account (natural key: ``key``)."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1, max_length=255)
    value: str = Field("", description="Raw value; stored truncated and in full")


class NewActivityStat(BaseModel):
    """One statistic for a character in an activity instance.

    Natural key within a character: (instance_id, name).
    """

    model_config = ConfigDict(frozen=True)

    instance_id: int
    name: str = Field(..., min_length=1, max_length=255)
    value: float = 0.0
    value_display: str = ""
