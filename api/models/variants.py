"""Pydantic models for exam variant API."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class VariantCreateRequest(BaseModel):
    """Request to duplicate a base exam into per-class variants."""

    model_config = ConfigDict(populate_by_name=True)

    class_ids: list[Any] = Field(default_factory=list, alias="classIds")


class CreatedVariant(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    class_id: str = Field(alias="classId")


class VariantCreateResponse(BaseModel):
    """Created variants, and requested classes that already had one."""

    created: list[CreatedVariant]
    skipped: list[str]
