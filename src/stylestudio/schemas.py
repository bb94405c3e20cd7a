"""Pydantic models for the generation envelope.

Wire names are camelCase; Python attributes are snake_case.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class GenerateRequest(CamelModel):
    """Body of ``POST /api/generate``.

    ``prompt`` and ``model`` are checked by the adapter rather than the schema
    so that a missing prompt or unknown model is a 400 with an ``error`` body.
    Unknown aspect ratios are accepted here and mapped to the default later.
    """

    prompt: str | None = None
    model: str | None = None
    style_id: str | None = None
    reference_image_url: str | None = None
    aspect_ratio: str | None = None
    resolution: str | None = None
    seed: int | None = None


class GenerateResponse(CamelModel):
    image_url: str
    generation_id: str
    model: str
    prompt: str
    created_at: str
    style_id: str | None = None
    style_name: str | None = None
    is_demo: bool | None = None
    message: str | None = None
