"""Pydantic request models for the project routes."""

from __future__ import annotations

from stylestudio.schemas import CamelModel


class GeneratedImageIn(CamelModel):
    image_url: str
    prompt: str
    model: str
    id: str | None = None
    created_at: str | None = None
    style_id: str | None = None
    style_name: str | None = None
    aspect_ratio: str | None = None
    resolution: str | None = None


class ProjectRequest(CamelModel):
    """Body of ``POST /api/projects``: a name, an item, or both."""

    name: str | None = None
    item: GeneratedImageIn | None = None
    project_id: str | None = None
