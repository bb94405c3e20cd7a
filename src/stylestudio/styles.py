from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_STYLES_PATH = Path(__file__).resolve().parent / "data" / "styles.json"
ALL_CATEGORIES = "All"


@dataclass(frozen=True)
class Style:
    id: str
    name: str
    category: str
    prompt_template: str
    example_images: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    recommended_model: str = "nano-banana"
    author: str | None = None
    author_link: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Style:
        return cls(
            id=data["id"],
            name=data["name"],
            category=data["category"],
            prompt_template=data.get("promptTemplate", ""),
            example_images=list(data.get("exampleImages") or []),
            tags=list(data.get("tags") or []),
            recommended_model=data.get("recommendedModel", "nano-banana"),
            author=data.get("author"),
            author_link=data.get("authorLink"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "promptTemplate": self.prompt_template,
            "exampleImages": list(self.example_images),
            "tags": list(self.tags),
            "recommendedModel": self.recommended_model,
        }
        if self.author:
            out["author"] = self.author
        if self.author_link:
            out["authorLink"] = self.author_link
        return out

    def matches(self, query: str) -> bool:
        q = query.strip().lower()
        if not q:
            return True
        haystack = [self.name, self.category, self.prompt_template, *self.tags]
        return any(q in s.lower() for s in haystack)


class StyleCatalog:
    """Read-only style reference data."""

    def __init__(self, styles: list[Style]) -> None:
        self.styles = list(styles)
        self._by_id = {s.id: s for s in self.styles}

    @classmethod
    def load(cls, path: Path | str | None = None) -> StyleCatalog:
        p = Path(path) if path else DEFAULT_STYLES_PATH
        data = json.loads(p.read_text("utf-8"))
        items = data.get("styles", []) if isinstance(data, dict) else data
        return cls([Style.from_dict(item) for item in items])

    def get(self, style_id: str | None) -> Style | None:
        if not style_id:
            return None
        return self._by_id.get(style_id)

    def by_category(self, category: str) -> list[Style]:
        return [s for s in self.styles if s.category == category]

    def search(self, query: str) -> list[Style]:
        return [s for s in self.styles if s.matches(query)]

    def query(
        self,
        q: str | None = None,
        category: str | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> tuple[list[Style], int]:
        result = self.search(q) if q else list(self.styles)
        if category and category != ALL_CATEGORIES:
            result = [s for s in result if s.category == category]
        offset = max(offset, 0)
        limit = max(limit, 0)
        return result[offset : offset + limit], len(result)
