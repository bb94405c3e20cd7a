from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from stylestudio.errors import InvalidModelError
from stylestudio.images import ImageReference

DEFAULT_ASPECT_RATIO = "1:1"
ASPECT_RATIOS = ("1:1", "16:9", "9:16", "4:3", "3:4")


class ImageModel(str, Enum):
    NANO_BANANA = "nano-banana"
    NANO_BANANA_PRO = "nano-banana-pro"
    OPENAI = "openai"

    @classmethod
    def parse(cls, value: object) -> ImageModel:
        try:
            return cls(value)
        except ValueError:
            raise InvalidModelError(value) from None


def resolve_aspect_ratio(aspect_ratio: str | None) -> str:
    # Unknown ratios degrade to square instead of failing the request.
    if aspect_ratio in ASPECT_RATIOS:
        return aspect_ratio
    return DEFAULT_ASPECT_RATIO


@dataclass(frozen=True)
class GenerationOptions:
    reference_image_url: str | None = None
    aspect_ratio: str | None = None
    resolution: str | None = None
    seed: int | None = None


class ImageProvider(Protocol):
    name: str
    model: str

    async def generate(self, prompt: str, options: GenerationOptions) -> ImageReference: ...
