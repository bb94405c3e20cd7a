from __future__ import annotations

from stylestudio.errors import ConfigurationError, EmptyResponseError, ProviderError
from stylestudio.images import ImageReference
from stylestudio.providers.base import GenerationOptions

SIZE_MAP = {
    "1:1": "1024x1024",
    "16:9": "1792x1024",
    "9:16": "1024x1792",
    "4:3": "1024x1024",
    "3:4": "1024x1792",
}
DEFAULT_SIZE = "1024x1024"


def size_for_aspect_ratio(aspect_ratio: str | None) -> str:
    return SIZE_MAP.get(aspect_ratio or "1:1", DEFAULT_SIZE)


class OpenAIImageProvider:
    name = "openai"

    def __init__(self, api_key: str | None, model: str = "dall-e-3", timeout: float = 120.0) -> None:
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        from openai import AsyncOpenAI  # type: ignore

        self.model = model
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    async def generate(self, prompt: str, options: GenerationOptions) -> ImageReference:
        """
        Reference images and seeds are not part of the images API; only the size varies.
        """
        import openai  # type: ignore

        try:
            resp = await self.client.images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                size=size_for_aspect_ratio(options.aspect_ratio),
                quality="hd",
                style="vivid",
            )
        except openai.APIStatusError as exc:
            raise ProviderError(self.name, _status_error_message(exc), status_code=exc.status_code) from exc
        except openai.APIError as exc:
            raise ProviderError(self.name, exc.message or str(exc)) from exc

        image_url = resp.data[0].url if resp.data else None
        if not image_url:
            raise EmptyResponseError("No image URL in OpenAI response")
        return ImageReference.from_url(image_url)


def _status_error_message(exc: object) -> str:
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        # The SDK hands us either the full envelope or the inner "error" object.
        inner = body.get("error", body)
        if isinstance(inner, dict) and inner.get("message"):
            return str(inner["message"])
    return str(getattr(exc, "message", "") or exc)
