from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from stylestudio.errors import ConfigurationError, EmptyResponseError, ProviderError, UnexpectedResponseShapeError
from stylestudio.images import DEFAULT_MIME, ImageReference, fetch_image, is_data_url, parse_data_url
from stylestudio.providers.base import GenerationOptions, resolve_aspect_ratio

logger = logging.getLogger(__name__)

# Imagen exposes two output sizes; the larger requested resolutions all map to 2K.
_SAMPLE_IMAGE_SIZES = {"1024": "1K", "2048": "2K", "4096": "2K"}


class GeminiImageProvider:
    """Imagen text-to-image through the Gemini API `:predict` endpoint."""

    name = "gemini"

    def __init__(
        self,
        api_key: str | None,
        model: str,
        is_pro: bool = False,
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 120.0,
    ) -> None:
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY (or NANO_BANANA_API_KEY) is not configured")
        self.api_key = api_key
        self.model = model
        self.is_pro = is_pro
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    @property
    def predict_url(self) -> str:
        return f"{self.api_base}/models/{self.model}:predict"

    async def generate(self, prompt: str, options: GenerationOptions) -> ImageReference:
        instance: dict[str, Any] = {"prompt": prompt}

        reference = await self._load_reference(options.reference_image_url)
        if reference is not None:
            instance["referenceImages"] = [
                {
                    "referenceType": "REFERENCE_TYPE_STYLE",
                    "referenceId": 1,
                    "referenceImage": {
                        "bytesBase64Encoded": base64.b64encode(reference.data or b"").decode("ascii"),
                        "mimeType": reference.mime_type,
                    },
                }
            ]

        parameters: dict[str, Any] = {
            "sampleCount": 1,
            "aspectRatio": resolve_aspect_ratio(options.aspect_ratio),
            "personGeneration": "allow_adult",
            "safetySetting": "block_low_and_above",
        }
        if self.is_pro and options.resolution in _SAMPLE_IMAGE_SIZES:
            parameters["sampleImageSize"] = _SAMPLE_IMAGE_SIZES[options.resolution]

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.predict_url,
                    headers={"x-goog-api-key": self.api_key},
                    json={"instances": [instance], "parameters": parameters},
                )
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, f"request to {self.model} failed: {exc}") from exc

        if not resp.is_success:
            raise ProviderError(self.name, describe_error_response(resp), status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            raise UnexpectedResponseShapeError("Gemini API returned a non-JSON body") from exc
        return extract_prediction_image(data)

    async def _load_reference(self, reference_image_url: str | None) -> ImageReference | None:
        # A broken reference image never aborts the generation.
        if not reference_image_url:
            return None
        try:
            if is_data_url(reference_image_url):
                mime, payload = parse_data_url(reference_image_url)
                return ImageReference.inline(payload, mime)
            return await fetch_image(reference_image_url, self.timeout)
        except (ValueError, httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Skipping reference image %.80s: %s", reference_image_url, exc)
            return None


def describe_error_response(resp: httpx.Response) -> str:
    """Best-effort message from a failed provider response."""
    message = _json_error_message(resp)
    if message:
        return message
    return f"{resp.status_code} {resp.reason_phrase} - {resp.text}".strip()


def _json_error_message(resp: httpx.Response) -> str | None:
    try:
        payload = resp.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        return str(message) if message else None
    if isinstance(error, str) and error:
        return error
    return None


def extract_prediction_image(data: Any) -> ImageReference:
    predictions = data.get("predictions") if isinstance(data, dict) else None
    if not predictions:
        raise EmptyResponseError("No predictions returned from Gemini API")

    prediction = predictions[0]
    if not isinstance(prediction, dict):
        raise UnexpectedResponseShapeError("Unexpected prediction format from Gemini API")
    mime = prediction.get("mimeType") or DEFAULT_MIME

    b64 = prediction.get("bytesBase64Encoded") or prediction.get("b64")
    if not b64:
        image = prediction.get("image")
        if isinstance(image, dict):
            b64 = image.get("imageBytes")
            mime = image.get("mimeType") or mime
    if b64:
        try:
            return ImageReference.from_base64(b64, mime)
        except ValueError as exc:
            raise UnexpectedResponseShapeError(f"Gemini API returned invalid base64 image data: {exc}") from exc

    url = prediction.get("url")
    if url:
        return ImageReference.from_url(url)

    raise UnexpectedResponseShapeError("Unexpected response format from Gemini API")
