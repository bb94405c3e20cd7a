from __future__ import annotations

import logging

from stylestudio.blob import BlobClient, unique_pathname
from stylestudio.config import Settings
from stylestudio.errors import GenerationError, InvalidRequestError
from stylestudio.images import DEFAULT_MIME, ImageReference, load_image_bytes, to_png
from stylestudio.providers.base import GenerationOptions, ImageModel, ImageProvider
from stylestudio.providers.gemini_provider import GeminiImageProvider
from stylestudio.providers.openai_provider import OpenAIImageProvider
from stylestudio.schemas import GenerateRequest, GenerateResponse
from stylestudio.storage import new_id, now_iso
from stylestudio.styles import Style, StyleCatalog

logger = logging.getLogger(__name__)

DEMO_MESSAGE = "API keys not configured. Showing example image."


def select_provider(model: ImageModel, settings: Settings) -> ImageProvider:
    timeout = settings.provider_timeout_seconds
    if model is ImageModel.NANO_BANANA:
        return GeminiImageProvider(
            settings.gemini_api_key,
            model=settings.gemini_fast_model,
            api_base=settings.gemini_api_base,
            timeout=timeout,
        )
    if model is ImageModel.NANO_BANANA_PRO:
        return GeminiImageProvider(
            settings.gemini_api_key,
            model=settings.gemini_pro_model,
            is_pro=True,
            api_base=settings.gemini_api_base,
            timeout=timeout,
        )
    if model is ImageModel.OPENAI:
        return OpenAIImageProvider(settings.openai_api_key, model=settings.openai_image_model, timeout=timeout)
    raise AssertionError(f"unhandled image model {model!r}")


async def persist_image(reference: ImageReference, settings: Settings) -> str:
    """
    Copy the image into blob storage and return the durable URL.

    Without a blob token this is a no-op. Failures are logged and the original
    reference is returned; persistence never fails a generation.
    """
    original = reference.as_url()
    if not settings.blob_read_write_token:
        logger.debug("Blob storage not configured; returning provider image as-is")
        return original

    try:
        mime, data = await load_image_bytes(reference, settings.provider_timeout_seconds)
        if mime != DEFAULT_MIME:
            data = to_png(data)
        blob = BlobClient(settings.blob_read_write_token, api_url=settings.blob_api_url)
        info = await blob.put(unique_pathname("generations", "png"), data, DEFAULT_MIME)
    except Exception as exc:
        logger.warning("Error saving image to blob storage: %s", exc, exc_info=True)
        return original
    return info.url


def validate_request(req: GenerateRequest) -> tuple[str, ImageModel]:
    prompt = req.prompt or ""
    if not prompt.strip():
        raise InvalidRequestError("Prompt is required")
    return prompt, ImageModel.parse(req.model)


def _demo_response(req: GenerateRequest, model: ImageModel, style: Style) -> GenerateResponse:
    return GenerateResponse(
        image_url=style.example_images[0],
        generation_id=new_id("demo"),
        model=model.value,
        prompt=req.prompt or "",
        created_at=now_iso(),
        style_id=style.id,
        style_name=style.name,
        is_demo=True,
        message=DEMO_MESSAGE,
    )


async def generate(req: GenerateRequest, settings: Settings, catalog: StyleCatalog) -> GenerateResponse:
    """
    Run one generation request end to end.

    Validation errors propagate before any outbound call. Provider failures
    fall back to the style's first example image when there is one and are
    re-raised otherwise.
    """
    prompt, model = validate_request(req)
    style = catalog.get(req.style_id)

    options = GenerationOptions(
        reference_image_url=req.reference_image_url,
        aspect_ratio=req.aspect_ratio,
        resolution=req.resolution,
        seed=req.seed,
    )

    try:
        provider = select_provider(model, settings)
        logger.info("Generating with %s (%s)", model.value, provider.model)
        reference = await provider.generate(prompt, options)
    except GenerationError as exc:
        logger.error("Generation with %s failed: %s", model.value, exc)
        if style is not None and style.example_images:
            return _demo_response(req, model, style)
        raise

    image_url = await persist_image(reference, settings)
    return GenerateResponse(
        image_url=image_url,
        generation_id=new_id("gen"),
        model=model.value,
        prompt=prompt,
        created_at=now_iso(),
        style_id=req.style_id,
        style_name=style.name if style else None,
    )
