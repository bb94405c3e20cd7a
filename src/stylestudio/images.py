from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from io import BytesIO

import httpx
from PIL import Image

DEFAULT_MIME = "image/png"

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^;,]*)*?);base64,(?P<payload>.*)$", re.DOTALL)


@dataclass(frozen=True)
class ImageReference:
    """One canonical generated image: either a URL or inline bytes, never both."""

    url: str | None = None
    mime_type: str | None = None
    data: bytes | None = None

    def __post_init__(self) -> None:
        if (self.url is None) == (self.data is None):
            raise ValueError("ImageReference needs exactly one of url or data")

    @classmethod
    def from_url(cls, url: str) -> ImageReference:
        return cls(url=url)

    @classmethod
    def inline(cls, data: bytes, mime_type: str = DEFAULT_MIME) -> ImageReference:
        return cls(mime_type=mime_type or DEFAULT_MIME, data=data)

    @classmethod
    def from_base64(cls, payload: str, mime_type: str = DEFAULT_MIME) -> ImageReference:
        return cls.inline(base64.b64decode(payload, validate=True), mime_type)

    @property
    def is_inline(self) -> bool:
        return self.data is not None

    def as_url(self) -> str:
        if self.url is not None:
            return self.url
        return to_data_url(self.data or b"", self.mime_type or DEFAULT_MIME)


def is_data_url(value: str) -> bool:
    return value.startswith("data:")


def to_data_url(data: bytes, mime_type: str = DEFAULT_MIME) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_url(value: str) -> tuple[str, bytes]:
    """Return (mime_type, raw bytes) for a base64 data: URL."""
    m = _DATA_URL_RE.match(value.strip())
    if not m:
        raise ValueError("not a base64 data URL")
    try:
        data = base64.b64decode(m.group("payload"), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid base64 payload: {exc}") from exc
    return m.group("mime") or DEFAULT_MIME, data


def to_png(data: bytes) -> bytes:
    img = Image.open(BytesIO(data))
    if img.mode not in ("RGB", "RGBA", "L", "LA", "P"):
        img = img.convert("RGBA")
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def identify_image(data: bytes) -> tuple[str, int, int]:
    """Return (format, width, height); raises if Pillow cannot read the bytes."""
    with Image.open(BytesIO(data)) as img:
        fmt = img.format or ""
        width, height = img.size
        img.verify()
    return fmt, width, height


async def fetch_image(url: str, timeout: float) -> ImageReference:
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        resp = await client.get(url)
        resp.raise_for_status()
    mime = resp.headers.get("content-type", "").split(";")[0].strip() or DEFAULT_MIME
    return ImageReference.inline(resp.content, mime)


async def load_image_bytes(reference: ImageReference, timeout: float) -> tuple[str, bytes]:
    if reference.is_inline:
        return reference.mime_type or DEFAULT_MIME, reference.data or b""
    fetched = await fetch_image(reference.url or "", timeout)
    return fetched.mime_type or DEFAULT_MIME, fetched.data or b""
