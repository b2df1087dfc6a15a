"""Gemini/Imagen gateway."""

from __future__ import annotations

from typing import Any, Sequence

try:
    from google import genai  # type: ignore
    from google.genai import errors as genai_errors  # type: ignore
    from google.genai import types  # type: ignore
except Exception:  # pragma: no cover
    genai = None  # type: ignore
    genai_errors = None  # type: ignore
    types = None  # type: ignore

from ..codec import EncodedImage
from ..errors import ConfigurationError, UpstreamError
from .google_utils import normalize_aspect_ratio


DEFAULT_IMAGE_MODEL = "imagen-4.0-generate-001"
DEFAULT_EDIT_MODEL = "gemini-2.5-flash-image"
GENERATED_MIME_TYPE = "image/jpeg"


class GeminiGateway:
    """Generate through Imagen, edit through Gemini image models.

    The SDK client is built on first use and then reused for every call.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str | None,
        *,
        image_model: str = DEFAULT_IMAGE_MODEL,
        edit_model: str = DEFAULT_EDIT_MODEL,
    ) -> None:
        self._api_key = api_key
        self.image_model = image_model
        self.edit_model = edit_model
        self._client: Any = None
        self.warnings: list[str] = []

    def _client_handle(self) -> Any:
        if self._client is not None:
            return self._client
        if not self._api_key:
            raise ConfigurationError("Gemini API key missing. Set GEMINI_API_KEY or GOOGLE_API_KEY.")
        if genai is None:
            raise UpstreamError("google-genai package not installed. Run: pip install google-genai")
        self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def generate(self, prompt: str, aspect_ratio: str) -> EncodedImage:
        client = self._client_handle()
        ratio = normalize_aspect_ratio(aspect_ratio, self.warnings)
        config = types.GenerateImagesConfig(
            number_of_images=1,
            output_mime_type=GENERATED_MIME_TYPE,
            aspect_ratio=ratio,
        )
        try:
            response = await client.aio.models.generate_images(
                model=self.image_model,
                prompt=prompt,
                config=config,
            )
        except genai_errors.APIError as exc:
            raise UpstreamError(str(exc)) from exc
        return extract_generated_image(response)

    async def edit(self, source: EncodedImage, instruction: str) -> EncodedImage:
        client = self._client_handle()
        parts = [
            types.Part(inline_data=types.Blob(data=source.to_bytes(), mime_type=source.mime_type)),
            types.Part(text=instruction),
        ]
        config = types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"])
        try:
            response = await client.aio.models.generate_content(
                model=self.edit_model,
                contents=parts,
                config=config,
            )
        except genai_errors.APIError as exc:
            raise UpstreamError(str(exc)) from exc
        return extract_inline_image(response)


def extract_inline_image(response: Any) -> EncodedImage:
    """Return the first image-bearing part of the first candidate."""
    candidates: Sequence[Any] = getattr(response, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) or []
        for part in parts:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None) if inline_data else None
            if not data:
                continue
            mime_type = getattr(inline_data, "mime_type", None) or "image/png"
            if isinstance(data, str):
                return EncodedImage(data=data, mime_type=mime_type)
            return EncodedImage.from_bytes(bytes(data), mime_type)
    raise UpstreamError("API did not return an edited image.")


def extract_generated_image(response: Any) -> EncodedImage:
    generated = getattr(response, "generated_images", None) or []
    for item in generated:
        image = getattr(item, "image", None)
        image_bytes = getattr(image, "image_bytes", None) if image else None
        if image_bytes:
            mime_type = getattr(image, "mime_type", None) or GENERATED_MIME_TYPE
            return EncodedImage.from_bytes(bytes(image_bytes), mime_type)
    raise UpstreamError("API did not return an image.")
