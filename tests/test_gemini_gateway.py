from __future__ import annotations

import asyncio
import base64
from types import SimpleNamespace

import pytest

from atelier_engine.codec import EncodedImage
from atelier_engine.errors import ConfigurationError, UpstreamError, classify_error
from atelier_engine.providers.gemini import (
    GeminiGateway,
    extract_generated_image,
    extract_inline_image,
)


def _content_response(*parts) -> SimpleNamespace:
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


class _FakeModels:
    def __init__(self, images_response=None, content_response=None) -> None:
        self.images_response = images_response
        self.content_response = content_response
        self.calls: list[dict] = []

    async def generate_images(self, **kwargs):
        self.calls.append({"method": "generate_images", **kwargs})
        return self.images_response

    async def generate_content(self, **kwargs):
        self.calls.append({"method": "generate_content", **kwargs})
        return self.content_response


def _gateway_with(models: _FakeModels) -> GeminiGateway:
    gateway = GeminiGateway("test-key")
    gateway._client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return gateway


def test_extract_inline_image_skips_text_parts() -> None:
    response = _content_response(
        SimpleNamespace(text="Here you go", inline_data=None),
        SimpleNamespace(inline_data=SimpleNamespace(data=b"png-bytes", mime_type="image/png")),
        SimpleNamespace(inline_data=SimpleNamespace(data=b"second", mime_type="image/png")),
    )

    image = extract_inline_image(response)

    assert image.mime_type == "image/png"
    assert image.to_bytes() == b"png-bytes"


def test_extract_inline_image_accepts_base64_text() -> None:
    payload = base64.b64encode(b"webp").decode("ascii")
    response = _content_response(SimpleNamespace(inline_data=SimpleNamespace(data=payload, mime_type="image/webp")))

    assert extract_inline_image(response) == EncodedImage(data=payload, mime_type="image/webp")


@pytest.mark.parametrize(
    "response",
    [
        SimpleNamespace(candidates=None),
        SimpleNamespace(candidates=[]),
        _content_response(SimpleNamespace(text="I cannot do that", inline_data=None)),
    ],
)
def test_extract_inline_image_without_image_raises(response) -> None:
    with pytest.raises(UpstreamError, match="did not return"):
        extract_inline_image(response)


def test_extract_generated_image() -> None:
    response = SimpleNamespace(generated_images=[SimpleNamespace(image=SimpleNamespace(image_bytes=b"jpg", mime_type=None))])

    image = extract_generated_image(response)

    assert image.mime_type == "image/jpeg"
    assert image.to_bytes() == b"jpg"


def test_extract_generated_image_without_images_raises() -> None:
    with pytest.raises(UpstreamError):
        extract_generated_image(SimpleNamespace(generated_images=[]))


def test_missing_api_key_is_a_configuration_failure() -> None:
    gateway = GeminiGateway(None)

    with pytest.raises(ConfigurationError) as excinfo:
        asyncio.run(gateway.generate("a fox", "1:1"))

    assert classify_error(excinfo.value).kind == "configuration"


def test_generate_sends_prompt_and_aspect_ratio() -> None:
    models = _FakeModels(
        images_response=SimpleNamespace(generated_images=[SimpleNamespace(image=SimpleNamespace(image_bytes=b"jpg"))])
    )
    gateway = _gateway_with(models)

    image = asyncio.run(gateway.generate("a red fox in snow", "16:9"))

    call = models.calls[0]
    assert call["method"] == "generate_images"
    assert call["model"] == "imagen-4.0-generate-001"
    assert call["prompt"] == "a red fox in snow"
    assert call["config"].aspect_ratio == "16:9"
    assert call["config"].number_of_images == 1
    assert image.to_bytes() == b"jpg"


def test_generate_snaps_unknown_aspect_ratio() -> None:
    models = _FakeModels(
        images_response=SimpleNamespace(generated_images=[SimpleNamespace(image=SimpleNamespace(image_bytes=b"jpg"))])
    )
    gateway = _gateway_with(models)

    asyncio.run(gateway.generate("wide", "21:9"))

    assert models.calls[0]["config"].aspect_ratio == "16:9"
    assert gateway.warnings == ["Aspect ratio snapped to 16:9."]


def test_edit_sends_image_then_instruction() -> None:
    models = _FakeModels(
        content_response=_content_response(SimpleNamespace(inline_data=SimpleNamespace(data=b"edited", mime_type="image/png")))
    )
    gateway = _gateway_with(models)
    source = EncodedImage.from_bytes(b"source", "image/jpeg")

    image = asyncio.run(gateway.edit(source, "add a hat"))

    call = models.calls[0]
    assert call["method"] == "generate_content"
    assert call["model"] == "gemini-2.5-flash-image"
    image_part, text_part = call["contents"]
    assert image_part.inline_data.data == b"source"
    assert image_part.inline_data.mime_type == "image/jpeg"
    assert text_part.text == "add a hat"
    assert image.to_bytes() == b"edited"
