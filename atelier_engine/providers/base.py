"""Gateway contract required of the remote image service."""

from __future__ import annotations

from typing import Protocol

from ..codec import EncodedImage


class ImageGateway(Protocol):
    name: str

    async def generate(self, prompt: str, aspect_ratio: str) -> EncodedImage:
        ...

    async def edit(self, source: EncodedImage, instruction: str) -> EncodedImage:
        ...
