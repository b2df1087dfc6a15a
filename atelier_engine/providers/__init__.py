"""Gateway factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import ImageGateway
from .dryrun import DryRunGateway
from .gemini import GeminiGateway

if TYPE_CHECKING:
    from ..settings import AtelierSettings


def default_gateway(settings: AtelierSettings) -> ImageGateway:
    if settings.gateway == "dryrun":
        return DryRunGateway()
    return GeminiGateway(
        settings.api_key,
        image_model=settings.image_model,
        edit_model=settings.edit_model,
    )
