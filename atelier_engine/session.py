"""Session state owned by the engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .catalog import DEFAULT_ASPECT_RATIO
from .codec import EncodedImage
from .errors import ClassifiedError


class BusyKind(str, Enum):
    NONE = "none"
    GENERATING = "generating"
    UPSCALING = "upscaling"


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    source_image: EncodedImage | None = None
    aspect_ratio: str = DEFAULT_ASPECT_RATIO

    @property
    def mode(self) -> str:
        return "edit" if self.source_image is not None else "generate"


@dataclass(frozen=True)
class GenerationResult:
    image: EncodedImage
    upscaled: bool = False


@dataclass
class Session:
    prompt: str = ""
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    source_image: EncodedImage | None = None
    result: GenerationResult | None = None
    busy_kind: BusyKind = BusyKind.NONE
    error: ClassifiedError | None = None
    loading_message: str = ""

    @property
    def is_busy(self) -> bool:
        return self.busy_kind is not BusyKind.NONE

    @property
    def is_upscaled(self) -> bool:
        return bool(self.result and self.result.upscaled)

    def set_source_image(self, image: EncodedImage | None) -> None:
        self.source_image = image

    def begin(self, kind: BusyKind, message: str) -> None:
        self.busy_kind = kind
        self.loading_message = message
        self.error = None

    def finish(self) -> None:
        self.busy_kind = BusyKind.NONE
        self.loading_message = ""
