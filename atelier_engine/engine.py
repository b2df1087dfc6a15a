"""Core Atelier engine orchestration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .codec import EncodedImage
from .errors import (
    CONTEXT_GENERAL,
    CONTEXT_UPSCALING,
    ClassifiedError,
    UpscaleError,
    ValidationError,
    classify_error,
    validation_failure,
)
from .history import HistoryItem, HistoryStore
from .providers.base import ImageGateway
from .runs.events import EventWriter, NullEventWriter
from .runs.export import export_image
from .session import BusyKind, GenerationRequest, GenerationResult, Session
from .utils import now_ms


logger = logging.getLogger(__name__)

UPSCALE_INSTRUCTION = (
    "Upscale this image, enhancing details and sharpening the result to make it higher resolution."
)
MISSING_INPUT_MESSAGE = "Please provide a prompt or an image to edit."
MISSING_EDIT_PROMPT_MESSAGE = "Please provide a prompt to describe your desired edits."

_LOADING_MESSAGES = {
    "generate": "Generating image...",
    "edit": "Editing image...",
    "upscale": "Upscaling image...",
}


def validate_request(prompt: str, source_image: EncodedImage | None) -> None:
    if not prompt and source_image is None:
        raise ValidationError("missing_input", MISSING_INPUT_MESSAGE)
    if source_image is not None and not prompt:
        raise ValidationError("missing_prompt_for_edit", MISSING_EDIT_PROMPT_MESSAGE)


class AtelierEngine:
    """Runs generation, edit and upscale flows against one session.

    A flow that starts while another is in flight is refused: the busy check
    and the transition happen before the first await, so flows never overlap
    on a single event loop.
    """

    def __init__(
        self,
        gateway: ImageGateway,
        history: HistoryStore,
        session: Session | None = None,
        events: EventWriter | NullEventWriter | None = None,
    ) -> None:
        self.gateway = gateway
        self.history = history
        self.session = session or Session()
        self.events = events or NullEventWriter()
        self.history.load()
        self.events.emit("session_started", gateway=getattr(gateway, "name", None))

    @property
    def history_items(self) -> list[HistoryItem]:
        return self.history.items

    async def submit(self) -> GenerationResult | None:
        return await self.submit_generation(
            self.session.prompt,
            self.session.source_image,
            self.session.aspect_ratio,
        )

    async def submit_generation(
        self,
        prompt: str,
        source_image: EncodedImage | None = None,
        aspect_ratio: str | None = None,
    ) -> GenerationResult | None:
        session = self.session
        if session.is_busy:
            self._ignore("generate")
            return None
        prompt = prompt or ""
        try:
            validate_request(prompt, source_image)
        except ValidationError as exc:
            session.error = validation_failure(exc)
            self.events.emit("validation_failed", code=exc.code, message=str(exc))
            return None

        request = GenerationRequest(
            prompt=prompt,
            source_image=source_image,
            aspect_ratio=aspect_ratio or session.aspect_ratio,
        )
        session.begin(BusyKind.GENERATING, _LOADING_MESSAGES[request.mode])
        session.result = None
        started_at = now_ms()
        try:
            self.events.emit("generation_started", mode=request.mode, prompt=request.prompt)
            image = await self._dispatch(request)
            result = GenerationResult(image=image, upscaled=False)
            session.result = result
            item = await self.history.add_generation(request.prompt, image, started_at)
            self.events.emit("generation_succeeded", mode=request.mode, mime_type=image.mime_type)
            self.events.emit("history_updated", history_id=item.id, size=len(self.history.items))
            return result
        except Exception as exc:
            self._fail(exc, CONTEXT_GENERAL, "generation_failed", mode=request.mode)
            return None
        finally:
            session.finish()

    async def _dispatch(self, request: GenerationRequest) -> EncodedImage:
        if request.source_image is not None:
            return await self.gateway.edit(request.source_image, request.prompt)
        return await self.gateway.generate(request.prompt, request.aspect_ratio)

    async def submit_upscale(self) -> GenerationResult | None:
        session = self.session
        current = session.result
        if current is None:
            return None
        if session.is_busy:
            self._ignore("upscale")
            return None

        session.begin(BusyKind.UPSCALING, _LOADING_MESSAGES["upscale"])
        try:
            self.events.emit("upscale_started", mime_type=current.image.mime_type)
            image = await self._upscale(current.image)
            result = GenerationResult(image=image, upscaled=True)
            session.result = result
            self.events.emit("upscale_succeeded", mime_type=image.mime_type)
            return result
        except Exception as exc:
            self._fail(exc, CONTEXT_UPSCALING, "upscale_failed")
            return None
        finally:
            session.finish()

    async def _upscale(self, image: EncodedImage) -> EncodedImage:
        try:
            return await self.gateway.edit(image, UPSCALE_INSTRUCTION)
        except Exception as exc:
            raise UpscaleError(str(exc)) from exc

    async def regenerate_from_history(self, item: HistoryItem) -> GenerationResult | None:
        if self.session.is_busy:
            self._ignore("regenerate")
            return None
        self.session.prompt = item.prompt
        self.session.set_source_image(None)
        return await self.submit_generation(item.prompt, None, self.session.aspect_ratio)

    def clear_history(self) -> None:
        self.history.clear()
        self.events.emit("history_cleared")

    def save_result(self, out_dir: Path, prompt: str | None = None) -> Path | None:
        result = self.session.result
        if result is None:
            return None
        return export_image(result.image, out_dir, prompt if prompt is not None else self.session.prompt)

    def _fail(self, exc: BaseException, context: str, event_type: str, **payload: Any) -> ClassifiedError:
        classified = classify_error(exc, context)
        logger.error("%s: %s", event_type, exc)
        self.session.error = classified
        self.events.emit(event_type, kind=classified.kind, error=str(exc), **payload)
        return classified

    def _ignore(self, action: str) -> None:
        logger.info("Ignoring %s while %s", action, self.session.busy_kind.value)
        self.events.emit("submission_ignored", action=action, busy_kind=self.session.busy_kind.value)
