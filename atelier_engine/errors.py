"""Error taxonomy and the user-facing error classifier."""

from __future__ import annotations

from dataclasses import dataclass


CONFIGURATION_MESSAGE = (
    "Configuration Error: The Gemini API Key is missing or invalid. "
    "Please ensure it is configured correctly in your environment."
)
GENERAL_PREFIX = "An error occurred: "
UPSCALE_PREFIX = "An error occurred during upscaling: "
FALLBACK_DETAIL = "Please try again."

CONTEXT_GENERAL = "general"
CONTEXT_UPSCALING = "upscaling"

KIND_VALIDATION = "validation"
KIND_CONFIGURATION = "configuration"
KIND_GENERAL = "general"
KIND_UPSCALE = "upscale"

_CREDENTIAL_MARKER = "api key"


class AtelierError(RuntimeError):
    """Base class for engine failures."""


class ValidationError(AtelierError):
    """Input rejected before any gateway call."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(AtelierError):
    """Access credential missing or rejected."""


class UpstreamError(AtelierError):
    """The gateway failed or returned no usable image."""


class CodecError(AtelierError):
    """Local encode, decode or thumbnail failure."""


class UpscaleError(AtelierError):
    """Failure raised while upscaling the current result."""


@dataclass(frozen=True)
class ClassifiedError:
    kind: str
    message: str


def classify_error(error: BaseException, context: str = CONTEXT_GENERAL) -> ClassifiedError:
    """Map a raw failure to the single message shown to the user.

    Credential problems win regardless of context. Everything else lands in
    the general or upscale bucket, keyed only by ``context``.
    """
    detail = str(error or "").strip()
    if _CREDENTIAL_MARKER in detail.lower():
        return ClassifiedError(kind=KIND_CONFIGURATION, message=CONFIGURATION_MESSAGE)
    if context == CONTEXT_UPSCALING:
        return ClassifiedError(kind=KIND_UPSCALE, message=f"{UPSCALE_PREFIX}{detail or FALLBACK_DETAIL}")
    return ClassifiedError(kind=KIND_GENERAL, message=f"{GENERAL_PREFIX}{detail or FALLBACK_DETAIL}")


def validation_failure(error: ValidationError) -> ClassifiedError:
    return ClassifiedError(kind=KIND_VALIDATION, message=str(error))
