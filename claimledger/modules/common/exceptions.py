"""Base error types shared by every module."""


class EngineError(Exception):
    """Base class for errors that carry a machine-readable code."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str | None = None, **details) -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.details = details

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(EngineError):
    """Malformed input rejected before anything was persisted."""

    code = "INVALID_PAYLOAD"


class EffectFailedError(EngineError):
    """The state mutation failed after the record was consumed."""

    code = "EFFECT_FAILED"
