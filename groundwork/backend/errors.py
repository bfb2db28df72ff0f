"""Error taxonomy for context building and prompt compilation."""


class GroundworkError(Exception):
    """Base class for all operator-facing errors."""


class MissingContextError(GroundworkError):
    """A prompt or briefing was requested before any context snapshot was built."""

    def __init__(self, message: str = "No context found. Run `groundwork build` first."):
        super().__init__(message)


class MissingTemplateError(GroundworkError):
    """No template matches the ticket and no feature fallback exists."""

    def __init__(self, message: str = "No prompt template found. Run `groundwork init` first."):
        super().__init__(message)


class CorruptRecordError(GroundworkError):
    """A persisted record exists but cannot be decoded or validated."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Corrupt record at {path}: {reason}")


class UnknownVersionError(GroundworkError):
    """An outcome was reported for a prompt version that was never stored."""

    def __init__(self, version_id: str):
        self.version_id = version_id
        super().__init__(f"Unknown prompt version: {version_id}")
