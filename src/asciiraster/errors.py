from pathlib import Path


class PipelineError(Exception):
    """Base class for everything the rendering pipeline reports to its caller."""


class ConfigError(PipelineError, ValueError):
    """Invalid options. Raised before any frame is processed."""


class DecodeError(PipelineError):
    def __init__(self, path: str | Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Could not decode {self.path}: {reason}")


class FontError(PipelineError):
    def __init__(self, message: str, character: str | None = None):
        self.character = character
        super().__init__(message)


class EncodeError(PipelineError):
    def __init__(self, path: str | Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Could not write {self.path}: {reason}")
