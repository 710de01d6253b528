"""Named error conditions raised across the documind pipeline."""

from __future__ import annotations

from typing import Sequence


class DocuMindError(RuntimeError):
    """Base class for expected, reportable documind failures."""


class TokenCountError(DocuMindError):
    """Raised when an input cannot be token-counted."""


class FileTooLarge(TokenCountError):
    """Raised when a file exceeds the token counter's size cap."""

    def __init__(self, path: str, size: int, limit: int) -> None:
        super().__init__(f"File too large: {path} is {size} bytes (max: {limit})")
        self.path = path
        self.size = size
        self.limit = limit


class NotText(TokenCountError):
    """Raised when a file looks binary or is not valid UTF-8."""

    def __init__(self, path: str, reason: str = "binary content detected") -> None:
        super().__init__(f"Not a text file: {path} ({reason})")
        self.path = path


class ManifestInvalid(DocuMindError):
    """Raised when generation is asked to run an invalid manifest."""

    def __init__(self, path: str, errors: Sequence[str]) -> None:
        joined = "; ".join(errors) if errors else "unknown validation failure"
        super().__init__(f"Manifest {path} is invalid: {joined}")
        self.path = path
        self.errors = list(errors)


class OrchestratorError(DocuMindError):
    """Base class for orchestrator command failures."""


class MissingParameter(OrchestratorError):
    def __init__(self, command: str, parameter: str) -> None:
        super().__init__(f"Parameter '{parameter}' is required for the {command} command")
        self.command = command
        self.parameter = parameter


class UnknownCommand(OrchestratorError):
    def __init__(self, command: str) -> None:
        super().__init__(f"Unknown command: {command}")
        self.command = command


class InstallationIncomplete(OrchestratorError):
    def __init__(self, missing: str) -> None:
        super().__init__(f"DocuMind installation incomplete: {missing} not found")
        self.missing = missing


__all__ = [
    "DocuMindError",
    "FileTooLarge",
    "InstallationIncomplete",
    "ManifestInvalid",
    "MissingParameter",
    "NotText",
    "OrchestratorError",
    "TokenCountError",
    "UnknownCommand",
]
