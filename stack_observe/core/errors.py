from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ObserveError(Exception):
    """Base error envelope. Every failure aborts the whole expansion."""

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<observe>"
        return f"{loc}: {self.code}: {self.message}"


class LoadError(ObserveError):
    pass


class ValidationError(ObserveError):
    pass


class MergeError(ObserveError):
    pass


class GraphError(ObserveError):
    pass
