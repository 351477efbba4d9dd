"""Base class for slot renderers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence


class BaseRenderer(ABC):
    """Shared interface for any slot renderer."""

    name: str = "base"

    @abstractmethod
    def render(self, items: Sequence[Any], **options: Any) -> str:
        """Render merged plan items into the string value of one template slot."""
