"""Status transitions for images."""

from imagevault.state.models import ImageStatus

from .engine import StatusTransitionEngine

__all__ = ["ImageStatus", "StatusTransitionEngine"]
