"""Utility helpers shared across vidcat modules."""

from vidcat.utils.progress import ProcessingStage, ProgressUpdate
from vidcat.utils.validation import RejectionReason, UrlResolutionError, resolve_url

__all__ = ["ProcessingStage", "ProgressUpdate", "RejectionReason", "UrlResolutionError", "resolve_url"]
