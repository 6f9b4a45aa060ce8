"""HTTP access to the remote prompt service."""

from .client import HttpPromptFetcher

__all__ = ["HttpPromptFetcher"]
