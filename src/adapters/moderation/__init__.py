"""Moderation adapters - Message classification implementations."""

from .http import HttpMessageModerator

__all__ = ["HttpMessageModerator"]
