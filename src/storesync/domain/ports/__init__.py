"""Domain port definitions for adapters."""

from __future__ import annotations

from .remote import RemoteClient, RemoteResource, UploadOperation

__all__ = ["RemoteClient", "RemoteResource", "UploadOperation"]
