"""Pydantic schemas for mirrored documents and remote change feeds."""

from mirror.schemas.documents import Document, RemoteChange

__all__ = [
    "Document",
    "RemoteChange",
]
