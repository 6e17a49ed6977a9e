"""Port for the remote store platform's resource API."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Protocol, runtime_checkable


@dataclass(slots=True, frozen=True)
class RemoteResource:
    """A resource as currently held by the remote platform."""

    id: str
    type: str
    attributes: Mapping[str, Any] = field(default_factory=dict[str, Any])
    relationships: Mapping[str, Any] = field(default_factory=dict[str, Any])

    def attr(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def related_id(self, name: str) -> str | None:
        """Return the id of a to-one relationship when the payload carried it."""

        relationship = self.relationships.get(name)
        if not isinstance(relationship, Mapping):
            return None
        data = relationship.get("data")
        if isinstance(data, Mapping):
            related = data.get("id")
            return str(related) if related is not None else None
        return None


@dataclass(slots=True, frozen=True)
class UploadOperation:
    """One part of a multi-part asset upload.

    Bytes ``offset`` to ``offset + length`` of the asset are sent to ``url``
    with ``method`` and ``headers``.
    """

    method: str
    url: str
    offset: int
    length: int
    headers: Mapping[str, str] = field(default_factory=dict[str, str])

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> UploadOperation:
        """Build an operation from an ``uploadOperations`` entry of an asset reservation."""

        headers = {
            str(header["name"]): str(header["value"])
            for header in payload.get("requestHeaders") or ()
            if header.get("name")
        }
        return cls(
            method=str(payload.get("method") or "PUT"),
            url=str(payload["url"]),
            offset=int(payload.get("offset") or 0),
            length=int(payload.get("length") or 0),
            headers=headers,
        )

    def chunk(self, source: BinaryIO) -> bytes:
        """Read this part's byte range from an open asset file."""

        source.seek(self.offset)
        return source.read(self.length)


type Related = tuple[str, str | Sequence[str]]
"""Relationship target: ``(type, id)`` for to-one, ``(type, [ids])`` for to-many."""


@runtime_checkable
class RemoteClient(Protocol):
    """Async resource client over a JSON:API style platform."""

    async def list(
        self, path: str, params: Mapping[str, str] | None = None
    ) -> list[RemoteResource]: ...

    async def get(
        self, path: str, params: Mapping[str, str] | None = None
    ) -> RemoteResource | None: ...

    async def create(
        self,
        type_: str,
        attributes: Mapping[str, Any] | None = None,
        relationships: Mapping[str, Related] | None = None,
    ) -> RemoteResource: ...

    async def update(
        self,
        type_: str,
        id_: str,
        attributes: Mapping[str, Any] | None = None,
        relationships: Mapping[str, Related] | None = None,
        included: Sequence[Mapping[str, Any]] | None = None,
    ) -> RemoteResource: ...

    async def delete(self, type_: str, id_: str) -> None: ...

    async def add_relationship(
        self,
        type_: str,
        id_: str,
        relationship: str,
        related_type: str,
        ids: Sequence[str],
    ) -> None: ...

    async def upload(
        self, operations: Sequence[UploadOperation], source: BinaryIO
    ) -> None: ...


__all__ = ["Related", "RemoteClient", "RemoteResource", "UploadOperation"]
