"""Pydantic models describing App Store Connect JSON:API documents."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from storesync.domain.ports.remote import RemoteResource


class AppStoreConnectBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ResourcePayload(AppStoreConnectBaseModel):
    id: str
    type: str
    attributes: dict[str, Any] = Field(default_factory=dict[str, Any])
    relationships: dict[str, Any] = Field(default_factory=dict[str, Any])

    def to_remote(self) -> RemoteResource:
        return RemoteResource(
            id=self.id,
            type=self.type,
            attributes=self.attributes,
            relationships=self.relationships,
        )


class DocumentLinks(AppStoreConnectBaseModel):
    self_: str | None = Field(default=None, alias="self")
    next: str | None = None


class ErrorPayload(AppStoreConnectBaseModel):
    status: str | None = None
    code: str | None = None
    title: str | None = None
    detail: str | None = None

    def describe(self) -> str:
        parts = [part for part in (self.code, self.title, self.detail) if part]
        return ": ".join(parts) or "unknown error"


class ErrorDocument(AppStoreConnectBaseModel):
    errors: list[ErrorPayload] = Field(default_factory=list[ErrorPayload])

    def describe(self) -> str:
        return "; ".join(error.describe() for error in self.errors) or "unknown error"


class DocumentPayload(AppStoreConnectBaseModel):
    """A response document whose primary data is one resource, many, or none."""

    data: ResourcePayload | list[ResourcePayload] | None = None
    included: list[ResourcePayload] = Field(default_factory=list[ResourcePayload])
    links: DocumentLinks | None = None

    @property
    def next_url(self) -> str | None:
        return self.links.next if self.links else None

    def resources(self) -> list[RemoteResource]:
        if self.data is None:
            return []
        if isinstance(self.data, list):
            return [item.to_remote() for item in self.data]
        return [self.data.to_remote()]

    def resource(self) -> RemoteResource | None:
        resources = self.resources()
        return resources[0] if resources else None


def relationship_data(target: tuple[str, str | Sequence[str]]) -> dict[str, Any]:
    """Encode a ``(type, id)`` or ``(type, [ids])`` target as relationship data."""

    type_, ids = target
    if isinstance(ids, str):
        return {"data": {"type": type_, "id": ids}}
    return {"data": [{"type": type_, "id": id_} for id_ in ids]}


def resource_document(
    type_: str,
    *,
    id_: str | None = None,
    attributes: Mapping[str, Any] | None = None,
    relationships: Mapping[str, tuple[str, str | Sequence[str]]] | None = None,
    included: Sequence[Mapping[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a request document for creating or updating one resource."""

    data: dict[str, Any] = {"type": type_}
    if id_ is not None:
        data["id"] = id_
    if attributes:
        data["attributes"] = dict(attributes)
    if relationships:
        data["relationships"] = {
            name: relationship_data(target) for name, target in relationships.items()
        }
    document: dict[str, Any] = {"data": data}
    if included:
        document["included"] = [dict(item) for item in included]
    return document
