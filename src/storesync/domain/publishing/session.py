"""Shared state for publishing one app."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from storesync.domain.parallel import TaskGroup, new_group

if TYPE_CHECKING:
    from storesync.domain.context import Context
    from storesync.domain.ports.remote import RemoteClient, RemoteResource
    from storesync.domain.reconcile import Logger


@dataclass(slots=True, frozen=True)
class PublishSession:
    """A remote client, the (read-only) run context and a logger for one app."""

    client: RemoteClient
    ctx: Context
    log: Logger

    @property
    def concurrency(self) -> int:
        return self.ctx.max_processes

    def group(self) -> TaskGroup:
        return new_group(self.ctx.max_processes)

    async def fetch_one(self, path: str) -> list[RemoteResource]:
        """Fetch a to-one resource as a zero- or one-element list."""

        resource = await self.client.get(path)
        return [] if resource is None else [resource]


def compact(values: Mapping[str, Any]) -> dict[str, Any]:
    """Drop undeclared (``None``) attributes from a request payload."""

    return {key: value for key, value in values.items() if value is not None}


def attr_key(name: str) -> Callable[[RemoteResource], str | None]:
    """Return a key function reading attribute ``name`` off a remote resource."""

    def key(resource: RemoteResource) -> str | None:
        value = resource.attr(name)
        return str(value) if value else None

    return key
