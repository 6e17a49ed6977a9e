"""HTTP client for the App Store Connect API."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, Self

import httpx
from pydantic import ValidationError

from storesync.adapters.http_resilience import ResilientClient
from storesync.domain.ports.remote import RemoteClient

from .auth import TokenCredentials
from .schema import DocumentPayload, ErrorDocument, relationship_data, resource_document

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import TracebackType
    from typing import BinaryIO

    from storesync.config import AppStoreConnectConfig
    from storesync.domain.ports.remote import Related, RemoteResource, UploadOperation

log = getLogger(__name__)

PAGE_LIMIT = "200"


class AppStoreConnectAPIError(RuntimeError):
    """Raised when the App Store Connect API answers with a non-success status."""

    def __init__(self, message: str, *, status: int, method: str, url: str) -> None:
        super().__init__(f"{method} {url} failed with {status}: {message}")
        self.status = status
        self.method = method
        self.url = url


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        detail = ErrorDocument.model_validate(response.json()).describe()
    except (ValueError, ValidationError):
        detail = response.text or response.reason_phrase
    request = response.request
    raise AppStoreConnectAPIError(
        detail,
        status=response.status_code,
        method=request.method,
        url=str(request.url),
    )


def _document(response: httpx.Response) -> DocumentPayload:
    _raise_for_status(response)
    if response.status_code == httpx.codes.NO_CONTENT or not response.content:
        return DocumentPayload()
    return DocumentPayload.model_validate(response.json())


class AppStoreConnectClient:
    """``RemoteClient`` over the App Store Connect REST API.

    Resource paths are relative to the configured base URL. Pre-signed upload
    URLs are absolute and are sent without the API token.
    """

    def __init__(
        self,
        http: ResilientClient,
    ) -> None:
        self._http = http

    @classmethod
    def from_config(cls, config: AppStoreConnectConfig) -> AppStoreConnectClient:
        auth = TokenCredentials(config.key_id, config.issuer_id, config.private_key)
        return cls(ResilientClient(config.resilience, auth=auth))

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def list(
        self, path: str, params: Mapping[str, str] | None = None
    ) -> list[RemoteResource]:
        """Fetch every page of a collection by following ``links.next``."""

        query: dict[str, str] = {"limit": PAGE_LIMIT, **(params or {})}
        log.debug("GET %s", path)
        document = _document(await self._http.request("GET", path, params=query))
        resources: list[RemoteResource] = list(document.resources())
        # next links carry the cursor and the original query; params would replace them
        while (url := document.next_url) is not None:
            log.debug("GET %s", url)
            document = _document(await self._http.request("GET", url))
            resources.extend(document.resources())
        return resources

    async def get(
        self, path: str, params: Mapping[str, str] | None = None
    ) -> RemoteResource | None:
        log.debug("GET %s", path)
        response = await self._http.request("GET", path, params=dict(params or {}))
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        return _document(response).resource()

    async def create(
        self,
        type_: str,
        attributes: Mapping[str, Any] | None = None,
        relationships: Mapping[str, Related] | None = None,
    ) -> RemoteResource:
        log.debug("POST %s", type_)
        body = resource_document(type_, attributes=attributes, relationships=relationships)
        document = _document(await self._http.request("POST", type_, json=body))
        created = document.resource()
        if created is None:
            raise AppStoreConnectAPIError(
                "response carried no resource", status=201, method="POST", url=type_
            )
        return created

    async def update(
        self,
        type_: str,
        id_: str,
        attributes: Mapping[str, Any] | None = None,
        relationships: Mapping[str, Related] | None = None,
        included: Sequence[Mapping[str, Any]] | None = None,
    ) -> RemoteResource:
        log.debug("PATCH %s/%s", type_, id_)
        body = resource_document(
            type_,
            id_=id_,
            attributes=attributes,
            relationships=relationships,
            included=included,
        )
        document = _document(await self._http.request("PATCH", f"{type_}/{id_}", json=body))
        updated = document.resource()
        if updated is None:
            return await self._refetch(type_, id_)
        return updated

    async def _refetch(self, type_: str, id_: str) -> RemoteResource:
        resource = await self.get(f"{type_}/{id_}")
        if resource is None:
            raise AppStoreConnectAPIError(
                "resource vanished after update",
                status=404,
                method="GET",
                url=f"{type_}/{id_}",
            )
        return resource

    async def delete(self, type_: str, id_: str) -> None:
        log.debug("DELETE %s/%s", type_, id_)
        _raise_for_status(await self._http.request("DELETE", f"{type_}/{id_}"))

    async def add_relationship(
        self,
        type_: str,
        id_: str,
        relationship: str,
        related_type: str,
        ids: Sequence[str],
    ) -> None:
        log.debug("POST %s/%s/relationships/%s", type_, id_, relationship)
        body = relationship_data((related_type, list(ids)))
        response = await self._http.request(
            "POST", f"{type_}/{id_}/relationships/{relationship}", json=body
        )
        _raise_for_status(response)

    async def upload(self, operations: Sequence[UploadOperation], source: BinaryIO) -> None:
        """Send each part of a reserved asset, in order, to its pre-signed URL.

        Only the byte range of the current part is read from ``source``.
        """

        for operation in operations:
            log.debug(
                "%s %d bytes at offset %d", operation.method, operation.length, operation.offset
            )
            response = await self._http.request(
                operation.method,
                operation.url,
                content=operation.chunk(source),
                headers=dict(operation.headers),
                auth=None,
            )
            _raise_for_status(response)


if TYPE_CHECKING:
    _client_check: type[RemoteClient] = AppStoreConnectClient
