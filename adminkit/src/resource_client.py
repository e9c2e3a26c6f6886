"""
Typed CRUD operations for one entity.

Every operation is a single round trip through AdminApiClient. Nothing is
cached and nothing is retried. Errors raised by the transport layer
(NotFoundError, NetworkError) reach the caller unchanged.
"""

import logging
from typing import Any, Dict, Iterable, Mapping

from adminkit.src.api_client import AdminApiClient, NetworkError
from adminkit.src.entities import EntityDescriptor
from adminkit.src.exceptions import QueryValidationError
from adminkit.src.query import Page, QueryDescriptor


logger = logging.getLogger("adminkit.resources")


class ResourceClient:
    """
    CRUD client bound to one entity.

    Attributes:
        entity: Descriptor of the entity this client operates on
    """

    def __init__(self, api_client: AdminApiClient, entity: EntityDescriptor):
        self._api = api_client
        self._entity = entity

    @property
    def entity(self) -> EntityDescriptor:
        return self._entity

    def _record_path(self, record_id: str) -> str:
        if not record_id:
            raise ValueError(f"A {self._entity.label} identifier is required")
        return f"/{self._entity.name}/{record_id}"

    async def create(self, draft: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Create a record from a validated draft.

        Read-only fields and None values are not sent.

        Returns:
            The created record with its server-assigned id and timestamps
        """
        payload = self._entity.payload(draft, drop_none=True)
        record = await self._api.post(f"/{self._entity.name}", json=payload)
        logger.info(f"Created {self._entity.name} {record.get('id') if record else None}")
        return record

    async def update(self, record_id: str, partial: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial update.

        Args:
            record_id: Identifier of an existing record
            partial: Changed fields only; None clears a field

        Returns:
            The updated record
        """
        path = self._record_path(record_id)
        record = await self._api.put(path, json=self._entity.payload(partial))
        logger.info(f"Updated {self._entity.name} {record_id}")
        return record

    async def get(self, record_id: str, include: Iterable[str] = ()) -> Dict[str, Any]:
        """
        Fetch one record.

        Args:
            record_id: Identifier of an existing record
            include: Related entity names or "_count" to attach

        Raises:
            NotFoundError: If no record has this identifier
        """
        path = self._record_path(record_id)
        include = tuple(include)
        params = {"include": ",".join(include)} if include else None
        return await self._api.get(path, params=params)

    async def remove(self, record_id: str) -> None:
        """
        Delete one record.

        Raises:
            NotFoundError: If no record has this identifier
        """
        await self._api.delete(self._record_path(record_id))
        logger.info(f"Deleted {self._entity.name} {record_id}")

    async def list(self, query: QueryDescriptor) -> Page:
        """
        List records matching a query descriptor.

        Raises:
            QueryValidationError: If the descriptor was built for another entity
            NetworkError: If the server rejects the query or the response is malformed
        """
        if query.entity.name != self._entity.name:
            raise QueryValidationError(
                f"Query for '{query.entity.name}' cannot list '{self._entity.name}'"
            )

        body = await self._api.get(f"/{self._entity.name}", params=query.to_params())
        if not isinstance(body, dict) or not isinstance(body.get("data"), list):
            raise NetworkError(f"Malformed list response for '{self._entity.name}'")

        records = body["data"]
        return Page(
            records=records,
            total_count=int(body.get("totalCount", len(records))),
            offset=query.offset,
            limit=query.limit,
        )
