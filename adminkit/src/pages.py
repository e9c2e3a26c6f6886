"""
List and view page controllers.

Both pages are gated on READ when mounted. The list page drives the
resource client with a query descriptor and keeps request failures as a
banner error; row deletion is allowed only when the DELETE check passed
at mount.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from adminkit.src.api_client import ApiError
from adminkit.src.auth import AccessOperation, AccessService, AuthorizationContext
from adminkit.src.entities import COUNT_KEY, EntityDescriptor
from adminkit.src.exceptions import AuthorizationError
from adminkit.src.navigation import Navigator
from adminkit.src.query import DEFAULT_PAGE_SIZE, Page, QueryDescriptor, SortOrder
from adminkit.src.resource_client import ResourceClient


logger = logging.getLogger("adminkit.pages")


class _GatedPage:
    """Shared mount-time authorization for page controllers."""

    def __init__(
        self,
        entity: EntityDescriptor,
        client: ResourceClient,
        auth: AuthorizationContext,
        navigator: Navigator,
        service: AccessService = AccessService.PROJECT,
    ):
        self.entity = entity
        self._client = client
        self._auth = auth
        self._navigator = navigator
        self._service = service
        self.error: Optional[ApiError] = None

    async def _gate(self) -> None:
        await self._auth.require(
            self._service, self.entity.name, AccessOperation.READ, navigator=self._navigator
        )


# ============================================================================
# ListPage
# ============================================================================


class ListPage(_GatedPage):
    """
    Paginated, filterable list of one entity.

    Attributes:
        page: Most recently loaded page
        query: Query descriptor of the most recent load
        can_delete: Whether the DELETE check passed at mount
    """

    def __init__(
        self,
        entity: EntityDescriptor,
        client: ResourceClient,
        auth: AuthorizationContext,
        navigator: Navigator,
        page_size: int = DEFAULT_PAGE_SIZE,
        service: AccessService = AccessService.PROJECT,
    ):
        super().__init__(entity, client, auth, navigator, service)
        self.page_size = page_size
        self.page: Optional[Page] = None
        self.query: Optional[QueryDescriptor] = None
        self.can_delete = False

    async def mount(self) -> None:
        """
        Raises:
            AuthorizationError: If the session may not read this entity
        """
        await self._gate()
        self.can_delete = await self._auth.authorize(
            self._service, self.entity.name, AccessOperation.DELETE
        )

    async def load(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        offset: int = 0,
        order_by: Optional[str] = None,
        order: SortOrder = SortOrder.ASC,
    ) -> Optional[Page]:
        """
        Load one page.

        Returns:
            The page, or None if the request failed (see `error`)

        Raises:
            QueryValidationError: If the filters or sort field are not allowed
        """
        include = (COUNT_KEY,) if self.entity.counts else ()
        query = QueryDescriptor.build(
            self.entity,
            filters=filters,
            offset=offset,
            limit=self.page_size,
            order_by=order_by,
            order=order,
            include=include,
        )
        return await self._fetch(query)

    async def _fetch(self, query: QueryDescriptor) -> Optional[Page]:
        self.query = query
        self.error = None
        try:
            self.page = await self._client.list(query)
        except ApiError as e:
            logger.warning(f"Failed to list {self.entity.name}: {e}")
            self.error = e
            return None
        return self.page

    async def next_page(self) -> Optional[Page]:
        if self.query is None or self.page is None or not self.page.has_next:
            return self.page
        return await self._fetch(self.query.replace(offset=self.query.offset + self.page_size))

    async def previous_page(self) -> Optional[Page]:
        if self.query is None or self.query.offset == 0:
            return self.page
        return await self._fetch(
            self.query.replace(offset=max(0, self.query.offset - self.page_size))
        )

    async def delete(self, record_id: str) -> bool:
        """
        Delete a row and reload the current page.

        Returns:
            True if the record was deleted, False if the request failed

        Raises:
            AuthorizationError: If the DELETE check failed at mount
        """
        if not self.can_delete:
            raise AuthorizationError(
                self._service.value,
                self.entity.name,
                AccessOperation.DELETE.value,
                redirect_to=self._auth.redirect_to,
            )

        self.error = None
        try:
            await self._client.remove(record_id)
        except ApiError as e:
            logger.warning(f"Failed to delete {self.entity.name} {record_id}: {e}")
            self.error = e
            return False

        if self.query is not None:
            await self._fetch(self.query)
        return True

    def open_create(self) -> None:
        self._navigator.push(self.entity.create_route)

    def open_edit(self, record_id: str) -> None:
        self._navigator.push(self.entity.edit_route(record_id))

    def open_view(self, record_id: str) -> None:
        self._navigator.push(self.entity.view_route(record_id))


# ============================================================================
# ViewPage
# ============================================================================


class ViewPage(_GatedPage):
    """Read-only view of one record, with reverse counts when declared."""

    def __init__(
        self,
        entity: EntityDescriptor,
        client: ResourceClient,
        auth: AuthorizationContext,
        navigator: Navigator,
        record_id: str,
        service: AccessService = AccessService.PROJECT,
    ):
        super().__init__(entity, client, auth, navigator, service)
        self.record_id = record_id
        self.record: Optional[Dict[str, Any]] = None

    async def mount(self) -> Optional[Dict[str, Any]]:
        """
        Check READ access and load the record.

        Returns:
            The record, or None if loading failed (see `error`)

        Raises:
            AuthorizationError: If the session may not read this entity
        """
        await self._gate()
        include = (COUNT_KEY,) if self.entity.counts else ()
        try:
            self.record = await self._client.get(self.record_id, include=include)
        except ApiError as e:
            logger.warning(f"Failed to load {self.entity.name} {self.record_id}: {e}")
            self.error = e
            return None
        return self.record

    def open_edit(self) -> None:
        self._navigator.push(self.entity.edit_route(self.record_id))
