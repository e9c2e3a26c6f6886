"""
Linked-record resolution for foreign-key fields.

LinkedRecordResolver turns free text into selectable (id, label) options by
querying the related entity's list endpoint with a partial-match filter
on its display field. LinkedRecordField binds one reference field of a
form to the resolver with search-as-you-type behaviour:

- each input waits for a debounce, then searches
- every input, selection and clear takes a new sequence number; only the
  newest input may apply its results (last request wins, whatever order
  responses arrive in)
- an input superseded during its debounce never reaches the network

Empty or blank text returns the first options of the unfiltered list,
ordered by display field.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable, List, Optional

from adminkit.src.entities import EntityDescriptor, EntityRegistry, ID_FIELD
from adminkit.src.form_controller import FormController
from adminkit.src.query import QueryDescriptor
from adminkit.src.resource_client import ResourceClient


logger = logging.getLogger("adminkit.linked_records")

DEFAULT_OPTION_LIMIT = 10
DEFAULT_DEBOUNCE_SECONDS = 0.3


@dataclass(frozen=True)
class LinkedOption:
    """A selectable reference to another entity."""

    id: str
    label: str


# ============================================================================
# LinkedRecordResolver
# ============================================================================


class LinkedRecordResolver:
    """
    Searches related entities and maps their records to options.

    Attributes:
        limit: Maximum number of options returned per search
    """

    def __init__(
        self,
        client_factory: Callable[[EntityDescriptor], ResourceClient],
        limit: int = DEFAULT_OPTION_LIMIT,
    ):
        """
        Initialize the resolver.

        Args:
            client_factory: Returns the resource client of a related entity
            limit: Maximum number of options per search
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._client_factory = client_factory
        self.limit = limit

    @staticmethod
    def _display_field(related: EntityDescriptor) -> str:
        if related.display_field is None:
            raise ValueError(f"Entity '{related.name}' has no display field")
        return related.display_field

    def _option(self, related: EntityDescriptor, record) -> LinkedOption:
        label = record.get(self._display_field(related))
        return LinkedOption(id=str(record[ID_FIELD]), label="" if label is None else str(label))

    async def search(self, related: EntityDescriptor, query_text: str) -> AsyncIterator[LinkedOption]:
        """
        Search a related entity by its display field.

        Args:
            related: Entity the reference points to
            query_text: Free text; blank text lists the first options unfiltered

        Yields:
            LinkedOption per matching record, at most `limit`
        """
        display_field = self._display_field(related)
        text = (query_text or "").strip()
        filters = {display_field: text} if text else {}

        query = QueryDescriptor.build(
            related,
            filters=filters,
            limit=self.limit,
            order_by=display_field,
        )
        page = await self._client_factory(related).list(query)
        for record in page.records[: self.limit]:
            yield self._option(related, record)

    async def resolve(self, related: EntityDescriptor, record_id: Optional[str]) -> Optional[LinkedOption]:
        """
        Turn a stored identifier into its option, for showing the current label.

        Raises:
            NotFoundError: If the referenced record no longer exists
        """
        if not record_id:
            return None
        record = await self._client_factory(related).get(record_id)
        return self._option(related, record)


# ============================================================================
# LinkedRecordField
# ============================================================================


class LinkedRecordField:
    """
    Search-as-you-type state for one reference field of a form.

    Attributes:
        field_name: Reference field on the owning form
        related: Entity the field points to
        options: Options from the newest applied search
        selected: Option currently chosen, if any
        query_text: Text of the newest input
    """

    def __init__(
        self,
        form: FormController,
        field_name: str,
        resolver: LinkedRecordResolver,
        registry: EntityRegistry,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self.field_name = field_name
        self.related = registry.related(form.entity, field_name)
        self._form = form
        self._resolver = resolver
        self._debounce = debounce
        self._sequence = 0

        self.options: List[LinkedOption] = []
        self.selected: Optional[LinkedOption] = None
        self.query_text = ""

    async def load_selected(self) -> Optional[LinkedOption]:
        """Resolve the label of the identifier already on the draft."""
        self.selected = await self._resolver.resolve(
            self.related, self._form.draft.get(self.field_name)
        )
        return self.selected

    async def input(self, text: str) -> bool:
        """
        Handle a change of the search text.

        Returns:
            True if this input's results were applied, False if a newer
            input, a selection or a clear superseded it
        """
        self._sequence += 1
        sequence = self._sequence
        self.query_text = text

        if self._debounce > 0:
            await asyncio.sleep(self._debounce)
            if sequence != self._sequence:
                return False

        options = [option async for option in self._resolver.search(self.related, text)]
        if sequence != self._sequence:
            logger.debug(
                f"Discarding stale {self.related.name} options for '{text}' "
                f"(request {sequence}, current {self._sequence})"
            )
            return False

        self.options = options
        return True

    def select(self, option: LinkedOption) -> None:
        """Set the reference field to the chosen option."""
        self._sequence += 1
        self.selected = option
        self._form.set_field(self.field_name, option.id)

    def clear(self) -> None:
        """Null out the reference so no stale identifier stays on the draft."""
        self._sequence += 1
        self.selected = None
        self.query_text = ""
        self.options = []
        self._form.set_field(self.field_name, None)
