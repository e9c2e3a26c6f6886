"""
Query descriptor for list endpoints.

Describes which records a list page wants: filters on declared fields,
sort field and direction, pagination window and related includes.
Unknown filter fields are rejected here, before any request is issued.

Wire format:
- Equality filter: field=value
- Partial-match filter (searchable text fields): field__contains=value
- List controls: offset, limit, order_by, order, include (comma-joined)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, create_model
from pydantic import ValidationError as PydanticValidationError

from adminkit.src.entities import COUNT_KEY, ID_FIELD, EntityDescriptor, FieldKind
from adminkit.src.exceptions import QueryValidationError


# ============================================================================
# Constants
# ============================================================================

DEFAULT_PAGE_SIZE = 20
CONTAINS_SUFFIX = "__contains"

_FILTER_TYPES: Dict[FieldKind, type] = {
    FieldKind.STRING: str,
    FieldKind.NUMBER: float,
    FieldKind.INTEGER: int,
    FieldKind.DATETIME: str,
    FieldKind.REFERENCE: str,
}


class SortOrder(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


class ListControls(BaseModel):
    """Pagination and sort controls shared by every list query."""

    model_config = ConfigDict(extra="forbid")

    offset: int = Field(default=0, ge=0, description="Number of records to skip")
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=0, description="Page size (capped server-side)")
    order_by: Optional[str] = Field(default=None, description="Sort field")
    order: SortOrder = Field(default=SortOrder.ASC, description="Sort direction")


def filter_model(entity: EntityDescriptor) -> Type[BaseModel]:
    """
    Build the pydantic filter model of an entity.

    Only filterable or searchable fields are declared; any other key is
    rejected because the model forbids extra fields.
    """
    definitions = {
        spec.name: (Optional[_FILTER_TYPES[spec.kind]], None)
        for spec in entity.query_fields
    }
    return create_model(
        f"{entity.label.replace(' ', '')}Filters",
        __config__=ConfigDict(extra="forbid", str_strip_whitespace=True),
        **definitions,
    )


# ============================================================================
# QueryDescriptor
# ============================================================================


@dataclass(frozen=True)
class QueryDescriptor:
    """
    A validated list request for one entity.

    Build instances with QueryDescriptor.build(); direct construction skips
    validation.
    """

    entity: EntityDescriptor
    filters: Mapping[str, Any] = field(default_factory=dict)
    offset: int = 0
    limit: int = DEFAULT_PAGE_SIZE
    order_by: Optional[str] = None
    order: SortOrder = SortOrder.ASC
    include: Tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        entity: EntityDescriptor,
        filters: Optional[Mapping[str, Any]] = None,
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
        order_by: Optional[str] = None,
        order: Any = SortOrder.ASC,
        include: Iterable[str] = (),
    ) -> "QueryDescriptor":
        """
        Validate and build a query descriptor.

        Args:
            entity: Entity being listed
            filters: Field name to filter value; None and blank values are ignored
            offset: Records to skip (non-negative)
            limit: Page size (non-negative)
            order_by: Sort field, must be a field of the entity
            order: "asc" or "desc"
            include: Related entity names or "_count"

        Raises:
            QueryValidationError: On unknown fields or invalid controls
        """
        model = filter_model(entity)
        try:
            parsed = model.model_validate(dict(filters or {}))
        except PydanticValidationError as e:
            raise _to_query_error(entity, e) from e
        clean_filters = {
            name: value
            for name, value in parsed.model_dump(exclude_none=True).items()
            if value != ""
        }

        try:
            controls = ListControls(offset=offset, limit=limit, order_by=order_by, order=order)
        except PydanticValidationError as e:
            raise _to_query_error(entity, e) from e

        if controls.order_by is not None and not entity.has_field(controls.order_by):
            raise QueryValidationError(
                f"Cannot sort '{entity.name}' by unknown field '{controls.order_by}'",
                field=controls.order_by,
            )

        allowed_includes = {spec.related for spec in entity.reference_fields}
        if entity.counts:
            allowed_includes.add(COUNT_KEY)
        include = tuple(include)
        for name in include:
            if name not in allowed_includes:
                raise QueryValidationError(
                    f"Cannot include '{name}' when listing '{entity.name}'",
                    field=name,
                )

        return cls(
            entity=entity,
            filters=clean_filters,
            offset=controls.offset,
            limit=controls.limit,
            order_by=controls.order_by,
            order=controls.order,
            include=include,
        )

    def replace(self, **changes: Any) -> "QueryDescriptor":
        """Return a re-validated copy with some parts changed."""
        current = {
            "filters": dict(self.filters),
            "offset": self.offset,
            "limit": self.limit,
            "order_by": self.order_by,
            "order": self.order,
            "include": self.include,
        }
        current.update(changes)
        return QueryDescriptor.build(self.entity, **current)

    # -------------------------------------------------------------------------
    # Wire format
    # -------------------------------------------------------------------------

    def to_params(self) -> Dict[str, Any]:
        """Serialize to query string parameters."""
        params: Dict[str, Any] = {}
        for name, value in self.filters.items():
            spec = self.entity.get_field(name)
            key = f"{name}{CONTAINS_SUFFIX}" if spec.searchable else name
            params[key] = value

        params["offset"] = self.offset
        params["limit"] = self.limit
        if self.order_by:
            params["order_by"] = self.order_by
            params["order"] = self.order.value
        if self.include:
            params["include"] = ",".join(self.include)
        return params

    # -------------------------------------------------------------------------
    # Contract helpers
    # -------------------------------------------------------------------------

    def matches(self, record: Mapping[str, Any]) -> bool:
        """
        Check a record against the filter predicate.

        Searchable fields match case-insensitively on a substring; all
        other filters compare for equality.
        """
        for name, expected in self.filters.items():
            actual = record.get(name)
            if self.entity.get_field(name).searchable:
                if actual is None or str(expected).lower() not in str(actual).lower():
                    return False
            elif actual != expected:
                return False
        return True

    def sort(self, records: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
        """
        Order records by the sort field, ties broken by identifier ascending.

        Without a sort field, records are ordered by identifier. Records
        missing the sort field come last in both directions.
        """
        reverse = self.order is SortOrder.DESC
        ordered = sorted(records, key=lambda r: str(r.get(ID_FIELD, "")))
        if self.order_by is None:
            return ordered
        if self.order_by == ID_FIELD:
            return list(reversed(ordered)) if reverse else ordered

        name = self.order_by
        present = [r for r in ordered if r.get(name) is not None]
        missing = [r for r in ordered if r.get(name) is None]
        # list.sort is stable in both directions, so identifier order survives ties
        present.sort(key=lambda r: r[name], reverse=reverse)
        return present + missing


def _to_query_error(entity: EntityDescriptor, exc: PydanticValidationError) -> QueryValidationError:
    error = exc.errors()[0]
    name = str(error["loc"][0]) if error["loc"] else None
    if error["type"] == "extra_forbidden":
        return QueryValidationError(
            f"Unknown filter field '{name}' for entity '{entity.name}'",
            field=name,
        )
    return QueryValidationError(f"Invalid value for '{name}': {error['msg']}", field=name)


# ============================================================================
# Page
# ============================================================================


@dataclass(frozen=True)
class Page:
    """One page of list results."""

    records: List[Dict[str, Any]]
    total_count: int
    offset: int = 0
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def has_next(self) -> bool:
        return self.offset + len(self.records) < self.total_count

    @property
    def has_previous(self) -> bool:
        return self.offset > 0

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)
