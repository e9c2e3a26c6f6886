"""
Entity descriptors.

An entity descriptor holds everything the generic page logic needs to know
about one entity: its endpoint name, its fields, which fields can be
filtered or searched, its validation rules and how it is labelled when
another entity references it.

Design:
- One descriptor per entity, no per-entity page code
- Validation rule keys must be declared fields
- Read-only fields (id, timestamps) never appear in outgoing bodies
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple


# ============================================================================
# Constants
# ============================================================================

ID_FIELD = "id"
COUNT_KEY = "_count"
LANDING_ROUTE = "/"


# ============================================================================
# Field Specs
# ============================================================================


class FieldKind(str, Enum):
    """Value kind of an entity field."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    DATETIME = "datetime"
    REFERENCE = "reference"


@dataclass(frozen=True)
class FieldSpec:
    """
    One field of an entity record.

    Attributes:
        name: Field name as sent over the wire
        kind: Value kind
        label: Human-readable label
        read_only: Assigned server-side (id, timestamps)
        filterable: Equality filter allowed in list queries
        searchable: Partial-match text filter allowed in list queries
        related: Target entity name for reference fields
    """

    name: str
    kind: FieldKind = FieldKind.STRING
    label: str = ""
    read_only: bool = False
    filterable: bool = False
    searchable: bool = False
    related: Optional[str] = None

    def __post_init__(self):
        if not self.label:
            object.__setattr__(self, "label", self.name.replace("_", " ").title())
        if self.kind is FieldKind.REFERENCE and not self.related:
            raise ValueError(f"Reference field '{self.name}' needs a related entity")
        if self.searchable and self.kind is not FieldKind.STRING:
            raise ValueError(f"Only string fields can be searchable: '{self.name}'")


@dataclass(frozen=True)
class FieldRule:
    """
    Validation rule for one field.

    A field without a rule is never required.
    """

    required: bool = False
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    max_length: Optional[int] = None


# ============================================================================
# EntityDescriptor
# ============================================================================


@dataclass(frozen=True)
class EntityDescriptor:
    """
    Describes one entity handled by the generic admin pages.

    Attributes:
        name: Endpoint and route segment (e.g. "billings")
        label: Display label (e.g. "Billings")
        fields: Ordered field specs
        rules: Validation rules keyed by field name
        display_field: Field used as label when this entity is linked to
        counts: Related collections whose reverse counts may be attached
        defaults: Initial draft values for create forms
    """

    name: str
    label: str
    fields: Tuple[FieldSpec, ...]
    rules: Mapping[str, FieldRule] = field(default_factory=dict)
    display_field: Optional[str] = None
    counts: Tuple[str, ...] = ()
    defaults: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        names = [f.name for f in self.fields]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate field names in entity '{self.name}'")
        if ID_FIELD not in names:
            raise ValueError(f"Entity '{self.name}' must declare an '{ID_FIELD}' field")

        unknown = set(self.rules) - set(names)
        if unknown:
            raise ValueError(
                f"Validation rules for unknown fields in '{self.name}': {sorted(unknown)}"
            )

        unknown = set(self.defaults) - set(names)
        if unknown:
            raise ValueError(
                f"Defaults for unknown fields in '{self.name}': {sorted(unknown)}"
            )

        if self.display_field is not None:
            spec = self.field_map.get(self.display_field)
            if spec is None or not spec.searchable:
                raise ValueError(
                    f"Display field '{self.display_field}' of '{self.name}' must be a searchable field"
                )

    @property
    def field_map(self) -> Dict[str, FieldSpec]:
        """Field specs keyed by name."""
        return {f.name: f for f in self.fields}

    def get_field(self, name: str) -> FieldSpec:
        """
        Look up a field spec.

        Raises:
            KeyError: If the entity has no such field
        """
        try:
            return self.field_map[name]
        except KeyError:
            raise KeyError(f"Entity '{self.name}' has no field '{name}'") from None

    def has_field(self, name: str) -> bool:
        return name in self.field_map

    @property
    def writable_fields(self) -> List[str]:
        """Names of fields that may be sent in create/update bodies."""
        return [f.name for f in self.fields if not f.read_only]

    @property
    def reference_fields(self) -> List[FieldSpec]:
        return [f for f in self.fields if f.kind is FieldKind.REFERENCE]

    @property
    def query_fields(self) -> List[FieldSpec]:
        """Fields accepted as list filters."""
        return [f for f in self.fields if f.filterable or f.searchable]

    def initial_draft(self) -> Dict[str, Any]:
        """Return a fresh draft for a create form."""
        return dict(self.defaults)

    def payload(self, values: Mapping[str, Any], drop_none: bool = False) -> Dict[str, Any]:
        """
        Build an outgoing request body from draft values.

        Keeps writable fields only; read-only fields and the _count
        aggregate are never sent.

        Args:
            values: Draft or partial values
            drop_none: Omit fields whose value is None
        """
        writable = set(self.writable_fields)
        return {
            key: value
            for key, value in values.items()
            if key in writable and not (drop_none and value is None)
        }

    # -------------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------------

    @property
    def list_route(self) -> str:
        return f"/{self.name}"

    @property
    def create_route(self) -> str:
        return f"/{self.name}/create"

    def edit_route(self, record_id: str) -> str:
        return f"/{self.name}/edit/{record_id}"

    def view_route(self, record_id: str) -> str:
        return f"/{self.name}/view/{record_id}"


# ============================================================================
# Registry
# ============================================================================


class EntityRegistry:
    """Maps entity names to their descriptors."""

    def __init__(self, descriptors: Optional[List[EntityDescriptor]] = None):
        self._entities: Dict[str, EntityDescriptor] = {}
        for descriptor in descriptors or []:
            self.register(descriptor)

    def register(self, descriptor: EntityDescriptor) -> None:
        """
        Register a descriptor.

        Raises:
            ValueError: If an entity with the same name is already registered
        """
        if descriptor.name in self._entities:
            raise ValueError(f"Entity '{descriptor.name}' is already registered")
        self._entities[descriptor.name] = descriptor

    def get(self, name: str) -> EntityDescriptor:
        """
        Get a descriptor by name.

        Raises:
            KeyError: If no entity is registered under that name
        """
        try:
            return self._entities[name]
        except KeyError:
            raise KeyError(f"Unknown entity: {name}") from None

    def related(self, descriptor: EntityDescriptor, field_name: str) -> EntityDescriptor:
        """Return the descriptor targeted by a reference field."""
        spec = descriptor.get_field(field_name)
        if spec.kind is not FieldKind.REFERENCE:
            raise ValueError(f"Field '{field_name}' of '{descriptor.name}' is not a reference")
        return self.get(spec.related)

    def names(self) -> List[str]:
        return sorted(self._entities)

    def __contains__(self, name: str) -> bool:
        return name in self._entities

    def __iter__(self) -> Iterator[EntityDescriptor]:
        return iter(self._entities.values())
