"""
Restaurants entity.

Target of the billings restaurant reference; labelled by its name in
linked-record pickers.
"""

from adminkit.src.entities import EntityDescriptor, FieldKind, FieldRule, FieldSpec


RESTAURANTS = EntityDescriptor(
    name="restaurants",
    label="Restaurants",
    fields=(
        FieldSpec("id", read_only=True, filterable=True),
        FieldSpec("created_at", FieldKind.DATETIME, read_only=True),
        FieldSpec("updated_at", FieldKind.DATETIME, read_only=True),
        FieldSpec("name", filterable=True, searchable=True),
        FieldSpec("description", searchable=True),
    ),
    rules={
        "name": FieldRule(required=True, max_length=255),
        "description": FieldRule(max_length=1000),
    },
    display_field="name",
    counts=("billings",),
    defaults={"name": "", "description": ""},
)
