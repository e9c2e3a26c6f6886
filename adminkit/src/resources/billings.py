"""
Billings entity.

A billing records what a table ordered and what it paid, optionally tied to
the restaurant it belongs to.
"""

from adminkit.src.entities import EntityDescriptor, FieldKind, FieldRule, FieldSpec


BILLINGS = EntityDescriptor(
    name="billings",
    label="Billings",
    fields=(
        FieldSpec("id", read_only=True, filterable=True),
        FieldSpec("created_at", FieldKind.DATETIME, read_only=True),
        FieldSpec("updated_at", FieldKind.DATETIME, read_only=True),
        FieldSpec("order_summary", filterable=True, searchable=True),
        FieldSpec("total_value", FieldKind.NUMBER),
        FieldSpec("table_number", filterable=True, searchable=True),
        FieldSpec(
            "restaurant_id",
            FieldKind.REFERENCE,
            label="Restaurant",
            filterable=True,
            related="restaurants",
        ),
    ),
    rules={
        "order_summary": FieldRule(required=True, max_length=255),
        "total_value": FieldRule(required=True, minimum=0),
        "table_number": FieldRule(max_length=255),
    },
    defaults={
        "order_summary": "",
        "total_value": 0,
        "table_number": "",
    },
)
