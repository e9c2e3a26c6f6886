"""
Validation schema for entity drafts.

Builds a pydantic model from an entity's field rules and turns pydantic
errors into one readable message per field, keyed by field name. The
draft passed in is never modified.

Validation only runs on explicit submission; editing a field never
triggers it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, create_model
from pydantic import ValidationError as PydanticValidationError

from adminkit.src.entities import EntityDescriptor, FieldKind, FieldRule, FieldSpec


logger = logging.getLogger("adminkit.validation")

_VALUE_TYPES: Dict[FieldKind, type] = {
    FieldKind.STRING: str,
    FieldKind.NUMBER: float,
    FieldKind.INTEGER: int,
    FieldKind.DATETIME: str,
    FieldKind.REFERENCE: str,
}


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating a draft.

    Attributes:
        valid: True when no rule failed
        field_errors: Message per failing field
        values: Coerced values of the validated fields present in the draft
    """

    valid: bool
    field_errors: Dict[str, str] = field(default_factory=dict)
    values: Dict[str, Any] = field(default_factory=dict)


class ValidationSchema:
    """
    Per-entity field constraints checked before submission.

    Example:
        >>> schema = ValidationSchema(BILLINGS)
        >>> schema.validate({"order_summary": "", "total_value": 0}).field_errors
        {'order_summary': 'Order Summary is a required field'}
    """

    def __init__(self, entity: EntityDescriptor):
        self._entity = entity
        self._rules: Dict[str, FieldRule] = dict(entity.rules)
        self._model = self._build_model()

    @property
    def entity(self) -> EntityDescriptor:
        return self._entity

    @property
    def required_fields(self):
        return [name for name, rule in self._rules.items() if rule.required]

    def _build_model(self) -> Type[BaseModel]:
        definitions = {}
        for name, rule in self._rules.items():
            spec = self._entity.get_field(name)
            value_type = _VALUE_TYPES[spec.kind]
            constraints: Dict[str, Any] = {}
            if rule.max_length is not None:
                constraints["max_length"] = rule.max_length
            if rule.minimum is not None:
                constraints["ge"] = rule.minimum
            if rule.maximum is not None:
                constraints["le"] = rule.maximum

            if rule.required:
                if value_type is str:
                    constraints["min_length"] = 1
                definitions[name] = (value_type, Field(..., **constraints))
            else:
                definitions[name] = (Optional[value_type], Field(default=None, **constraints))

        return create_model(
            f"{self._entity.label.replace(' ', '')}Draft",
            __config__=ConfigDict(extra="ignore", str_strip_whitespace=True),
            **definitions,
        )

    def validate(self, draft: Mapping[str, Any]) -> ValidationResult:
        """
        Validate a draft against the schema.

        Args:
            draft: Field values; not modified

        Returns:
            ValidationResult with at most one message per failing field
        """
        try:
            parsed = self._model.model_validate(dict(draft))
        except PydanticValidationError as e:
            errors: Dict[str, str] = {}
            for error in e.errors():
                if not error["loc"]:
                    continue
                name = str(error["loc"][0])
                if name in errors:
                    continue
                errors[name] = self._message(self._entity.get_field(name), error)
            logger.debug(
                f"Draft for {self._entity.name} failed validation: {sorted(errors)}"
            )
            return ValidationResult(valid=False, field_errors=errors)

        values = {
            name: value
            for name, value in parsed.model_dump().items()
            if name in draft
        }
        return ValidationResult(valid=True, values=values)

    def _message(self, spec: FieldSpec, error: Dict[str, Any]) -> str:
        rule = self._rules[spec.name]
        error_type = error["type"]
        value = error.get("input")

        if error_type == "missing" or error_type == "string_too_short":
            return f"{spec.label} is a required field"
        if value is None or (isinstance(value, str) and not value.strip()):
            return f"{spec.label} is a required field"
        if error_type == "string_too_long":
            return f"{spec.label} must be at most {rule.max_length} characters"
        if error_type == "greater_than_equal":
            return f"{spec.label} must be greater than or equal to {_format_bound(rule.minimum)}"
        if error_type == "less_than_equal":
            return f"{spec.label} must be less than or equal to {_format_bound(rule.maximum)}"
        article = "an" if spec.kind.value[0] in "aeiou" else "a"
        return f"{spec.label} must be {article} {spec.kind.value}"


def _format_bound(bound: Optional[float]) -> str:
    if bound is not None and float(bound).is_integer():
        return str(int(bound))
    return str(bound)
