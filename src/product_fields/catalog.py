from __future__ import annotations

import itertools
import logging
import uuid
from dataclasses import dataclass, field as dataclass_field, replace
from typing import Any, Callable, Iterator

from .pricing import FIELD_TYPE_DROPDOWN, FIELD_TYPE_NUMBER, FIELD_TYPE_TEXT, FIELD_TYPES, PRICING_BASE

MAX_FIELDS = 4
FIELD_ID_PREFIX = "f"
OPTION_ID_PREFIX = "opt"

UPDATABLE_FIELD_ATTRIBUTES = {"label", "type", "required", "pricing_model", "price", "min", "max"}
UPDATABLE_OPTION_ATTRIBUTES = {"name", "price"}
UPDATABLE_PRODUCT_ATTRIBUTES = {"name", "description", "base_price", "enable_special_fields"}

IdGenerator = Callable[[str], str]

logger = logging.getLogger(__name__)


class CatalogError(ValueError):
    """Raised when a mutation payload names unknown attributes or types."""


class CounterIdGenerator:
    """Deterministic ``<prefix>-<n>`` ids, one shared sequence for all prefixes."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)

    def __call__(self, prefix: str) -> str:
        return f"{prefix}-{next(self._counter)}"


def uuid_id_generator(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


@dataclass(slots=True, frozen=True)
class Option:
    id: str
    name: str = ""
    price: Any = 0

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "price": self.price}


@dataclass(slots=True, frozen=True)
class Field:
    id: str
    label: str = ""
    type: str = FIELD_TYPE_TEXT
    required: bool = False
    pricing_model: str | None = PRICING_BASE
    price: Any = 0
    min: float | None = None
    max: float | None = None
    options: tuple[Option, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type,
            "required": self.required,
            "pricingModel": self.pricing_model,
            "price": self.price,
            "min": self.min,
            "max": self.max,
            "options": [option.to_dict() for option in self.options],
        }


@dataclass(slots=True, frozen=True)
class Product:
    name: str = ""
    description: str = ""
    base_price: Any = 0
    enable_special_fields: bool = False

    def update(self, **changes: Any) -> Product:
        unknown = set(changes) - UPDATABLE_PRODUCT_ATTRIBUTES
        if unknown:
            raise CatalogError(f"unknown product attributes: {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "basePrice": self.base_price,
            "enableSpecialFields": self.enable_special_fields,
        }


def _check_field_type(field_type: str) -> None:
    if field_type not in FIELD_TYPES:
        raise CatalogError(f"unsupported field type: {field_type}")


def default_customer_input(field: Field) -> Any:
    if field.type == FIELD_TYPE_DROPDOWN and field.options:
        return field.options[0].id
    if field.type == FIELD_TYPE_NUMBER:
        return 0
    return ""


@dataclass(slots=True, frozen=True)
class FieldCatalog:
    """Ordered special fields of one product plus the customer inputs keyed by field id.

    Every operation returns a new catalog. Operations on ids that do not exist
    return the catalog unchanged.
    """

    fields: tuple[Field, ...] = ()
    customer_inputs: dict[str, Any] = dataclass_field(default_factory=dict)
    new_id: IdGenerator = dataclass_field(default=uuid_id_generator, compare=False, repr=False)

    @classmethod
    def with_default_field(cls, new_id: IdGenerator = uuid_id_generator) -> FieldCatalog:
        return cls(new_id=new_id).add_field()

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    @property
    def is_full(self) -> bool:
        return len(self.fields) >= MAX_FIELDS

    def get_field(self, field_id: str) -> Field | None:
        return next((item for item in self.fields if item.id == field_id), None)

    def add_field(self) -> FieldCatalog:
        if self.is_full:
            logger.info("catalog_full", extra={"field_count": len(self.fields)})
            return self
        new_field = Field(id=self.new_id(FIELD_ID_PREFIX))
        logger.info("field_added", extra={"field_id": new_field.id, "position": len(self.fields)})
        return self._replace_fields(
            (*self.fields, new_field),
            {**self.customer_inputs, new_field.id: default_customer_input(new_field)},
        )

    def remove_field(self, field_id: str) -> FieldCatalog:
        if self.get_field(field_id) is None:
            return self
        inputs = {key: value for key, value in self.customer_inputs.items() if key != field_id}
        logger.info("field_removed", extra={"field_id": field_id})
        return self._replace_fields(tuple(item for item in self.fields if item.id != field_id), inputs)

    def update_field(self, field_id: str, **changes: Any) -> FieldCatalog:
        unknown = set(changes) - UPDATABLE_FIELD_ATTRIBUTES
        if unknown:
            raise CatalogError(f"unknown field attributes: {', '.join(sorted(unknown))}")
        current = self.get_field(field_id)
        if current is None:
            return self

        inputs = self.customer_inputs
        new_type = changes.get("type", current.type)
        _check_field_type(new_type)
        if new_type != FIELD_TYPE_DROPDOWN:
            changes["options"] = ()
        elif current.type != FIELD_TYPE_DROPDOWN and not current.options:
            changes["options"] = (
                Option(id=self.new_id(OPTION_ID_PREFIX)),
                Option(id=self.new_id(OPTION_ID_PREFIX)),
            )

        updated = replace(current, **changes)
        if new_type != current.type:
            inputs = {**inputs, field_id: default_customer_input(updated)}
            logger.info(
                "field_type_changed",
                extra={"field_id": field_id, "from_type": current.type, "to_type": new_type},
            )
        return self._replace_fields(
            tuple(updated if item.id == field_id else item for item in self.fields),
            inputs,
        )

    def move_field(self, index: int, direction: int) -> FieldCatalog:
        target = index + direction
        if not (0 <= index < len(self.fields)) or not (0 <= target < len(self.fields)):
            return self
        reordered = list(self.fields)
        reordered[index], reordered[target] = reordered[target], reordered[index]
        return self._replace_fields(tuple(reordered), self.customer_inputs)

    def add_option(self, field_id: str) -> FieldCatalog:
        current = self.get_field(field_id)
        if current is None:
            return self
        option = Option(id=self.new_id(OPTION_ID_PREFIX))
        return self._replace_field(replace(current, options=(*current.options, option)))

    def remove_option(self, field_id: str, option_id: str) -> FieldCatalog:
        current = self.get_field(field_id)
        if current is None or all(option.id != option_id for option in current.options):
            return self
        options = tuple(option for option in current.options if option.id != option_id)
        return self._replace_field(replace(current, options=options))

    def update_option(self, field_id: str, option_id: str, **changes: Any) -> FieldCatalog:
        unknown = set(changes) - UPDATABLE_OPTION_ATTRIBUTES
        if unknown:
            raise CatalogError(f"unknown option attributes: {', '.join(sorted(unknown))}")
        current = self.get_field(field_id)
        if current is None or all(option.id != option_id for option in current.options):
            return self
        options = tuple(replace(option, **changes) if option.id == option_id else option for option in current.options)
        return self._replace_field(replace(current, options=options))

    def set_customer_input(self, field_id: str, value: Any) -> FieldCatalog:
        if self.get_field(field_id) is None:
            return self
        return self._replace_fields(self.fields, {**self.customer_inputs, field_id: value})

    def to_dict(self) -> list[dict[str, Any]]:
        return [item.to_dict() for item in self.fields]

    def _replace_field(self, updated: Field) -> FieldCatalog:
        return self._replace_fields(
            tuple(updated if item.id == updated.id else item for item in self.fields),
            self.customer_inputs,
        )

    def _replace_fields(self, fields: tuple[Field, ...], customer_inputs: dict[str, Any]) -> FieldCatalog:
        return FieldCatalog(fields=fields, customer_inputs=customer_inputs, new_id=self.new_id)
