from __future__ import annotations

import logging
from dataclasses import dataclass, field as dataclass_field
from pathlib import Path
from typing import Any, Callable

from .catalog import Field, FieldCatalog, IdGenerator, Option, Product, uuid_id_generator
from .db import SNAPSHOT_KEY, SnapshotStoreError, write_snapshot
from .pricing import (
    FIELD_TYPE_DROPDOWN,
    FIELD_TYPE_TEXT,
    PRICING_BASE,
    PriceBreakdown,
    ValidationIssue,
    ValidationResult,
    calc_field_price,
    price_breakdown,
    validate_admin,
)

SAVE_STATUS_SAVED = "saved"
SAVE_STATUS_INVALID = "invalid"
SAVE_STATUS_FAILED = "failed"

SnapshotWriter = Callable[[dict[str, Any]], Any]

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class EditorState:
    product: Product
    catalog: FieldCatalog
    issues: tuple[ValidationIssue, ...] = ()

    @property
    def customer_inputs(self) -> dict[str, Any]:
        return dict(self.catalog.customer_inputs)

    def snapshot(self) -> dict[str, Any]:
        return {"product": self.product.to_dict(), "fields": self.catalog.to_dict()}


@dataclass(slots=True)
class SaveResult:
    status: str
    issues: list[ValidationIssue] = dataclass_field(default_factory=list)
    payload: dict[str, Any] | None = None
    error: str | None = None

    @property
    def saved(self) -> bool:
        return self.status == SAVE_STATUS_SAVED


def example_state(new_id: IdGenerator = uuid_id_generator) -> EditorState:
    """The "Custom Mug" sample product offered by the editor."""
    fields = (
        Field(
            id="f-eg-1",
            label="Engraving Text",
            type=FIELD_TYPE_TEXT,
            required=True,
            pricing_model=PRICING_BASE,
            price=15,
            min=0,
            max=50,
        ),
        Field(
            id="f-eg-2",
            label="Size",
            type=FIELD_TYPE_DROPDOWN,
            required=True,
            pricing_model=None,
            price=0,
            options=(
                Option(id="s", name="Small", price=0),
                Option(id="m", name="Medium", price=5),
                Option(id="l", name="Large", price=10),
            ),
        ),
    )
    catalog = FieldCatalog(fields=fields, customer_inputs={"f-eg-1": "", "f-eg-2": "s"}, new_id=new_id)
    product = Product(name="Custom Mug", description="A mug with engraving", base_price=10, enable_special_fields=True)
    return EditorState(product=product, catalog=catalog)


class ProductEditor:
    """The single active editing session behind the product form.

    Holds the current product, field catalog and last validation issues.
    Each mutation swaps in a new immutable ``EditorState`` and returns it.
    """

    def __init__(
        self,
        database_path: str | Path | None = None,
        new_id: IdGenerator = uuid_id_generator,
        snapshot_writer: SnapshotWriter | None = None,
    ) -> None:
        if snapshot_writer is None and database_path is None:
            raise ValueError("either database_path or snapshot_writer is required")
        self._new_id = new_id
        self._write = snapshot_writer or (lambda payload: write_snapshot(database_path, payload, SNAPSHOT_KEY))
        self.state = self._initial_state()

    def _initial_state(self) -> EditorState:
        return EditorState(product=Product(), catalog=FieldCatalog.with_default_field(self._new_id))

    @property
    def product(self) -> Product:
        return self.state.product

    @property
    def catalog(self) -> FieldCatalog:
        return self.state.catalog

    def _commit(self, product: Product | None = None, catalog: FieldCatalog | None = None) -> EditorState:
        self.state = EditorState(
            product=product if product is not None else self.state.product,
            catalog=catalog if catalog is not None else self.state.catalog,
            issues=self.state.issues,
        )
        return self.state

    def update_product(self, **changes: Any) -> EditorState:
        return self._commit(product=self.product.update(**changes))

    def add_field(self) -> EditorState:
        return self._commit(catalog=self.catalog.add_field())

    def remove_field(self, field_id: str) -> EditorState:
        return self._commit(catalog=self.catalog.remove_field(field_id))

    def update_field(self, field_id: str, **changes: Any) -> EditorState:
        return self._commit(catalog=self.catalog.update_field(field_id, **changes))

    def move_field(self, index: int, direction: int) -> EditorState:
        return self._commit(catalog=self.catalog.move_field(index, direction))

    def add_option(self, field_id: str) -> EditorState:
        return self._commit(catalog=self.catalog.add_option(field_id))

    def remove_option(self, field_id: str, option_id: str) -> EditorState:
        return self._commit(catalog=self.catalog.remove_option(field_id, option_id))

    def update_option(self, field_id: str, option_id: str, **changes: Any) -> EditorState:
        return self._commit(catalog=self.catalog.update_option(field_id, option_id, **changes))

    def set_customer_input(self, field_id: str, value: Any) -> EditorState:
        return self._commit(catalog=self.catalog.set_customer_input(field_id, value))

    def validate(self) -> ValidationResult:
        result = validate_admin(self.product, self.catalog)
        self.state = EditorState(product=self.product, catalog=self.catalog, issues=tuple(result.issues))
        return result

    def field_price(self, field_id: str) -> float:
        return calc_field_price(self.catalog.get_field(field_id), self.catalog.customer_inputs.get(field_id))

    def pricing(self) -> PriceBreakdown:
        return price_breakdown(self.product, self.catalog, self.catalog.customer_inputs)

    def total_price(self) -> float:
        return self.pricing().total

    def save(self) -> SaveResult:
        result = self.validate()
        if not result.valid:
            logger.info("snapshot_save_blocked", extra={"issue_count": len(result.issues)})
            return SaveResult(status=SAVE_STATUS_INVALID, issues=list(result.issues))

        payload = self.state.snapshot()
        try:
            self._write(payload)
        except SnapshotStoreError as error:
            logger.warning("snapshot_save_failed", extra={"key": SNAPSHOT_KEY, "error": str(error)})
            return SaveResult(status=SAVE_STATUS_FAILED, payload=payload, error=str(error))

        logger.info(
            "snapshot_saved",
            extra={"key": SNAPSHOT_KEY, "product_name": self.product.name, "field_count": len(self.catalog)},
        )
        return SaveResult(status=SAVE_STATUS_SAVED, payload=payload)

    def cancel(self) -> EditorState:
        self.state = self._initial_state()
        logger.info("editor_reset", extra={"field_count": len(self.catalog)})
        return self.state

    def load_example(self) -> EditorState:
        self.state = example_state(self._new_id)
        logger.info("example_loaded", extra={"product_name": self.product.name})
        return self.state
