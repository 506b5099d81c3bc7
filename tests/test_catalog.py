import pytest

from product_fields.catalog import (
    MAX_FIELDS,
    CatalogError,
    CounterIdGenerator,
    Field,
    FieldCatalog,
    Option,
    Product,
    uuid_id_generator,
)


def new_catalog(field_count: int = 1) -> FieldCatalog:
    catalog = FieldCatalog(new_id=CounterIdGenerator())
    for _ in range(field_count):
        catalog = catalog.add_field()
    return catalog


def test_counter_ids_are_deterministic() -> None:
    generator = CounterIdGenerator()
    assert [generator("f"), generator("opt"), generator("f")] == ["f-1", "opt-2", "f-3"]


def test_uuid_ids_are_unique_and_prefixed() -> None:
    first, second = uuid_id_generator("f"), uuid_id_generator("f")
    assert first != second
    assert first.startswith("f-")


def test_add_field_appends_defaults_and_seeds_input() -> None:
    catalog = new_catalog(0).add_field()

    assert len(catalog) == 1
    field = catalog.fields[0]
    assert field == Field(id="f-1", label="", type="Text", required=False, pricing_model="Base", price=0)
    assert field.options == ()
    assert catalog.customer_inputs == {"f-1": ""}


def test_add_field_returns_new_catalog_without_touching_original() -> None:
    original = new_catalog(1)
    grown = original.add_field()
    assert len(original) == 1
    assert len(grown) == 2
    assert list(original.customer_inputs) == ["f-1"]


def test_add_field_is_noop_when_catalog_is_full() -> None:
    full = new_catalog(MAX_FIELDS)
    assert full.is_full is True
    assert full.add_field() is full
    assert len(full.add_field()) == 4


def test_remove_field_drops_customer_input() -> None:
    catalog = new_catalog(2).set_customer_input("f-1", "Hello")
    trimmed = catalog.remove_field("f-1")

    assert [field.id for field in trimmed] == ["f-2"]
    assert trimmed.customer_inputs == {"f-2": ""}


def test_remove_field_is_idempotent_for_unknown_ids() -> None:
    catalog = new_catalog(2)
    unchanged = catalog.remove_field("f-404")
    assert unchanged.fields == catalog.fields
    assert unchanged.customer_inputs == catalog.customer_inputs
    assert unchanged.remove_field("f-404") == catalog


def test_update_field_merges_attributes() -> None:
    catalog = new_catalog(1).update_field("f-1", label="Engraving", required=True, price=15, min=0, max=50)
    field = catalog.get_field("f-1")
    assert (field.label, field.required, field.price, field.min, field.max) == ("Engraving", True, 15, 0, 50)
    assert field.type == "Text"


def test_update_field_rejects_unknown_attributes_and_types() -> None:
    catalog = new_catalog(1)
    with pytest.raises(CatalogError, match="unknown field attributes: colour"):
        catalog.update_field("f-1", colour="red")
    with pytest.raises(CatalogError, match="unsupported field type"):
        catalog.update_field("f-1", type="Checkbox")


def test_update_unknown_field_leaves_catalog_unchanged() -> None:
    catalog = new_catalog(1)
    assert catalog.update_field("f-9", label="Ghost") is catalog


def test_switching_to_dropdown_seeds_two_empty_options() -> None:
    catalog = new_catalog(1).update_field("f-1", type="Dropdown")
    field = catalog.get_field("f-1")

    assert field.options == (Option(id="opt-2", name="", price=0), Option(id="opt-3", name="", price=0))
    assert catalog.customer_inputs["f-1"] == "opt-2"


def test_dropdown_without_options_is_not_reseeded_on_other_updates() -> None:
    catalog = new_catalog(1).update_field("f-1", type="Dropdown")
    catalog = catalog.remove_option("f-1", "opt-2").remove_option("f-1", "opt-3")
    catalog = catalog.update_field("f-1", label="Size")

    assert catalog.get_field("f-1").options == ()


def test_retyping_a_dropdown_as_dropdown_keeps_its_options() -> None:
    catalog = new_catalog(1).update_field("f-1", type="Dropdown")
    catalog = catalog.update_option("f-1", "opt-2", name="Small").add_option("f-1")
    options = catalog.get_field("f-1").options

    retyped = catalog.update_field("f-1", type="Dropdown", label="Size")
    assert retyped.get_field("f-1").options == options
    assert retyped.customer_inputs["f-1"] == "opt-2"


def test_switching_away_from_dropdown_clears_options_and_reseeds_input() -> None:
    catalog = new_catalog(1).update_field("f-1", type="Dropdown").update_field("f-1", type="Number")
    field = catalog.get_field("f-1")

    assert field.options == ()
    assert catalog.customer_inputs["f-1"] == 0


def test_move_field_swaps_with_neighbour() -> None:
    catalog = new_catalog(3)
    assert [field.id for field in catalog.move_field(0, 1)] == ["f-2", "f-1", "f-3"]
    assert [field.id for field in catalog.move_field(2, -1)] == ["f-1", "f-3", "f-2"]


@pytest.mark.parametrize(("index", "direction"), [(0, -1), (2, 1), (5, -1), (-1, 1)])
def test_move_field_out_of_bounds_is_noop(index, direction) -> None:
    catalog = new_catalog(3)
    assert catalog.move_field(index, direction) is catalog


def test_option_mutations_are_scoped_to_their_field() -> None:
    catalog = new_catalog(2).update_field("f-1", type="Dropdown").update_field("f-2", type="Dropdown")
    catalog = catalog.add_option("f-1")
    catalog = catalog.update_option("f-1", "opt-3", name="Small", price=0)

    first, second = catalog.fields
    assert [option.id for option in first.options] == ["opt-3", "opt-4", "opt-7"]
    assert first.options[0] == Option(id="opt-3", name="Small", price=0)
    assert [option.id for option in second.options] == ["opt-5", "opt-6"]


def test_removing_every_option_is_permitted() -> None:
    catalog = new_catalog(1).update_field("f-1", type="Dropdown")
    catalog = catalog.remove_option("f-1", "opt-2").remove_option("f-1", "opt-3")
    assert catalog.get_field("f-1").options == ()


def test_option_mutations_with_unknown_ids_are_noops() -> None:
    catalog = new_catalog(1).update_field("f-1", type="Dropdown")
    assert catalog.remove_option("f-1", "opt-99") is catalog
    assert catalog.update_option("f-9", "opt-2", name="x") is catalog
    assert catalog.add_option("f-9") is catalog


def test_update_option_rejects_unknown_attributes() -> None:
    catalog = new_catalog(1).update_field("f-1", type="Dropdown")
    with pytest.raises(CatalogError, match="unknown option attributes"):
        catalog.update_option("f-1", "opt-2", colour="red")


def test_customer_input_is_ignored_for_unknown_fields() -> None:
    catalog = new_catalog(1)
    assert catalog.set_customer_input("f-9", "x") is catalog
    assert catalog.set_customer_input("f-1", "not validated").customer_inputs["f-1"] == "not validated"


def test_catalog_snapshot_keeps_order_and_options() -> None:
    catalog = new_catalog(2).update_field("f-2", type="Dropdown", label="Size")
    payload = catalog.to_dict()

    assert [item["id"] for item in payload] == ["f-1", "f-2"]
    assert payload[1]["pricingModel"] == "Base"
    assert payload[1]["options"] == [{"id": "opt-3", "name": "", "price": 0}, {"id": "opt-4", "name": "", "price": 0}]


def test_product_update_and_snapshot() -> None:
    product = Product().update(name="Mug", base_price=10, enable_special_fields=True)
    assert product.to_dict() == {"name": "Mug", "description": "", "basePrice": 10, "enableSpecialFields": True}
    with pytest.raises(CatalogError):
        Product().update(sku="MUG-1")
