import asyncio
import math
from decimal import Decimal

import pytest
from hypothesis import given, strategies as st

from bomsheet import BillOfMaterials, InitializationError, InvalidInputError

INVALID_PART_NUMBERS = [None, [], {}, True, False, 0]
INVALID_QUANTITIES = [None, [], {}, True, False, "0", math.nan]


# Construction


@pytest.mark.parametrize("lookup", [None, "not callable", 42, {}])
def test_constructor_requires_callable_lookup(lookup):
    with pytest.raises(InitializationError):
        BillOfMaterials(lookup)


def test_constructor_rejects_unknown_metadata(catalog):
    with pytest.raises(InitializationError):
        BillOfMaterials(catalog, {"titel": "Typo"})


def test_constructor_rejects_malformed_custom_properties(catalog):
    with pytest.raises(InitializationError):
        BillOfMaterials(catalog, {"custom": [{"label": "Project"}]})


def test_metadata_defaults(catalog):
    bom = BillOfMaterials(catalog, {"subtitle": "Preliminary"})

    assert bom.metadata["title"] == "Bill of Materials"
    assert bom.metadata["subtitle"] == "Preliminary"
    assert bom.metadata["custom"] == []


# add()


def test_add_tracks_parts(bom):
    assert len(bom) == 3
    assert "foo" in bom
    assert bom.get_details("foo")["quantity"] == 100


def test_add_existing_part_increments_without_new_lookup(bom, flat_catalog):
    asyncio.run(bom.add("foo", 5))
    asyncio.run(bom.add("foo"))

    items = {item["part_number"]: item["quantity"] for item in bom.items}
    assert items["foo"] == 106
    assert flat_catalog.calls["foo"] == 1


@given(st.lists(st.integers(min_value=1, max_value=1000), min_size=1, max_size=10))
def test_repeated_add_sums_with_single_lookup(quantities):
    """Any sequence of positive adds sums up and queries the catalog once."""
    calls = []

    async def lookup(part_number):
        calls.append(part_number)
        return {"unit_cost": 1}

    bom = BillOfMaterials(lookup)

    async def _run():
        for qty in quantities:
            await bom.add("widget", qty)

    asyncio.run(_run())

    assert bom.items == [{"part_number": "widget", "quantity": sum(quantities)}]
    assert calls == ["widget"]


@pytest.mark.parametrize("part_number", INVALID_PART_NUMBERS)
def test_add_rejects_invalid_part_number(bom, part_number):
    with pytest.raises(InvalidInputError, match="part number must be a string"):
        asyncio.run(bom.add(part_number))


@pytest.mark.parametrize("quantity", INVALID_QUANTITIES)
def test_add_rejects_invalid_quantity(bom, quantity):
    with pytest.raises(InvalidInputError, match="Part quantity must be a number"):
        asyncio.run(bom.add("foo", quantity))
    assert bom.get_details("foo")["quantity"] == 100


def test_add_non_positive_new_part_is_ignored(bom, flat_catalog):
    asyncio.run(bom.add("bat", -3))
    asyncio.run(bom.add("qux", 0))

    assert "bat" not in bom
    assert "qux" not in bom
    assert flat_catalog.calls["bat"] == 0


def test_add_negative_quantity_can_remove_part(bom):
    asyncio.run(bom.add("foo", -100))

    assert "foo" not in bom
    assert bom.get_details("foo") is None


def test_decimal_quantities_combine_with_floats(bom):
    async def _run():
        await bom.add("dec", Decimal("1.5"))
        await bom.add("dec", 0.5)

    asyncio.run(_run())
    assert bom.get_details("dec")["quantity"] == 1.5
    assert {"part_number": "dec", "quantity": 2.0} in bom.items

    bom.remove("dec", 0.5)
    asyncio.run(bom.add("foo", Decimal("0.25")))

    quantities = {item["part_number"]: item["quantity"] for item in bom.items}
    assert quantities["dec"] == 1.5
    assert quantities["foo"] == 100.25


def test_decimal_quantity_can_be_removed_with_float(bom):
    asyncio.run(bom.set("dec", Decimal("2")))
    bom.remove("dec", 2.5)

    assert "dec" not in bom


def test_failed_lookup_rolls_back_quantity(catalog):
    catalog.fail_on.add("broken")
    bom = BillOfMaterials(catalog)

    with pytest.raises(LookupError):
        asyncio.run(bom.add("broken", 2))

    assert "broken" not in bom
    assert bom.get_details("broken") is None
    assert len(bom) == 0


def test_lookup_returning_none_still_tracks_part():
    async def lookup(part_number):
        return None

    bom = BillOfMaterials(lookup)
    asyncio.run(bom.add("ghost", 1))

    assert bom.get_details("ghost") == {"part_number": "ghost", "quantity": 1}


# set()


def test_set_part_quantities(bom, flat_catalog):
    async def _run():
        await bom.set("foo", 1)
        await bom.set("bar", 2)
        await bom.set("baz", -3)
        await bom.set("bat", 4)

    asyncio.run(_run())

    quantities = {item["part_number"]: item["quantity"] for item in bom.items}
    assert quantities == {"foo": 1, "bar": 2, "bat": 4}
    assert bom.get_details("baz") is None
    # Existing parts are not looked up again, new ones are.
    assert flat_catalog.calls["foo"] == 1
    assert flat_catalog.calls["bat"] == 1


def test_set_zero_on_unknown_part_is_a_no_op(bom):
    asyncio.run(bom.set("nothing", 0))
    assert len(bom) == 3


@pytest.mark.parametrize("part_number", INVALID_PART_NUMBERS)
def test_set_rejects_invalid_part_number(bom, part_number):
    with pytest.raises(InvalidInputError):
        asyncio.run(bom.set(part_number, 1))


@pytest.mark.parametrize("quantity", INVALID_QUANTITIES)
def test_set_rejects_invalid_quantity(bom, quantity):
    with pytest.raises(InvalidInputError):
        asyncio.run(bom.set("foo", quantity))


# remove()


def test_remove_parts(bom):
    bom.remove("foo", 10)
    bom.remove("bar", 150)
    bom.remove("baz")

    assert bom.items == [{"part_number": "foo", "quantity": 90}]
    assert bom.get_details("bar") is None
    assert bom.get_details("baz") is None


def test_remove_ignores_unknown_part(bom):
    bom.remove("bat")
    bom.remove("bat", -5)

    assert len(bom) == 3
    assert "bat" not in bom


@pytest.mark.parametrize("part_number", INVALID_PART_NUMBERS)
def test_remove_rejects_invalid_part_number(bom, part_number):
    with pytest.raises(InvalidInputError):
        bom.remove(part_number)


@pytest.mark.parametrize("quantity", [q for q in INVALID_QUANTITIES if q is not None])
def test_remove_rejects_invalid_quantity(bom, quantity):
    with pytest.raises(InvalidInputError, match="number or None"):
        bom.remove("foo", quantity)


def test_clear(bom):
    bom.clear()

    assert len(bom) == 0
    assert bom.get_details() == []


# Details & roll-ups


def test_get_details_returns_copies(bom):
    details = bom.get_details("foo")
    details["title"] = "Changed"

    assert bom.get_details("foo")["title"] == "Foo"
    assert [d["part_number"] for d in bom.get_details()] == ["foo", "bar", "baz"]


def test_total_cost(bom):
    async def _run():
        await bom.set("foo", 1)
        await bom.set("bar", 1)
        await bom.set("baz", 1)
        await bom.add("bat", 1)  # unknown to the catalog -> no unit cost

    asyncio.run(_run())
    assert bom.get_total_cost() == 30


def test_total_weight(bom):
    async def _run():
        await bom.set("foo", 1)
        await bom.set("bar", 1)
        await bom.set("baz", 1)
        await bom.add("bat", 1)

    asyncio.run(_run())
    assert bom.get_total_weight() == 60


def test_roll_up_treats_non_numeric_values_as_zero(catalog):
    bom = BillOfMaterials(catalog)

    async def _run():
        await bom.add("CND-050", 3)  # unit_cost "n/a", no unit_weight
        await bom.add("EGG-012", 2)

    asyncio.run(_run())

    assert bom.get_total_cost() == pytest.approx(8.5)
    assert bom.get_total_weight() == pytest.approx(1.4)


def test_empty_bom_totals(catalog):
    bom = BillOfMaterials(catalog)
    assert bom.get_total_cost() == 0
    assert bom.get_total_weight() == 0


# Refresh


def test_refresh_updates_every_record(bom, flat_catalog):
    flat_catalog.records["foo"]["unit_cost"] = 99
    asyncio.run(bom.set("bar", 7))
    asyncio.run(bom._refresh())

    assert bom.get_details("foo")["unit_cost"] == 99
    assert bom.get_details("bar")["quantity"] == 7
    assert all(flat_catalog.calls[pn] == 2 for pn in ("foo", "bar", "baz"))


def test_refresh_failure_applies_nothing(bom, flat_catalog):
    flat_catalog.records["foo"]["unit_cost"] = 99
    flat_catalog.fail_on.add("baz")

    with pytest.raises(LookupError):
        asyncio.run(bom._refresh())

    assert bom.get_details("foo")["unit_cost"] == 10
    assert len(bom.get_details()) == 3
