import asyncio
import json
import os
from collections import Counter

import pytest

from bomsheet import BillOfMaterials

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")


class FakeCatalog:
    """
    Async lookup function backed by a dict of part records.

    Counts calls per part number and can be told to fail for specific ones.
    Unknown part numbers resolve to an empty record, like a sparse catalog.
    """

    def __init__(self, records, fail_on=()):
        self.records = records
        self.calls = Counter()
        self.fail_on = set(fail_on)

    async def __call__(self, part_number):
        self.calls[part_number] += 1
        await asyncio.sleep(0)
        if part_number in self.fail_on:
            raise LookupError(f"Catalog lookup failed for {part_number}")
        return dict(self.records.get(part_number, {}))


@pytest.fixture
def records():
    """The fake part catalog from tests/data/catalog.json, keyed by part number."""
    with open(os.path.join(DATA_DIR, "catalog.json"), "r", encoding="utf-8") as f:
        return {entry["part_number"]: entry for entry in json.load(f)}


@pytest.fixture
def catalog(records):
    return FakeCatalog(records)


@pytest.fixture
def flat_catalog():
    """Three parts at unit cost 10 / unit weight 20."""
    records = {
        pn: {"title": pn.title(), "unit": "each", "unit_cost": 10, "unit_weight": 20}
        for pn in ("foo", "bar", "baz")
    }
    return FakeCatalog(records)


@pytest.fixture
def bom(flat_catalog):
    """A BOM pre-loaded with foo, bar and baz at quantity 100 each."""
    bom = BillOfMaterials(flat_catalog)

    async def _load():
        for pn in ("foo", "bar", "baz"):
            await bom.add(pn, 100)

    asyncio.run(_load())
    return bom


@pytest.fixture
def template_path():
    return os.path.join(DATA_DIR, "template.json")


@pytest.fixture
def metadata():
    return {
        "title": "Shopping List",
        "subtitle": "Acme Cooking, Co.",
        "footer": "Acme Cooking, Co. | Fresh Food Delivery",
        "created_by": "John Doe",
        "company": "Acme Cooking, Co.",
        "custom": [
            {"name": "Client Name", "value": "Jessica Smith"},
            {"name": "Shipping Address", "value": "456321 Wavy Ave, Sumciti, ST 53426"},
            {"name": "Billing Address", "value": "123456 Along Rd, Sumciti, ST 53426"},
        ],
    }
