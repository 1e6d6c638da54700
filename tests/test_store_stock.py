import json

import pytest

from parsers.store_stock import find_location_quantity, parse_store_stock
from utils.error_handling import InventoryValidationError, MissingLocationError


def test_location_quantity_from_short_records():
    records = parse_store_stock('[{"name": "Oslo", "qty": 7}, {"name": "Bergen", "qty": 2}]')
    assert find_location_quantity(records, "Oslo") == 7
    assert find_location_quantity(records, "Bergen") == 2


def test_long_field_names_are_accepted():
    payload = json.dumps([{"locationName": "Oslo", "quantity": 3, "address": "Kongens gate"}])
    assert find_location_quantity(parse_store_stock(payload.encode()), "Oslo") == 3


def test_missing_location_raises():
    records = parse_store_stock('[{"name": "Bergen", "qty": 1}]')
    with pytest.raises(MissingLocationError) as excinfo:
        find_location_quantity(records, "Oslo")
    assert excinfo.value.context["available"] == ["Bergen"]


def test_empty_list_has_no_location():
    with pytest.raises(MissingLocationError):
        find_location_quantity(parse_store_stock("[]"), "Oslo")


@pytest.mark.parametrize(
    "payload",
    [
        "<html><body>503 Service Unavailable</body></html>",
        '{"message": "Product not found"}',
        '[{"name": "Oslo"}]',
        '[{"name": "Oslo", "qty": "many"}]',
    ],
)
def test_unexpected_payloads_raise_validation_error(payload):
    with pytest.raises(InventoryValidationError):
        parse_store_stock(payload)
