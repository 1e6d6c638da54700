"""Parsing of the click-and-collect inventory endpoint.

The endpoint answers with a JSON array of per-store records. Both the short
``{"name", "qty"}`` shape and the long ``{"locationName", "quantity"}`` shape
are accepted.
"""

from __future__ import annotations

from typing import List, Sequence, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from utils.error_handling import InventoryValidationError, MissingLocationError


class StoreStock(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    location_name: str = Field(validation_alias=AliasChoices("name", "locationName"))
    quantity: int = Field(validation_alias=AliasChoices("qty", "quantity"))


_STORE_STOCK_LIST = TypeAdapter(List[StoreStock])


def parse_store_stock(payload: Union[str, bytes]) -> List[StoreStock]:
    """Validate a raw inventory response body.

    Raises:
        InventoryValidationError: body is not JSON or not a list of store records
    """
    try:
        return _STORE_STOCK_LIST.validate_json(payload)
    except PydanticValidationError as exc:
        raise InventoryValidationError(
            f"Unexpected inventory response: {exc.error_count()} validation error(s)",
            {"errors": exc.errors(include_url=False)},
        ) from exc


def find_location_quantity(records: Sequence[StoreStock], location: str) -> int:
    """Quantity held at ``location``.

    Raises:
        MissingLocationError: the location is not in ``records``
    """
    for record in records:
        if record.location_name == location:
            return record.quantity
    raise MissingLocationError(
        f"Location {location!r} missing from inventory response",
        {"location": location, "available": [record.location_name for record in records]},
    )
