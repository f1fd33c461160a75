"""
Base Schema Classes for Pydantic Models

Shopify and the storefront widget both speak camelCase JSON, while the
Python side uses snake_case attributes. These bases wire the alias
generator once so every schema reads and writes camelCase on the wire.

RULE: All API-facing schemas MUST inherit from CamelSchema (or CamelRequestSchema).
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelSchema(BaseModel):
    """
    Base class for response and value schemas.

    Features:
    - camelCase aliases on the wire (``distance_km`` -> ``distanceKm``)
    - Population by field name or alias

    Usage:
        class PickupLocation(CamelSchema):
            location_id: str
            distance_km: float
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CamelRequestSchema(CamelSchema):
    """
    Base class for request schemas.

    Extra fields are ignored so older storefront widgets keep working.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )
