"""Response encoding for domain dataclasses."""

from decimal import Decimal

from fastapi.encoders import jsonable_encoder

# Money stays exact on the wire.
_ENCODERS = {Decimal: str}


def to_json(obj):
    return jsonable_encoder(obj, custom_encoder=_ENCODERS)
