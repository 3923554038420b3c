"""Record to attribute-map conversion shared by every backend."""
import math
from typing import Any, Dict

from common.errors import MarshalError, ValidationError


def record_to_item(record: Any) -> Dict[str, Any]:
    """
    Validate a record and return its attribute map.

    Accepts entities exposing validate()/to_item() or plain dicts.

    Raises:
        MarshalError: invalid record, unsupported type or non-finite number
    """
    if isinstance(record, dict):
        item = dict(record)
    elif hasattr(record, 'to_item'):
        try:
            if hasattr(record, 'validate'):
                record.validate()
            item = record.to_item()
        except ValidationError as exc:
            raise MarshalError(f"invalid {type(record).__name__}: {exc}", record) from exc
    else:
        raise MarshalError(f"cannot marshal {type(record).__name__}", record)

    for key, value in item.items():
        if isinstance(value, float) and not math.isfinite(value):
            raise MarshalError(f"attribute {key} is not a finite number", record)
    return item
