"""Validation helper shared by the JSON decoders."""

import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import DecodeError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def decode(model: type[M], payload: Any, endpoint: str) -> M:
    """Validate ``payload`` against ``model``, reporting the first bad field."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        logger.error(f"Failed to decode {endpoint}: field={field} error={first.get('msg')}")
        raise DecodeError(endpoint, field=field, reason=first.get("msg", "")) from e
