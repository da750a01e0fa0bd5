from __future__ import annotations

from typing import Any, Mapping, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from utils.errors import ValidationError


M = TypeVar("M", bound=BaseModel)


def validate_model(model_cls: Type[M], data: Mapping[str, Any]) -> M:
    """Build ``model_cls`` from ``data``; pydantic failures become ``ValidationError``."""
    try:
        return model_cls.model_validate(dict(data))
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(part) for part in first.get("loc", ()))
        msg = first.get("msg", "invalid value")
        raise ValidationError(f"{loc}: {msg}" if loc else msg) from exc
