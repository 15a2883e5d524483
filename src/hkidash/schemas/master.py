"""Request schemas for the reference (master data) tables."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hkidash.models.reference import MAX_CLASS_ID, MIN_CLASS_ID, ClassKind

# Indonesian labels still sent by older clients
_KIND_ALIASES = {"Barang": ClassKind.GOODS.value, "Jasa": ClassKind.SERVICES.value}


def _normalize_kind(value: Any) -> Any:
    if isinstance(value, str):
        return _KIND_ALIASES.get(value.strip(), value.strip())
    return value


class _MasterInput(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class NamedCreate(_MasterInput):
    """Create an IP type or proposing agency."""

    name: str = Field(min_length=1, max_length=255)


class NamedUpdate(_MasterInput):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class IPClassCreate(_MasterInput):
    id: int = Field(ge=MIN_CLASS_ID, le=MAX_CLASS_ID, description="Nice class number")
    name: str = Field(min_length=1)
    kind: ClassKind = ClassKind.GOODS

    normalize_kind = field_validator("kind", mode="before")(_normalize_kind)


class IPClassUpdate(_MasterInput):
    name: Optional[str] = Field(default=None, min_length=1)
    kind: Optional[ClassKind] = None

    normalize_kind = field_validator("kind", mode="before")(_normalize_kind)
