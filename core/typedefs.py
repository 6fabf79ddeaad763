"""Canonical type definitions.

A TypeDefRegistry answers "which properties does canonical type X allow, and
of what kind". Mappers use it to coerce native values, to validate search
property names and to pick the string properties used by free-text search.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from core.models.canonical import EnumValue
from core.models.native import NativeAsset, ReferenceList, to_datetime


class PropertyKind(str, Enum):
    """Primitive kinds of canonical properties."""
    STRING = "string"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    ENUM = "enum"
    ARRAY = "array<string>"
    MAP = "map<string,string>"


class TypeCategory(str, Enum):
    ENTITY = "ENTITY"
    RELATIONSHIP = "RELATIONSHIP"
    CLASSIFICATION = "CLASSIFICATION"


@dataclass(frozen=True)
class TypeDef:
    """Definition of one canonical type."""
    name: str
    category: TypeCategory
    properties: Mapping[str, PropertyKind] = field(default_factory=dict)
    unique_properties: Tuple[str, ...] = ()
    enum_values: Mapping[str, Tuple[EnumValue, ...]] = field(default_factory=dict)

    def kind_of(self, property_name: str) -> Optional[PropertyKind]:
        return self.properties.get(property_name)

    def string_properties(self) -> List[str]:
        return [name for name, kind in self.properties.items() if kind == PropertyKind.STRING]

    def enum_value(self, property_name: str, symbolic_name: str) -> Optional[EnumValue]:
        for value in self.enum_values.get(property_name, ()):
            if value.symbolic_name == symbolic_name:
                return value
        return None


def merge_properties(*tables: Mapping[str, PropertyKind]) -> Dict[str, PropertyKind]:
    """Concatenate property tables (later tables win on name clashes)."""
    merged: Dict[str, PropertyKind] = {}
    for table in tables:
        merged.update(table)
    return merged


# =============================================================================
# Coercion
# =============================================================================

_TRUE_STRINGS = {"true", "1", "yes", "y"}


def coerce_value(kind: PropertyKind, value: Any, enum_values: Tuple[EnumValue, ...] = ()) -> Any:
    """Coerce a native value into the given canonical kind.

    Raises:
        ValueError: If the value cannot be represented in the kind
    """
    if value is None:
        return None

    if kind == PropertyKind.STRING:
        if isinstance(value, NativeAsset):
            return value.name
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value)

    if kind in (PropertyKind.INT, PropertyKind.LONG):
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"Not an integer: {value!r}")
        return int(value)

    if kind == PropertyKind.FLOAT:
        return float(value)

    if kind == PropertyKind.BOOLEAN:
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_STRINGS
        return bool(value)

    if kind == PropertyKind.DATE:
        return to_datetime(value)

    if kind == PropertyKind.ENUM:
        if isinstance(value, EnumValue):
            return value
        for candidate in enum_values:
            if candidate.symbolic_name == value or candidate.ordinal == value:
                return candidate
        raise ValueError(f"Not a valid enum value: {value!r}")

    if kind == PropertyKind.ARRAY:
        if isinstance(value, ReferenceList):
            return [item.name for item in value.items if item.name is not None]
        if isinstance(value, (list, tuple)):
            return [coerce_value(PropertyKind.STRING, v) for v in value]
        return [coerce_value(PropertyKind.STRING, value)]

    if kind == PropertyKind.MAP:
        if not isinstance(value, Mapping):
            raise ValueError(f"Not a map: {value!r}")
        return {str(k): str(v) for k, v in value.items()}

    raise ValueError(f"Unknown property kind: {kind}")


# =============================================================================
# Registry
# =============================================================================

class TypeDefRegistry:
    """Read-only lookup of canonical type definitions by name."""

    def __init__(self, typedefs: Iterable[TypeDef]):
        table: Dict[str, TypeDef] = {}
        for typedef in typedefs:
            if typedef.name in table:
                raise ValueError(f"Duplicate type definition: {typedef.name}")
            table[typedef.name] = typedef
        self._typedefs = MappingProxyType(table)

    def __contains__(self, name: str) -> bool:
        return name in self._typedefs

    def get(self, name: str) -> TypeDef:
        """Get a type definition.

        Raises:
            KeyError: If the type is unknown
        """
        try:
            return self._typedefs[name]
        except KeyError:
            raise KeyError(f"Unknown canonical type: {name}") from None

    def names(self, category: Optional[TypeCategory] = None) -> List[str]:
        return [
            name for name, typedef in self._typedefs.items()
            if category is None or typedef.category == category
        ]

    def coerce(self, type_name: str, property_name: str, value: Any) -> Any:
        """Coerce a value for a property of the given type.

        Raises:
            KeyError: If the type or property is unknown
            ValueError: If the value does not fit the property kind
        """
        typedef = self.get(type_name)
        kind = typedef.kind_of(property_name)
        if kind is None:
            raise KeyError(f"{type_name} has no property {property_name}")
        return coerce_value(kind, value, typedef.enum_values.get(property_name, ()))
