"""Native catalog data models.

Assets fetched from the external catalog are represented as NativeAsset: a
stable id (RID), a native type name, and a property bag whose values are
scalars, nested references (NativeAsset) or paged reference lists
(ReferenceList). The client sets the reference kind at fetch time so that
mappers branch on the tag instead of inspecting payload shapes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class AssetKind(str, Enum):
    """How a fetched reference participates in the native graph."""
    ASSET = "ASSET"              # Regular, retrievable asset
    LINK = "LINK"                # Edge-as-node carrier asset
    PLACEHOLDER = "PLACEHOLDER"  # Degenerate reference that cannot be retrieved


# =============================================================================
# Assets and References
# =============================================================================

class NativeAsset(BaseModel):
    """An asset (or a reference to one) in the native catalog."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    rid: str = Field(..., alias="_id", description="Stable native identifier")
    native_type: str = Field(..., alias="_type", description="Native type name")
    name: Optional[str] = Field(default=None, alias="_name")
    kind: AssetKind = Field(default=AssetKind.ASSET)
    properties: Dict[str, Any] = Field(default_factory=dict, description="Properties fetched so far")

    def has_property(self, name: str) -> bool:
        return name in self.properties

    def ref(self) -> "NativeAsset":
        """Reference-only copy (identity, name and kind)."""
        return NativeAsset(rid=self.rid, native_type=self.native_type, name=self.name, kind=self.kind)

    def to_ref_payload(self) -> Dict[str, Any]:
        return {"_id": self.rid, "_type": self.native_type, "_name": self.name}


class ReferenceList(BaseModel):
    """A (possibly paged) list of references held by a property."""
    model_config = ConfigDict(frozen=True)

    items: List[NativeAsset] = Field(default_factory=list)
    total: Optional[int] = Field(default=None, description="Total count reported by the catalog")

    def rids(self) -> List[str]:
        return [item.rid for item in self.items]

    def __len__(self) -> int:
        return len(self.items)


# =============================================================================
# Value Helpers
# =============================================================================

def reference_items(value: Any) -> List[NativeAsset]:
    """Normalize a property value into a list of references.

    None and scalars yield an empty list, a single reference yields one item.
    """
    if value is None:
        return []
    if isinstance(value, NativeAsset):
        return [value]
    if isinstance(value, ReferenceList):
        return list(value.items)
    if isinstance(value, list):
        return [v for v in value if isinstance(v, NativeAsset)]
    return []


def to_datetime(value: Any) -> Optional[datetime]:
    """Parse a native timestamp (epoch millis, ISO string or datetime)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"Cannot parse timestamp: {value!r}")


def to_epoch_millis(value: Any) -> Optional[int]:
    moment = to_datetime(value)
    if moment is None:
        return None
    return int(moment.timestamp() * 1000)


def decode_value(value: Any) -> Any:
    """Decode a JSON property value into native model values.

    - {"_id": ..., "_type": ...} becomes a NativeAsset reference
    - {"items": [...], "total": n} and lists of reference dicts become a ReferenceList
    """
    if isinstance(value, dict):
        if "_id" in value and "_type" in value:
            return NativeAsset(
                rid=value["_id"],
                native_type=value["_type"],
                name=value.get("_name"),
                kind=AssetKind(value.get("_kind", AssetKind.ASSET.value)),
            )
        if "items" in value:
            items = [decode_value(item) for item in value.get("items") or []]
            return ReferenceList(items=items, total=value.get("total", len(items)))
        return value
    if isinstance(value, list) and value and all(isinstance(v, dict) and "_id" in v for v in value):
        items = [decode_value(item) for item in value]
        return ReferenceList(items=items, total=len(items))
    return value


def encode_value(value: Any) -> Any:
    """Inverse of decode_value, producing JSON-safe data."""
    if isinstance(value, NativeAsset):
        return value.to_ref_payload()
    if isinstance(value, ReferenceList):
        return {"items": [item.to_ref_payload() for item in value.items], "total": value.total}
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, list):
        return [encode_value(v) for v in value]
    return value


# =============================================================================
# Stub Snapshot
# =============================================================================

class StubSnapshot(BaseModel):
    """Previously persisted minimal view of a native asset (diff baseline)."""
    model_config = ConfigDict(frozen=True)

    rid: str
    native_type: str
    modified_on: Optional[datetime] = None
    properties: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def empty(cls, rid: str, native_type: str) -> "StubSnapshot":
        return cls(rid=rid, native_type=native_type)

    @classmethod
    def from_asset(cls, asset: NativeAsset) -> "StubSnapshot":
        """Reduce a fetched asset to its stub: references keep identity only."""
        properties: Dict[str, Any] = {}
        for name, value in asset.properties.items():
            if isinstance(value, NativeAsset):
                properties[name] = value.ref()
            elif isinstance(value, ReferenceList):
                properties[name] = ReferenceList(items=[item.ref() for item in value.items], total=value.total)
            else:
                properties[name] = value
        return cls(
            rid=asset.rid,
            native_type=asset.native_type,
            modified_on=to_datetime(asset.properties.get("modified_on")),
            properties=properties,
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "StubSnapshot":
        return cls(
            rid=payload["_id"],
            native_type=payload["_type"],
            modified_on=to_datetime(payload.get("modified_on")),
            properties={k: decode_value(v) for k, v in (payload.get("properties") or {}).items()},
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "_id": self.rid,
            "_type": self.native_type,
            "modified_on": self.modified_on.isoformat() if self.modified_on else None,
            "properties": {k: encode_value(v) for k, v in self.properties.items()},
        }
