"""Canonical metadata models.

These are the shapes the canonical repository consumes. They carry no
native-catalog specifics: native ids, types and property names stay behind
the mappers in /core/mapping/.

Payload shapes (model_dump(by_alias=True)):
- entity: {guid, type, version, properties, classifications[]}
- relationship: {guid, type, version, properties, proxy1, proxy2}
- proxy: {guid, type, uniqueProperties}
- classification: {type, properties}
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Fidelity(str, Enum):
    """How much of an entity a mapping call resolves."""
    SUMMARY = "summary"  # identity + classifications
    DETAIL = "detail"    # full properties + classifications


class CanonicalBase(BaseModel):
    """Base for canonical payload models."""
    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class EnumValue(CanonicalBase):
    """A canonical enumeration value (e.g. a relationship status)."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    ordinal: int
    symbolic_name: str = Field(..., alias="symbolicName")
    description: Optional[str] = None


class EntityProxy(CanonicalBase):
    """Minimal entity reference embedded in a relationship."""
    guid: str
    type_name: str = Field(..., alias="type")
    unique_properties: Dict[str, Any] = Field(default_factory=dict, alias="uniqueProperties")


class CanonicalClassification(CanonicalBase):
    """A classification attached to exactly one entity."""
    type_name: str = Field(..., alias="type")
    properties: Dict[str, Any] = Field(default_factory=dict)


class CanonicalEntity(CanonicalBase):
    """Canonical image of one native asset (or a derived view of one)."""
    guid: str
    type_name: str = Field(..., alias="type")
    version: int = Field(default=1, ge=1)
    properties: Dict[str, Any] = Field(default_factory=dict)
    classifications: List[CanonicalClassification] = Field(default_factory=list)

    def classification(self, type_name: str) -> Optional[CanonicalClassification]:
        for classification in self.classifications:
            if classification.type_name == type_name:
                return classification
        return None


class CanonicalRelationship(CanonicalBase):
    """A relationship between exactly two entity proxies."""
    guid: str
    type_name: str = Field(..., alias="type")
    version: int = Field(default=1, ge=1)
    properties: Dict[str, Any] = Field(default_factory=dict)
    proxy_one: EntityProxy = Field(..., alias="proxy1")
    proxy_two: EntityProxy = Field(..., alias="proxy2")

    def other_end(self, guid: str) -> Optional[EntityProxy]:
        if self.proxy_one.guid == guid:
            return self.proxy_two
        if self.proxy_two.guid == guid:
            return self.proxy_one
        return None
