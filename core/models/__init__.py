"""Core data models.

Native catalog shapes (assets, references, stubs) and the canonical
entity/relationship/classification payloads produced from them.
"""

from core.models.canonical import (
    CanonicalBase,
    CanonicalClassification,
    CanonicalEntity,
    CanonicalRelationship,
    EntityProxy,
    EnumValue,
    Fidelity,
)

from core.models.native import (
    AssetKind,
    NativeAsset,
    ReferenceList,
    StubSnapshot,
    decode_value,
    encode_value,
    reference_items,
    to_datetime,
    to_epoch_millis,
)

__all__ = [
    # Canonical
    "CanonicalBase",
    "CanonicalClassification",
    "CanonicalEntity",
    "CanonicalRelationship",
    "EntityProxy",
    "EnumValue",
    "Fidelity",

    # Native
    "AssetKind",
    "NativeAsset",
    "ReferenceList",
    "StubSnapshot",
    "decode_value",
    "encode_value",
    "reference_items",
    "to_datetime",
    "to_epoch_millis",
]
