"""Deterministic identity for canonical objects.

Entity GUIDs are a pure, reversible function of (native id, native type,
generation prefix) within one metadata collection:

    {collection}@{prefix}{native_type}:{rid}
    catalog-bridge@gen!RDBST@database_schema:b1c497ce.54bd3a08

Generation prefixes have the form "gen!<TAG>@" so they can be recovered when
parsing a GUID back into its native coordinates.
"""

import re
from dataclasses import dataclass
from typing import Optional, Protocol


GENERATED_PREFIX_PATTERN = re.compile(r"^gen![A-Za-z0-9_]+@$")
_GENERATED_MARKER = "gen!"


def validate_prefix(prefix: Optional[str]) -> Optional[str]:
    """Normalize an optional prefix ("" -> None) and check its form."""
    if not prefix:
        return None
    if not GENERATED_PREFIX_PATTERN.match(prefix):
        raise ValueError(f"Invalid generation prefix: {prefix!r} (expected 'gen!<TAG>@')")
    return prefix


@dataclass(frozen=True)
class CatalogGuid:
    """Native coordinates of a canonical entity."""
    collection_id: str
    native_type: str
    rid: str
    prefix: Optional[str] = None

    @property
    def local_part(self) -> str:
        return f"{self.prefix or ''}{self.native_type}:{self.rid}"

    def __str__(self) -> str:
        return f"{self.collection_id}@{self.local_part}"

    @classmethod
    def parse(cls, guid: str) -> "CatalogGuid":
        """Recover the native coordinates from a GUID string.

        Raises:
            ValueError: If the GUID was not produced by this scheme
        """
        collection_id, sep, rest = guid.partition("@")
        if not sep or not collection_id or not rest:
            raise ValueError(f"Not a catalog GUID: {guid!r}")

        prefix = None
        if rest.startswith(_GENERATED_MARKER):
            end = rest.find("@")
            if end < 0:
                raise ValueError(f"Unterminated generation prefix in GUID: {guid!r}")
            prefix = rest[:end + 1]
            rest = rest[end + 1:]

        native_type, sep, rid = rest.partition(":")
        if not sep or not native_type or not rid:
            raise ValueError(f"Not a catalog GUID: {guid!r}")
        return cls(collection_id=collection_id, native_type=native_type, rid=rid, prefix=prefix)


class GuidGenerator(Protocol):
    """Namespace generator turning native coordinates into GUIDs."""
    collection_id: str

    def entity_guid(self, rid: str, native_type: str, prefix: Optional[str] = None) -> str:
        ...

    def relationship_guid(
        self,
        relationship_type: str,
        one: CatalogGuid,
        two: CatalogGuid,
        carrier_rid: Optional[str] = None,
    ) -> str:
        ...

    def coordinates(self, rid: str, native_type: str, prefix: Optional[str] = None) -> CatalogGuid:
        ...


class CollectionGuidGenerator:
    """Default GuidGenerator scoped to one metadata collection id."""

    def __init__(self, collection_id: str):
        if "@" in collection_id:
            raise ValueError(f"Collection id must not contain '@': {collection_id!r}")
        self.collection_id = collection_id

    def coordinates(self, rid: str, native_type: str, prefix: Optional[str] = None) -> CatalogGuid:
        return CatalogGuid(self.collection_id, native_type, rid, validate_prefix(prefix))

    def entity_guid(self, rid: str, native_type: str, prefix: Optional[str] = None) -> str:
        return str(self.coordinates(rid, native_type, prefix))

    def relationship_guid(
        self,
        relationship_type: str,
        one: CatalogGuid,
        two: CatalogGuid,
        carrier_rid: Optional[str] = None,
    ) -> str:
        guid = f"{self.collection_id}@{relationship_type}|{one.local_part}|{two.local_part}"
        if carrier_rid:
            guid += f"|{carrier_rid}"
        return guid
