"""Change detection between a native asset and its stub.

ChangeSetEngine compares the current property bag of a native asset with the
previously persisted stub and reports every difference as a ChangeRecord:

    absent in stub, present now      -> add
    present in stub, absent now      -> remove
    present in both, different       -> replace

References compare by native id only. List-valued properties are compared
element by element, counting repeated elements: appearing or disappearing
as a whole is reported on the bare property path, partial changes on
"property/index" paths. The engine is
stateless; the same two inputs always yield the same records.
"""

from collections import Counter
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field

from core.models.native import NativeAsset, ReferenceList, StubSnapshot, encode_value, to_datetime


class ChangeOperation(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


class ChangeRecord(BaseModel):
    """One detected change on a property (or on one list element)."""
    model_config = ConfigDict(frozen=True)

    property_name: str
    path: str
    operation: ChangeOperation
    index: Optional[int] = None
    old_value: Any = None
    new_value: Any = None


class ChangeSet(BaseModel):
    """All changes detected for one asset."""
    rid: Optional[str] = None
    native_type: Optional[str] = None
    records: List[ChangeRecord] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.records

    def changed_properties(self) -> Set[str]:
        return {record.property_name for record in self.records}

    def for_property(self, name: str) -> List[ChangeRecord]:
        return [record for record in self.records if record.property_name == name]

    def by_operation(self) -> Dict[ChangeOperation, List[ChangeRecord]]:
        grouped: Dict[ChangeOperation, List[ChangeRecord]] = {op: [] for op in ChangeOperation}
        for record in self.records:
            grouped[record.operation].append(record)
        return grouped

    def counts(self) -> Dict[str, int]:
        return {op.value: len(records) for op, records in self.by_operation().items()}

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


# =============================================================================
# Value Helpers
# =============================================================================

def _is_list(value: Any) -> bool:
    return isinstance(value, (list, tuple, ReferenceList))


def _elements(value: Any) -> List[Any]:
    if isinstance(value, ReferenceList):
        return list(value.items)
    return list(value)


def _is_absent(value: Any) -> bool:
    return value is None or (_is_list(value) and not _elements(value))


def _identity(value: Any) -> Any:
    """Comparison key: references by id, timestamps normalized, the rest by value."""
    if isinstance(value, NativeAsset):
        return ("ref", value.rid)
    if isinstance(value, datetime):
        return ("ts", to_datetime(value))
    if isinstance(value, dict):
        return ("map", tuple(sorted((str(k), repr(_identity(v))) for k, v in value.items())))
    if _is_list(value):
        return ("list", tuple(_identity(v) for v in _elements(value)))
    return value


def _same(old: Any, new: Any) -> bool:
    if isinstance(old, datetime) != isinstance(new, datetime):
        try:
            return to_datetime(old) == to_datetime(new)
        except (TypeError, ValueError):
            return False
    return _identity(old) == _identity(new)


def _surplus(keys: List[Any], other: List[Any]) -> List[int]:
    """Indexes of occurrences in keys beyond the count found in other."""
    budget = Counter(other)
    surplus = []
    for i, key in enumerate(keys):
        if budget[key] > 0:
            budget[key] -= 1
        else:
            surplus.append(i)
    return surplus


def describe(value: Any) -> Any:
    """JSON-safe descriptor of a property value."""
    if isinstance(value, ReferenceList):
        return [describe(item) for item in value.items]
    return encode_value(value)


# =============================================================================
# Engine
# =============================================================================

PropertyBag = Union[NativeAsset, StubSnapshot, Mapping[str, Any], None]


def _properties(bag: PropertyBag) -> Mapping[str, Any]:
    if bag is None:
        return {}
    if isinstance(bag, (NativeAsset, StubSnapshot)):
        return bag.properties
    return bag


class ChangeSetEngine:
    """Pure diff over two native property bags."""

    def __init__(self, ignored_properties: Optional[Set[str]] = None):
        self.ignored_properties = frozenset(ignored_properties or ())

    def compare(self, current: PropertyBag, stub: PropertyBag = None) -> ChangeSet:
        """Diff the current bag against the stub (which may be empty)."""
        new_props = _properties(current)
        old_props = _properties(stub)

        records: List[ChangeRecord] = []
        for name in sorted(set(new_props) | set(old_props)):
            if name in self.ignored_properties:
                continue
            records.extend(self._diff(name, old_props.get(name), new_props.get(name)))

        identity = current if isinstance(current, (NativeAsset, StubSnapshot)) else stub
        return ChangeSet(
            rid=getattr(identity, "rid", None),
            native_type=getattr(identity, "native_type", None),
            records=records,
        )

    def _diff(self, name: str, old: Any, new: Any) -> List[ChangeRecord]:
        old_absent, new_absent = _is_absent(old), _is_absent(new)
        if old_absent and new_absent:
            return []
        if old_absent:
            return [ChangeRecord(property_name=name, path=name, operation=ChangeOperation.ADD, new_value=describe(new))]
        if new_absent:
            return [ChangeRecord(property_name=name, path=name, operation=ChangeOperation.REMOVE, old_value=describe(old))]
        if _is_list(old) and _is_list(new):
            return self._diff_list(name, _elements(old), _elements(new))
        if _same(old, new):
            return []
        return [ChangeRecord(
            property_name=name, path=name, operation=ChangeOperation.REPLACE,
            old_value=describe(old), new_value=describe(new),
        )]

    def _diff_list(self, name: str, old: List[Any], new: List[Any]) -> List[ChangeRecord]:
        old_keys = [_identity(v) for v in old]
        new_keys = [_identity(v) for v in new]
        removed = _surplus(old_keys, new_keys)
        added = _surplus(new_keys, old_keys)

        if not removed and not added:
            return []

        if added and not removed:
            return [
                ChangeRecord(property_name=name, path=f"{name}/{i}", operation=ChangeOperation.ADD,
                             index=i, new_value=describe(new[i]))
                for i in added
            ]

        if removed and not added:
            return [
                ChangeRecord(property_name=name, path=f"{name}/{i}", operation=ChangeOperation.REMOVE,
                             index=i, old_value=describe(old[i]))
                for i in removed
            ]

        # Additions and removals together: element-wise replace when positions line up,
        # otherwise one replace of the whole list.
        if len(old) == len(new):
            return [
                ChangeRecord(property_name=name, path=f"{name}/{i}", operation=ChangeOperation.REPLACE,
                             index=i, old_value=describe(old[i]), new_value=describe(new[i]))
                for i in range(len(old)) if old_keys[i] != new_keys[i]
            ]
        return [ChangeRecord(
            property_name=name, path=name, operation=ChangeOperation.REPLACE,
            old_value=describe(old), new_value=describe(new),
        )]
