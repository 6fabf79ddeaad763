"""In-memory native catalog client.

Evaluates NativeQuery condition trees over a snapshot of native assets held
in memory. Used for local development, fixtures and replaying exported
catalog snapshots (JSON) through the sync worker.

Snapshot format:
    {
        "link_types": ["classification"],
        "placeholder_types": ["main_object"],
        "assets": [
            {"_id": "db1", "_type": "database", "_name": "COMPDIR",
             "properties": {"host": {"_id": "h1", "_type": "host"}, ...}}
        ]
    }
"""

import json
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from connectors.catalog_base import CatalogClient, SearchPage, register_client
from core.config import BridgeConfig
from core.errors import ExternalCallFailure
from core.models.native import AssetKind, NativeAsset, ReferenceList, decode_value, to_datetime
from core.search.conditions import ConditionSet, NativeQuery, Operator, SearchCondition


DEFAULT_LINK_TYPES = ("classification",)
DEFAULT_PLACEHOLDER_TYPES = ("main_object",)


@register_client("memory")
class InMemoryCatalogClient(CatalogClient):
    """Catalog client backed by an in-memory asset snapshot."""

    def __init__(
        self,
        config: BridgeConfig,
        assets: Optional[Iterable[Dict[str, Any]]] = None,
        link_types: Iterable[str] = DEFAULT_LINK_TYPES,
        placeholder_types: Iterable[str] = DEFAULT_PLACEHOLDER_TYPES,
    ):
        super().__init__(config)
        self.link_types: Set[str] = set(link_types)
        self.placeholder_types: Set[str] = set(placeholder_types)
        self.calls: Counter = Counter()
        self._failing: Set[str] = set()
        self._assets: Dict[str, NativeAsset] = {}

        if assets is None and config.snapshot_path:
            assets = self._read_snapshot(Path(config.snapshot_path))
        for payload in assets or []:
            self.add_asset(payload)

    @property
    def client_name(self) -> str:
        return "memory"

    def _read_snapshot(self, path: Path) -> List[Dict[str, Any]]:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        self.link_types.update(data.get("link_types", []))
        self.placeholder_types.update(data.get("placeholder_types", []))
        return data.get("assets", [])

    # =========================================================================
    # Snapshot Maintenance
    # =========================================================================

    def _kind(self, native_type: str) -> AssetKind:
        if native_type in self.link_types:
            return AssetKind.LINK
        if native_type in self.placeholder_types:
            return AssetKind.PLACEHOLDER
        return AssetKind.ASSET

    def _tag(self, value: Any) -> Any:
        """Set the reference kind on decoded references."""
        if isinstance(value, NativeAsset):
            return value.model_copy(update={"kind": self._kind(value.native_type)})
        if isinstance(value, ReferenceList):
            return ReferenceList(items=[self._tag(item) for item in value.items], total=value.total)
        return value

    def add_asset(self, payload: Dict[str, Any]) -> NativeAsset:
        """Add or replace an asset from its JSON payload."""
        properties = {k: self._tag(decode_value(v)) for k, v in (payload.get("properties") or {}).items()}
        name = payload.get("_name") or properties.get("name")
        if name is not None:
            properties.setdefault("name", name)
        asset = NativeAsset(
            rid=payload["_id"],
            native_type=payload["_type"],
            name=name,
            kind=self._kind(payload["_type"]),
            properties=properties,
        )
        self._assets[asset.rid] = asset
        return asset

    def update_properties(self, rid: str, **changes: Any) -> NativeAsset:
        """Replace properties of a stored asset (None removes the property)."""
        asset = self._assets[rid]
        properties = dict(asset.properties)
        for name, value in changes.items():
            if value is None:
                properties.pop(name, None)
            else:
                properties[name] = self._tag(decode_value(value))
        updated = asset.model_copy(update={"properties": properties, "name": properties.get("name", asset.name)})
        self._assets[rid] = updated
        return updated

    def fail_on(self, rid: str) -> None:
        """Make every call touching the given asset raise ExternalCallFailure."""
        self._failing.add(rid)

    def _check(self, rid: str) -> None:
        if rid in self._failing:
            raise ExternalCallFailure(f"Catalog call failed for asset {rid}", status_code=503)

    # =========================================================================
    # Client Interface
    # =========================================================================

    async def search(self, query: NativeQuery, offset: int = 0, page_size: Optional[int] = None) -> SearchPage:
        self.calls["search"] += 1
        page_size = page_size or self.config.page_size
        matches = [
            asset for asset in self._assets.values()
            if asset.native_type in query.native_types and self._evaluate(asset, query.conditions)
        ]
        page = matches[offset:offset + page_size]
        items = [
            NativeAsset(rid=a.rid, native_type=a.native_type, name=a.name, kind=a.kind,
                        properties={name: a.properties[name] for name in query.properties if name in a.properties})
            for a in page
        ]
        return SearchPage(items=items, total=len(matches), offset=offset)

    async def get_by_id(self, rid: str) -> Optional[NativeAsset]:
        self.calls["get_by_id"] += 1
        self._check(rid)
        asset = self._assets.get(rid)
        if asset is None or asset.kind == AssetKind.PLACEHOLDER:
            return None
        return asset

    async def get_property(self, asset: NativeAsset, name: str) -> Any:
        self.calls["get_property"] += 1
        self._check(asset.rid)
        stored = self._assets.get(asset.rid)
        if stored is None:
            return None
        if name == "name":
            return stored.name
        return stored.properties.get(name)

    # =========================================================================
    # Condition Evaluation
    # =========================================================================

    def _evaluate(self, asset: NativeAsset, conditions: ConditionSet) -> bool:
        if not conditions.items:
            return True
        results = (
            self._evaluate(asset, item) if isinstance(item, ConditionSet) else self._test(asset, item)
            for item in conditions.items
        )
        return any(results) if conditions.match_any else all(results)

    def _resolve(self, asset: NativeAsset, path: str) -> List[Any]:
        """Collect every value reachable along a dotted property path."""
        current: List[Any] = [asset]
        for segment in path.split("."):
            following: List[Any] = []
            for node in current:
                if not isinstance(node, NativeAsset):
                    continue
                full = self._assets.get(node.rid, node)
                if segment == "_id":
                    following.append(full.rid)
                    continue
                if segment == "name":
                    following.append(full.name)
                    continue
                value = full.properties.get(segment)
                if isinstance(value, ReferenceList):
                    following.extend(value.items)
                elif isinstance(value, list):
                    following.extend(value)
                else:
                    following.append(value)
            current = following
        return current

    def _test(self, asset: NativeAsset, condition: SearchCondition) -> bool:
        values = [v for v in self._resolve(asset, condition.property) if v is not None]
        op = condition.operator
        if op == Operator.IS_NULL:
            return not values
        if op == Operator.IS_NOT_NULL:
            return bool(values)
        target = condition.value
        if op == Operator.NOT_EQUALS:
            return all(not self._equals(v, target) for v in values)
        return any(self._compare(op, v, target) for v in values)

    @staticmethod
    def _normalize(value: Any) -> Any:
        if isinstance(value, NativeAsset):
            return value.rid
        return value

    def _equals(self, value: Any, target: Any) -> bool:
        value = self._normalize(value)
        if isinstance(target, bool) or isinstance(value, bool):
            return str(value).lower() == str(target).lower()
        return value == target or str(value) == str(target)

    def _compare(self, op: Operator, value: Any, target: Any) -> bool:
        value = self._normalize(value)
        if op == Operator.EQUALS:
            return self._equals(value, target)
        if op in (Operator.STARTS_WITH, Operator.ENDS_WITH, Operator.CONTAINS):
            if not isinstance(value, str):
                return False
            if op == Operator.STARTS_WITH:
                return value.startswith(str(target))
            if op == Operator.ENDS_WITH:
                return value.endswith(str(target))
            return str(target) in value

        if isinstance(target, str) or hasattr(target, "tzinfo"):
            try:
                value, target = to_datetime(value), to_datetime(target)
            except (TypeError, ValueError):
                return False
        try:
            if op == Operator.LESS_THAN:
                return value < target
            if op == Operator.LESS_OR_EQUAL:
                return value <= target
            if op == Operator.GREATER_THAN:
                return value > target
            if op == Operator.GREATER_OR_EQUAL:
                return value >= target
        except TypeError:
            return False
        return False
