"""Error taxonomy for the catalog bridge.

Every failure raised by the mapping stack derives from CatalogBridgeError so
callers can isolate per-asset problems without catching unrelated bugs.

- UnsupportedType: no mapper registered, caller skips the asset
- UnsupportedSearchPattern: malformed match operator, fail fast
- IncompleteReference: expected property/endpoint missing, degrade and continue
- ExternalCallFailure: collaborator call failed, skip asset and warn
- InvariantViolation: a canonical object could not be built consistently
"""

from typing import Any, Dict, Optional


class CatalogBridgeError(Exception):
    """Base exception for catalog bridge errors."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class UnsupportedType(CatalogBridgeError):
    """No mapper is registered for a (native type, prefix) pair."""
    def __init__(self, native_type: str, prefix: Optional[str] = None):
        label = f"{prefix}{native_type}" if prefix else native_type
        super().__init__(
            f"No mapper registered for native type: {label}",
            {"native_type": native_type, "prefix": prefix},
        )
        self.native_type = native_type
        self.prefix = prefix


class UnsupportedSearchPattern(CatalogBridgeError):
    """A match value or operator is not one of the four supported forms."""
    def __init__(self, pattern: Any):
        super().__init__(
            f"Unsupported search pattern: {pattern!r}",
            {"pattern": str(pattern)},
        )
        self.pattern = pattern


class IncompleteReference(CatalogBridgeError):
    """An expected asset, property or endpoint could not be resolved."""
    def __init__(self, message: str, rid: Optional[str] = None, property_name: Optional[str] = None):
        super().__init__(message, {"rid": rid, "property": property_name})
        self.rid = rid
        self.property_name = property_name


class ExternalCallFailure(CatalogBridgeError):
    """The native catalog client failed (network, auth or server error)."""
    def __init__(self, message: str, status_code: int = 0, response_body: str = ""):
        super().__init__(message, {"status_code": status_code})
        self.status_code = status_code
        self.response_body = response_body


class InvariantViolation(CatalogBridgeError):
    """A canonical object would break one of its structural guarantees."""
    pass
