"""Error kinds raised by vendorsync.

Every error carries the structured context it was raised with (paths, line
numbers, limits, vendor names) so callers can match on the kind and inspect
the values instead of parsing messages.
"""

from __future__ import annotations


class VendorSyncError(Exception):
    """Base class for all vendorsync errors."""


class AddressParseError(VendorSyncError, ValueError):
    """A position address suffix could not be parsed."""

    def __init__(self, spec: str, reason: str):
        self.spec = spec
        self.reason = reason
        super().__init__(f"invalid position specifier in {spec!r}: {reason}")


class AddressRangeError(VendorSyncError):
    """A line or column does not exist in the addressed content."""

    def __init__(
        self,
        path: str,
        requested: int,
        limit: int,
        kind: str = "line",
        line: int | None = None,
        target: bool = False,
    ):
        self.path = path
        self.requested = requested
        self.limit = limit
        self.kind = kind
        self.line = line
        self.target = target

        if kind == "line":
            prefix = "target line" if target else "line"
            message = f"{prefix} {requested} does not exist in {path} ({limit} lines)"
        else:
            message = (
                f"column {requested} exceeds line length ({limit} chars) "
                f"in {path} line {line}"
            )
        super().__init__(message)


class BinaryContentError(VendorSyncError):
    """Position-addressed access was attempted on binary content."""

    def __init__(self, path: str, operation: str = "extraction"):
        self.path = path
        self.operation = operation
        super().__init__(f"position {operation} on binary file {path} is not supported")


class PlacementError(VendorSyncError):
    """Content could not be placed into its target file."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(message)


class ComplianceConflictError(VendorSyncError):
    """Both sides of a mapping drifted; manual resolution is required."""

    def __init__(self, vendor_name: str, from_path: str, to_path: str):
        self.vendor_name = vendor_name
        self.from_path = from_path
        self.to_path = to_path
        super().__init__(
            f"conflict in {vendor_name}: both {from_path} and {to_path} changed "
            f"since last sync; resolve manually, then run 'vendorsync sync'"
        )


class PositionDeltaError(VendorSyncError):
    """Shifting a position address would invert its line range."""

    def __init__(self, target: str, start_line: int, end_line: int, delta: int):
        self.target = target
        self.start_line = start_line
        self.end_line = end_line
        self.delta = delta
        super().__init__(
            f"position auto-update for {target} would make EndLine ({end_line}) "
            f"< StartLine ({start_line}) after delta {delta}"
        )


class CycleError(VendorSyncError):
    """Internal vendor mappings form a circular dependency."""

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__(f"circular dependency detected: {' -> '.join(self.cycle)}")


class ValidationError(VendorSyncError):
    """The vendor configuration is invalid."""

    def __init__(self, message: str, vendor_name: str = "", ref: str = "", field: str = ""):
        self.message = message
        self.vendor_name = vendor_name
        self.ref = ref
        self.field = field

        text = "invalid configuration"
        if vendor_name:
            text += f" for vendor '{vendor_name}'"
        text += f": {message}"
        if ref:
            text += f" (ref: {ref})"
        if field:
            text += f" [field: {field}]"
        super().__init__(text)


class PropagationError(VendorSyncError):
    """One or more mappings failed to propagate.

    ``failures`` holds one message per failed mapping; ``result`` is the
    compliance result computed for the whole run.
    """

    def __init__(self, failures: list[str], result=None):
        self.failures = list(failures)
        self.result = result
        super().__init__("propagation errors:\n  " + "\n  ".join(self.failures))


class StoreError(VendorSyncError):
    """A configuration or lock file could not be read or written."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class CacheError(VendorSyncError):
    """The checksum cache is unreadable."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"corrupted cache file {path}: {message}")
