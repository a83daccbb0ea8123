"""Custom exception hierarchy for RefBridge."""

from typing import Optional, Any, Dict


SNAPSHOT_HINT = "Take a new snapshot to get current refs."


class RefBridgeError(Exception):
    """Base exception for all RefBridge errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def error_code(self) -> Optional[str]:
        return self.details.get("error_code")


class RefError(RefBridgeError):
    """Base class for errors about a specific element reference."""

    def __init__(self, ref: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, {"ref": ref, **(details or {})})
        self.ref = ref


class UnknownRefError(RefError):
    """Raised when a ref was never allocated in the current navigation epoch."""

    def __init__(self, ref: str, role: Optional[str] = None):
        where = f" for role '{role}'" if role else ""
        super().__init__(
            ref,
            f"Unknown element reference '{ref}'{where}: it was never assigned on the "
            f"current page. Refs reset on every navigation; take a new snapshot to get current refs.",
            {"role": role, "error_code": "UNKNOWN_REF"},
        )


class StaleRefError(RefError):
    """Raised when a ref was allocated but its element is no longer connected."""

    def __init__(self, ref: str, role: Optional[str] = None):
        where = f" (role '{role}')" if role else ""
        super().__init__(
            ref,
            f"Element '{ref}'{where} was removed from DOM since it was captured. "
            f"{SNAPSHOT_HINT}",
            {"role": role, "error_code": "STALE_REF"},
        )


class InvalidRefFormatError(RefError):
    """Raised when a global ref string does not match the ref grammar."""

    def __init__(self, ref: str):
        super().__init__(
            ref,
            f"Invalid ref format: '{ref}'. Expected \"e1\" or \"f1_e1\" format; "
            f"copy refs exactly as they appear in the snapshot.",
            {"error_code": "INVALID_REF_FORMAT"},
        )


class AncestorLevelTooHighError(RefBridgeError):
    """Raised when climbing ancestors would reach or pass the document body."""

    def __init__(self, ref: str, ancestor_level: int, available: int):
        super().__init__(
            f"Ancestor level {ancestor_level} is too high for element '{ref}' - reached "
            f"document body after {available} level(s). Use resolve_container to see "
            f"which levels exist, then retry with a level of at most {available}.",
            {
                "ref": ref,
                "ancestor_level": ancestor_level,
                "available_levels": available,
                "error_code": "ANCESTOR_LEVEL_TOO_HIGH",
            },
        )
        self.ref = ref
        self.ancestor_level = ancestor_level
        self.available = available


class InvalidArgumentError(RefBridgeError):
    """Raised when an operation receives an argument outside its domain."""

    def __init__(self, name: str, value: Any, reason: str):
        super().__init__(
            f"Invalid value for {name}: {value!r} ({reason})",
            {"argument": name, "value": value, "error_code": "INVALID_ARGUMENT"},
        )


class BridgeInjectionError(RefBridgeError):
    """Raised when the analysis bridge cannot be injected into a frame."""

    def __init__(self, frame_id: str, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Bridge injection failed for frame {frame_id}: {reason}",
            {"frame_id": frame_id, "reason": reason, "error_code": "BRIDGE_INJECTION_FAILED", **(details or {})},
        )
        self.frame_id = frame_id
        self.reason = reason


class BridgeVersionMismatchError(BridgeInjectionError):
    """Raised when the injected bridge reports an unexpected protocol version."""

    def __init__(self, frame_id: str, got: Optional[str], expected: str):
        super().__init__(
            frame_id,
            f"bridge version mismatch (got {got!r}, expected {expected!r}); "
            f"reload the page or restart the browser session",
            {"got": got, "expected": expected, "error_code": "BRIDGE_VERSION_MISMATCH"},
        )
        self.got = got
        self.expected = expected


class NavigationError(RefBridgeError):
    """Raised when navigating a role's page fails."""

    def __init__(self, role: str, url: str, reason: str):
        super().__init__(
            f"Navigate failed for role '{role}' to '{url}': {reason}",
            {"role": role, "url": url, "reason": reason, "error_code": "NAVIGATION_FAILED"},
        )


class RoleError(RefBridgeError):
    """Raised when a role context cannot be created, selected or used."""

    def __init__(self, role: str, reason: str):
        super().__init__(
            f"Role '{role}' is not available: {reason}",
            {"role": role, "reason": reason, "error_code": "ROLE_ERROR"},
        )


class BrowserNotAvailableError(RefBridgeError):
    """Raised when browser connection fails."""

    def __init__(self, reason: str):
        super().__init__(
            f"Browser not available: {reason}",
            {"reason": reason, "error_code": "BROWSER_NOT_AVAILABLE"}
        )


class CDPError(RefBridgeError):
    """Raised when Chrome DevTools Protocol operations fail."""

    def __init__(self, command: str, reason: str):
        super().__init__(
            f"CDP command '{command}' failed: {reason}",
            {"command": command, "reason": reason, "error_code": "CDP_ERROR"}
        )
        self.command = command
        self.reason = reason


class ConfigurationError(RefBridgeError):
    """Raised when configuration is invalid."""

    def __init__(self, reason: str):
        super().__init__(
            f"Invalid configuration: {reason}",
            {"reason": reason, "error_code": "CONFIGURATION_ERROR"}
        )
