"""
Error taxonomy for deployment and contract interaction
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Error categories for classification"""
    ENCODING = "encoding"  # String does not fit in a field element
    CACHE = "cache"  # Address book is corrupt or lacks an entry
    DEPLOYMENT = "deployment"  # Deploy request rejected or never mined
    SESSION = "session"  # No matching code at the address
    CALL = "call"  # Contract rejected a send/simulate
    ENVIRONMENT = "environment"  # PXE, artifact or identity source unavailable
    TIMEOUT = "timeout"  # Bounded wait exceeded


class ProfileSharingError(Exception):
    """Base class for every error surfaced by this package"""

    category: ErrorCategory = ErrorCategory.ENVIRONMENT

    def __init__(
        self,
        message: str,
        contract_name: Optional[str] = None,
        operation: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.contract_name = contract_name
        self.operation = operation
        self.metadata = metadata or {}

    def with_context(
        self,
        contract_name: Optional[str] = None,
        operation: Optional[str] = None
    ) -> "ProfileSharingError":
        """Fill in contract/operation if they were not known where the error was raised"""
        if self.contract_name is None:
            self.contract_name = contract_name
        if self.operation is None:
            self.operation = operation
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary"""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "contract": self.contract_name,
            "operation": self.operation,
            "metadata": self.metadata,
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.contract_name:
            parts.append(f"contract={self.contract_name}")
        if self.operation:
            parts.append(f"operation={self.operation}")
        return " | ".join(parts)


class EncodingOverflow(ProfileSharingError):
    """Value falls outside the field [0, modulus)"""
    category = ErrorCategory.ENCODING


class CacheCorrupt(ProfileSharingError):
    """Address book exists but cannot be parsed or fails schema validation"""
    category = ErrorCategory.CACHE


class CacheMissingField(ProfileSharingError):
    """Address book has no entry for the contract an interaction needs"""
    category = ErrorCategory.CACHE


class DeploymentFailed(ProfileSharingError):
    category = ErrorCategory.DEPLOYMENT


class SessionBindFailed(ProfileSharingError):
    category = ErrorCategory.SESSION


class CallFailed(ProfileSharingError):
    category = ErrorCategory.CALL


class LedgerTimeout(ProfileSharingError):
    """
    A bounded wait expired.

    The outcome of the awaited action is unknown: a transaction may still be mined.
    """
    category = ErrorCategory.TIMEOUT


class NodeUnavailable(ProfileSharingError):
    category = ErrorCategory.ENVIRONMENT


class ArtifactError(ProfileSharingError):
    category = ErrorCategory.ENVIRONMENT


class IdentityUnavailable(ProfileSharingError):
    category = ErrorCategory.ENVIRONMENT
