"""Custom exceptions for tier price contract errors."""

from typing import Any, Dict, Optional


class ContractError(Exception):
    """Error that maps to a stable API error payload."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class UnresolvedSkuError(ContractError):
    """Accepted record whose SKU resolves to no product identifier."""

    def __init__(self, sku: str) -> None:
        super().__init__(
            "UNRESOLVED_SKU",
            f"SKU '{sku}' passed validation but resolves to no product",
            status_code=409,
            details={"sku": sku},
        )
        self.sku = sku


class CollaboratorError(ContractError):
    """Lookup, persistence or indexer failure aborting the whole operation."""

    def __init__(self, code: str, operation: str, cause: Exception) -> None:
        super().__init__(
            code,
            f"{operation} failed: {cause}",
            status_code=503,
            details={"operation": operation, "cause": type(cause).__name__},
        )
        self.operation = operation
