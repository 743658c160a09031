"""
Exception hierarchy for the settings replicator.

Every error carries an error code, structured context, the underlying cause
and an optional recovery suggestion, so the CLI and the structured report log
can surface the same information.
"""

from typing import Any, Dict, Optional


class SettingsReplicatorError(Exception):
    """
    Base exception class for all settings replication errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


class InvalidInputError(SettingsReplicatorError):
    """Raised when caller input is malformed. No remote call has been made."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        if field:
            context["field"] = field
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_INPUT")
        super().__init__(message, **kwargs)


class ConfigurationError(SettingsReplicatorError):
    """Raised when environment configuration is invalid."""

    def __init__(
        self, message: str, config_key: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context") or {}
        if config_key:
            context["config_key"] = config_key
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_CONFIG")
        kwargs.setdefault(
            "recovery_suggestion", "Check the .env file and environment variables"
        )
        super().__init__(message, **kwargs)


class AuthContextError(SettingsReplicatorError):
    """Raised when an authorization context cannot be established."""

    def __init__(
        self,
        message: str,
        subscription_id: Optional[str] = None,
        tenant_id: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context") or {}
        if subscription_id:
            context["subscription_id"] = subscription_id
        if tenant_id:
            context["tenant_id"] = tenant_id
        kwargs["context"] = context
        kwargs.setdefault("error_code", "AUTH_CONTEXT_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Run 'az login' or check the service principal configured for this subscription",
        )
        super().__init__(message, **kwargs)


class ResourceNotFoundError(SettingsReplicatorError):
    """Raised when the source or target site does not exist."""

    def __init__(
        self,
        message: str,
        resource_name: Optional[str] = None,
        resource_group: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context") or {}
        if resource_name:
            context["resource_name"] = resource_name
        if resource_group:
            context["resource_group"] = resource_group
        kwargs["context"] = context
        kwargs.setdefault("error_code", "RESOURCE_NOT_FOUND")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check the site name, resource group and subscription",
        )
        super().__init__(message, **kwargs)


class SourceReadError(SettingsReplicatorError):
    """Raised when reading the source configuration fails. Nothing was written."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "SOURCE_READ_FAILED")
        super().__init__(message, **kwargs)


class InvalidPolicyError(SettingsReplicatorError):
    """Raised when an exclusion policy is malformed."""

    def __init__(self, message: str, entry: Optional[Any] = None, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        if entry is not None:
            context["entry"] = repr(entry)
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_POLICY")
        super().__init__(message, **kwargs)


class WriteError(SettingsReplicatorError):
    """Raised by a resource directory when a batch write fails, fully or partially."""

    def __init__(self, message: str, facet: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        if facet:
            context["facet"] = facet
        kwargs["context"] = context
        kwargs.setdefault("error_code", "WRITE_FAILED")
        super().__init__(message, **kwargs)


class ApplyError(SettingsReplicatorError):
    """
    Raised when applying the filtered payload to the target fails.

    ``sub_step`` names the write that failed ("settings" or
    "connection_strings"). Writes that succeeded before it stay applied.
    """

    def __init__(self, message: str, sub_step: str, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        context["sub_step"] = sub_step
        kwargs["context"] = context
        kwargs.setdefault("error_code", "APPLY_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Inspect the target site configuration manually; no rollback was attempted",
        )
        super().__init__(message, **kwargs)
        self.sub_step = sub_step


class AzureOperationError(SettingsReplicatorError):
    """Raised for control-plane failures with no more specific category."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "AZURE_OPERATION_FAILED")
        super().__init__(message, **kwargs)


def wrap_azure_exception(
    exc: Exception, context: Optional[Dict[str, Any]] = None
) -> SettingsReplicatorError:
    """
    Wrap an Azure SDK exception in the replicator's exception hierarchy.

    Authentication and authorization failures become AuthContextError,
    everything else becomes AzureOperationError.

    Args:
        exc: The original exception
        context: Optional context information

    Returns:
        SettingsReplicatorError: Wrapped exception with enhanced context
    """
    error_message = str(exc)
    status_code = getattr(exc, "status_code", None)

    if (
        status_code in (401, 403)
        or "authentication" in error_message.lower()
        or "unauthorized" in error_message.lower()
        or "authorizationfailed" in error_message.lower()
    ):
        return AuthContextError(
            f"Azure authorization failed: {error_message}", context=context, cause=exc
        )
    return AzureOperationError(
        f"Azure operation failed: {error_message}", context=context, cause=exc
    )
