"""
Context switching between the source and target authorization domains.

Activation returns a handle; every collaborator call made by the orchestrator
checks its handle first, so a call can never run under a context that a
later activation has superseded. Contexts do not nest: releasing a handle
leaves no context active rather than restoring a previous one.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from .exceptions import AuthContextError, SettingsReplicatorError, wrap_azure_exception
from .subscription_config import SubscriptionContext

logger = logging.getLogger(__name__)


class ContextAuthorizer(Protocol):
    """Anything that can establish a subscription context."""

    def verify_access(self, context: SubscriptionContext) -> None: ...


@dataclass(frozen=True)
class ActiveContext:
    """Handle for one activation of a context."""

    context: SubscriptionContext
    sequence: int


class ContextSwitcher:
    """
    Serializes transitions between authorization contexts.

    Not safe for concurrent use: one switcher belongs to one replication run.
    """

    def __init__(self, authorizer: ContextAuthorizer) -> None:
        self._authorizer = authorizer
        self._active: Optional[ActiveContext] = None
        self._sequence = 0

    @property
    def active(self) -> Optional[ActiveContext]:
        return self._active

    def activate(self, context: SubscriptionContext) -> ActiveContext:
        """
        Make ``context`` the active context.

        Args:
            context: Context to establish

        Returns:
            Handle valid until the next activation or release

        Raises:
            AuthContextError: If the context cannot be established
        """
        # A failed activation must not leave the previous context usable.
        self._active = None
        try:
            self._authorizer.verify_access(context)
        except SettingsReplicatorError as e:
            if isinstance(e, AuthContextError):
                raise
            raise AuthContextError(
                f"Could not establish {context.label or 'context'} subscription "
                f"{context.masked_id()}: {e.message}",
                subscription_id=context.subscription_id,
                tenant_id=context.tenant_id,
                cause=e,
            ) from e
        except Exception as e:
            wrapped = wrap_azure_exception(
                e, context={"subscription_id": context.subscription_id}
            )
            raise AuthContextError(
                f"Could not establish {context.label or 'context'} subscription "
                f"{context.masked_id()}",
                subscription_id=context.subscription_id,
                tenant_id=context.tenant_id,
                cause=wrapped,
            ) from e

        self._sequence += 1
        self._active = ActiveContext(context=context, sequence=self._sequence)
        logger.info(
            f"Switched to {context.label or 'unlabelled'} subscription "
            f"({context.masked_id()})"
        )
        return self._active

    def ensure_active(self, handle: ActiveContext) -> SubscriptionContext:
        """
        Return the handle's context if it is still the active one.

        Raises:
            AuthContextError: If the handle was released or superseded
        """
        if self._active is None or self._active.sequence != handle.sequence:
            raise AuthContextError(
                f"Context {handle.context.masked_id()} is no longer active",
                subscription_id=handle.context.subscription_id,
                tenant_id=handle.context.tenant_id,
                recovery_suggestion="Activate the context again before calling the directory",
            )
        return handle.context

    def release(self, handle: Optional[ActiveContext] = None) -> None:
        """Clear the active context. A stale handle releases nothing."""
        if handle is not None and (
            self._active is None or self._active.sequence != handle.sequence
        ):
            return
        if self._active is not None:
            logger.debug(f"Released subscription {self._active.context.masked_id()}")
        self._active = None
