"""
Credential Provider Module

Selects and caches the Azure credential for each authorization context and
verifies that a context can actually be established before anything runs
under it.
"""

import logging
from typing import Dict, Optional, Tuple

from azure.core.credentials import TokenCredential
from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError as AzureResourceNotFoundError,
)
from azure.identity import ClientSecretCredential, DefaultAzureCredential
from azure.mgmt.subscription import SubscriptionClient

from .exceptions import AuthContextError
from .subscription_config import SubscriptionContext
from .timeout_config import Timeouts

logger = logging.getLogger(__name__)

_CacheKey = Tuple[Optional[str], Optional[str]]


def _cache_key(context: SubscriptionContext) -> _CacheKey:
    creds = context.credentials
    return (context.tenant_id, creds.client_id if creds else None)


class SubscriptionCredentialProvider:
    """
    Provides credentials per subscription context.

    Contexts with a service principal get a ClientSecretCredential for that
    principal. Contexts without one use a DefaultAzureCredential that is also
    allowed to request tokens for the context's tenant when a tenant is known.

    Attributes:
        _credential_cache: Credentials keyed by (tenant_id, client_id)
        _subscription_clients: SubscriptionClient per cached credential
    """

    def __init__(self) -> None:
        self._credential_cache: Dict[_CacheKey, TokenCredential] = {}
        self._subscription_clients: Dict[_CacheKey, SubscriptionClient] = {}

    def get_credential(self, context: SubscriptionContext) -> TokenCredential:
        """
        Get the credential for a context, creating it on first use.

        Args:
            context: Context to get a credential for

        Returns:
            Azure token credential
        """
        creds = context.credentials
        key = _cache_key(context)

        if key not in self._credential_cache:
            if creds is not None:
                logger.debug(
                    f"Creating service principal credential for {context.label or 'context'} "
                    f"({creds.mask_secret()})"
                )
                credential: TokenCredential = ClientSecretCredential(
                    tenant_id=creds.tenant_id,
                    client_id=creds.client_id,
                    client_secret=creds.client_secret,
                )
            elif context.tenant_id:
                logger.debug(
                    f"Creating ambient credential for tenant {context.tenant_id}"
                )
                credential = DefaultAzureCredential(
                    additionally_allowed_tenants=[context.tenant_id]
                )
            else:
                logger.debug("Creating ambient credential")
                credential = DefaultAzureCredential()
            self._credential_cache[key] = credential

        return self._credential_cache[key]

    def _subscription_client(self, context: SubscriptionContext) -> SubscriptionClient:
        key = _cache_key(context)
        if key not in self._subscription_clients:
            self._subscription_clients[key] = SubscriptionClient(self.get_credential(context))
        return self._subscription_clients[key]

    def verify_access(self, context: SubscriptionContext) -> None:
        """
        Confirm the context's credential can see its subscription.

        Args:
            context: Context to establish

        Raises:
            AuthContextError: If the credential cannot authenticate, the
                subscription is unknown, or it belongs to another tenant
        """
        client = self._subscription_client(context)

        try:
            subscription = client.subscriptions.get(
                context.subscription_id, **Timeouts.request_kwargs()
            )
        except ClientAuthenticationError as e:
            raise AuthContextError(
                f"Could not authenticate for subscription {context.masked_id()}",
                subscription_id=context.subscription_id,
                tenant_id=context.tenant_id,
                cause=e,
            ) from e
        except AzureResourceNotFoundError as e:
            raise AuthContextError(
                f"Subscription {context.masked_id()} is unknown or not visible to this identity",
                subscription_id=context.subscription_id,
                tenant_id=context.tenant_id,
                cause=e,
            ) from e
        except HttpResponseError as e:
            raise AuthContextError(
                f"Access check failed for subscription {context.masked_id()}: {e.message}",
                subscription_id=context.subscription_id,
                tenant_id=context.tenant_id,
                cause=e,
            ) from e

        actual_tenant = getattr(subscription, "tenant_id", None)
        if context.tenant_id and actual_tenant and actual_tenant != context.tenant_id:
            raise AuthContextError(
                f"Subscription {context.masked_id()} belongs to tenant {actual_tenant}, "
                f"not {context.tenant_id}",
                subscription_id=context.subscription_id,
                tenant_id=context.tenant_id,
            )

        state = getattr(subscription, "state", None)
        logger.debug(
            f"Subscription {context.masked_id()} reachable (state={state})"
        )

    def clear_cache(self) -> None:
        """Clear credential cache. Useful for testing or credential refresh."""
        logger.debug("Clearing credential cache")
        self._credential_cache.clear()
        self._subscription_clients.clear()
