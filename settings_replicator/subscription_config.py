"""
Subscription Context Module

Authorization contexts for the two sides of a replication run. The source and
target sites may live in different subscriptions and even different tenants,
each reached with its own service principal.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Literal, Optional

from .exceptions import ConfigurationError, InvalidInputError

logger = logging.getLogger(__name__)

ContextRole = Literal["source", "target"]


@dataclass(frozen=True)
class ServicePrincipalCredentials:
    """
    Service principal used to reach one authorization domain.

    Attributes:
        tenant_id: Azure tenant ID
        client_id: Service principal client ID
        client_secret: Service principal client secret
    """

    tenant_id: str
    client_id: str
    client_secret: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.tenant_id:
            raise ValueError("Tenant ID is required")
        if not self.client_id:
            raise ValueError("Client ID is required")
        if not self.client_secret:
            raise ValueError("Client secret is required")

    def mask_secret(self) -> str:
        """Return a safe representation for logging."""
        return f"ServicePrincipalCredentials(tenant_id={self.tenant_id}, client_id={self.client_id})"


@dataclass(frozen=True)
class SubscriptionContext:
    """
    An authorization scope under which remote operations run.

    Two contexts are equal when they name the same subscription in the same
    tenant; the attached credentials never take part in comparison.

    Attributes:
        subscription_id: Azure subscription ID
        tenant_id: Optional tenant ID (taken from credentials when omitted)
        label: "source" or "target", used for logging
        credentials: Optional service principal; the DefaultAzureCredential
            chain is used when absent
    """

    subscription_id: str
    tenant_id: Optional[str] = None
    label: str = field(default="", compare=False)
    credentials: Optional[ServicePrincipalCredentials] = field(
        default=None, compare=False, repr=False
    )

    def __post_init__(self) -> None:
        if not self.subscription_id or not self.subscription_id.strip():
            raise InvalidInputError(
                "Subscription ID is required", field=f"{self.label or 'context'}.subscription_id"
            )
        if self.tenant_id is None and self.credentials is not None:
            object.__setattr__(self, "tenant_id", self.credentials.tenant_id)

    @property
    def id(self) -> str:
        return self.subscription_id

    def masked_id(self) -> str:
        """Subscription ID shortened for log output."""
        sub = self.subscription_id
        return sub[:8] + "..." if len(sub) > 8 else sub


def create_subscription_context_from_env(
    role: ContextRole,
    subscription_id: str,
    tenant_id: Optional[str] = None,
) -> SubscriptionContext:
    """
    Build the context for one side of a run from environment variables.

    A dedicated service principal is used when all of
    AZURE_{ROLE}_TENANT_ID, AZURE_{ROLE}_TENANT_CLIENT_ID and
    AZURE_{ROLE}_TENANT_CLIENT_SECRET are set. When only some of them are set
    the configuration is rejected. With none set the ambient credential chain
    (az login, managed identity, AZURE_CLIENT_* variables) is used.

    Args:
        role: "source" or "target"
        subscription_id: Subscription holding the site
        tenant_id: Explicit tenant ID, overrides the environment

    Returns:
        SubscriptionContext for the role

    Raises:
        ConfigurationError: If the service principal variables are incomplete
    """
    prefix = f"AZURE_{role.upper()}_TENANT"
    env_tenant_id = os.getenv(f"{prefix}_ID")
    client_id = os.getenv(f"{prefix}_CLIENT_ID")
    client_secret = os.getenv(f"{prefix}_CLIENT_SECRET")

    tenant_id = tenant_id or env_tenant_id
    provided = [v for v in (client_id, client_secret) if v]

    credentials: Optional[ServicePrincipalCredentials] = None
    if len(provided) == 2:
        if not tenant_id:
            raise ConfigurationError(
                f"{prefix}_ID is required when a {role} service principal is configured",
                config_key=f"{prefix}_ID",
            )
        credentials = ServicePrincipalCredentials(
            tenant_id=tenant_id,
            client_id=client_id,  # type: ignore[arg-type]
            client_secret=client_secret,  # type: ignore[arg-type]
        )
        logger.debug(f"Using {credentials.mask_secret()} for {role} context")
    elif provided:
        raise ConfigurationError(
            f"Incomplete {role} service principal. Set both "
            f"{prefix}_CLIENT_ID and {prefix}_CLIENT_SECRET, or neither",
            config_key=prefix,
        )
    else:
        logger.debug(f"No {role} service principal configured, using ambient credential")

    return SubscriptionContext(
        subscription_id=subscription_id,
        tenant_id=tenant_id,
        label=role,
        credentials=credentials,
    )
