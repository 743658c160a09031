"""
Azure App Service implementation of ResourceDirectory.

Talks to Microsoft.Web/sites through WebSiteManagementClient. One client is
kept per (subscription, tenant) pair and built from that context's
credential, so source and target calls never share an identity by accident.
"""

import logging
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from azure.core.exceptions import (
    AzureError,
    ResourceNotFoundError as AzureResourceNotFoundError,
)
from azure.mgmt.web import WebSiteManagementClient
from azure.mgmt.web.models import (
    ConnectionStringDictionary,
    ConnStringValueTypePair,
    StringDictionary,
)

from .credential_provider import SubscriptionCredentialProvider
from .exceptions import WriteError, wrap_azure_exception
from .replication_models import ConnectionStringEntry, ResourceRef
from .resource_directory import ResourceDirectory, WriteMode
from .subscription_config import SubscriptionContext
from .timeout_config import Timeouts

logger = logging.getLogger(__name__)


def _type_tag(value: Any) -> str:
    # The SDK may hand back a ConnectionStringType member or a plain string.
    if value is None:
        return ""
    return str(getattr(value, "value", value))


class AzureWebAppDirectory(ResourceDirectory):
    """
    ResourceDirectory backed by the Azure Resource Manager web API.

    Example:
        directory = AzureWebAppDirectory(SubscriptionCredentialProvider())
        if directory.exists(ResourceRef("my-func", "my-rg"), context):
            settings = directory.read_settings(ResourceRef("my-func", "my-rg"), context)
    """

    def __init__(self, credential_provider: SubscriptionCredentialProvider) -> None:
        self._credential_provider = credential_provider
        self._clients: Dict[Tuple[str, Any], WebSiteManagementClient] = {}

    def _client(self, context: SubscriptionContext) -> WebSiteManagementClient:
        key = (context.subscription_id, context.tenant_id)
        if key not in self._clients:
            logger.debug(f"Creating web client for subscription {context.masked_id()}")
            self._clients[key] = WebSiteManagementClient(
                self._credential_provider.get_credential(context),
                context.subscription_id,
            )
        return self._clients[key]

    def exists(self, ref: ResourceRef, context: SubscriptionContext) -> bool:
        try:
            self._client(context).web_apps.get(
                resource_group_name=ref.resource_group,
                name=ref.name,
                **Timeouts.request_kwargs(),
            )
        except AzureResourceNotFoundError:
            logger.debug(f"Site {ref} not found in {context.masked_id()}")
            return False
        except AzureError as e:
            raise wrap_azure_exception(
                e, context={"resource": str(ref), "subscription_id": context.subscription_id}
            ) from e
        return True

    def read_settings(
        self, ref: ResourceRef, context: SubscriptionContext
    ) -> Mapping[str, str]:
        try:
            result = self._client(context).web_apps.list_application_settings(
                resource_group_name=ref.resource_group,
                name=ref.name,
                **Timeouts.request_kwargs(),
            )
        except AzureError as e:
            raise wrap_azure_exception(
                e, context={"resource": str(ref), "facet": "settings"}
            ) from e
        settings = dict(result.properties or {})
        logger.debug(f"Read {len(settings)} application settings from {ref}")
        return settings

    def read_connection_strings(
        self, ref: ResourceRef, context: SubscriptionContext
    ) -> Sequence[ConnectionStringEntry]:
        try:
            result = self._client(context).web_apps.list_connection_strings(
                resource_group_name=ref.resource_group,
                name=ref.name,
                **Timeouts.request_kwargs(),
            )
        except AzureError as e:
            raise wrap_azure_exception(
                e, context={"resource": str(ref), "facet": "connection_strings"}
            ) from e
        entries = [
            ConnectionStringEntry(
                name=name, type=_type_tag(pair.type), value=pair.value or ""
            )
            for name, pair in (result.properties or {}).items()
        ]
        logger.debug(f"Read {len(entries)} connection strings from {ref}")
        return entries

    def write_settings(
        self,
        ref: ResourceRef,
        context: SubscriptionContext,
        settings: Mapping[str, str],
        mode: WriteMode = WriteMode.REPLACE,
    ) -> None:
        client = self._client(context)
        try:
            payload: Dict[str, str] = {}
            if mode is WriteMode.MERGE:
                current = client.web_apps.list_application_settings(
                    resource_group_name=ref.resource_group,
                    name=ref.name,
                    **Timeouts.request_kwargs(),
                )
                payload.update(current.properties or {})
            payload.update(settings)

            client.web_apps.update_application_settings(
                resource_group_name=ref.resource_group,
                name=ref.name,
                app_settings=StringDictionary(properties=payload),
                **Timeouts.request_kwargs(),
            )
        except AzureError as e:
            raise WriteError(
                f"Failed to write application settings to {ref}: {e}",
                facet="settings",
                context={"resource": str(ref), "mode": mode.value},
                cause=e,
            ) from e
        logger.info(
            f"Wrote {len(settings)} application settings to {ref} ({mode.value})"
        )

    def write_connection_strings(
        self,
        ref: ResourceRef,
        context: SubscriptionContext,
        entries: Sequence[ConnectionStringEntry],
        mode: WriteMode = WriteMode.REPLACE,
    ) -> None:
        client = self._client(context)
        try:
            payload: Dict[str, ConnStringValueTypePair] = {}
            if mode is WriteMode.MERGE:
                current = client.web_apps.list_connection_strings(
                    resource_group_name=ref.resource_group,
                    name=ref.name,
                    **Timeouts.request_kwargs(),
                )
                payload.update(current.properties or {})
            for entry in entries:
                payload[entry.name] = ConnStringValueTypePair(
                    value=entry.value, type=entry.type
                )

            client.web_apps.update_connection_strings(
                resource_group_name=ref.resource_group,
                name=ref.name,
                connection_strings=ConnectionStringDictionary(properties=payload),
                **Timeouts.request_kwargs(),
            )
        except AzureError as e:
            raise WriteError(
                f"Failed to write connection strings to {ref}: {e}",
                facet="connection_strings",
                context={"resource": str(ref), "mode": mode.value},
                cause=e,
            ) from e
        names: List[str] = [entry.name for entry in entries]
        logger.info(
            f"Wrote {len(names)} connection strings to {ref} ({mode.value}): {', '.join(names)}"
        )
