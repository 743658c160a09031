"""
Collaborator interface to the cloud control plane.

The orchestrator reaches sites only through a ResourceDirectory. Every call
names the context it runs under explicitly.

Write contract: each write is a single logical unit. Either every entry
passed in is present on the site afterwards or the call raises WriteError.
Entries are overwritten by key (settings) or name (connection strings) and
never duplicated, so repeating a write is harmless.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Mapping, Sequence

from .replication_models import ConnectionStringEntry, ResourceRef
from .subscription_config import SubscriptionContext


class WriteMode(Enum):
    """
    REPLACE: the written entries become the site's complete set.
    MERGE: written entries overwrite by key/name, other site entries are kept.
    """

    REPLACE = "replace"
    MERGE = "merge"


class ResourceDirectory(ABC):
    """Abstract access to a site's configuration."""

    @abstractmethod
    def exists(self, ref: ResourceRef, context: SubscriptionContext) -> bool:
        """Whether the site exists in the context's subscription."""

    @abstractmethod
    def read_settings(
        self, ref: ResourceRef, context: SubscriptionContext
    ) -> Mapping[str, str]:
        """Application settings in the order the platform returns them."""

    @abstractmethod
    def read_connection_strings(
        self, ref: ResourceRef, context: SubscriptionContext
    ) -> Sequence[ConnectionStringEntry]:
        """Connection strings in the order the platform returns them."""

    @abstractmethod
    def write_settings(
        self,
        ref: ResourceRef,
        context: SubscriptionContext,
        settings: Mapping[str, str],
        mode: WriteMode = WriteMode.REPLACE,
    ) -> None:
        """
        Write application settings in one batch.

        Raises:
            WriteError: On any partial or total failure
        """

    @abstractmethod
    def write_connection_strings(
        self,
        ref: ResourceRef,
        context: SubscriptionContext,
        entries: Sequence[ConnectionStringEntry],
        mode: WriteMode = WriteMode.REPLACE,
    ) -> None:
        """
        Write connection strings in one batch.

        Raises:
            WriteError: On any partial or total failure
        """
