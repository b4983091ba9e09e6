"""
Resolve named roles to acting identities
"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional

from profile_sharing.core.config import get_settings
from profile_sharing.core.errors import IdentityUnavailable
from profile_sharing.core.logging_config import LoggingConfig
from profile_sharing.core.pxe_client import LedgerClient
from profile_sharing.models.contract import Identity

logger = LoggingConfig.get_logger(__name__)


class Role(str, Enum):
    """Roles an identity can play in a profile exchange"""
    OWNER = "owner"  # deploys and owns the profile
    RECIPIENT = "recipient"  # receives a pushed profile


class IdentityProvider(ABC):

    @abstractmethod
    async def resolve(self, role: Role) -> Identity:
        """
        Raises:
            IdentityUnavailable: no identity can play the role
        """
        pass


class StaticIdentityProvider(IdentityProvider):
    """Fixed role assignment"""

    def __init__(self, identities: Dict[Role, Identity]):
        self._identities = dict(identities)

    async def resolve(self, role: Role) -> Identity:
        identity = self._identities.get(Role(role))
        if identity is None:
            raise IdentityUnavailable(f"No identity configured for role '{Role(role).value}'", operation="resolve_identity")
        return identity


class TestAccountIdentityProvider(IdentityProvider):
    """
    Maps roles onto the PXE's pre-funded test accounts by configured position.

    Accounts are fetched once and reused for the lifetime of the provider.
    """

    __test__ = False

    def __init__(self, client: LedgerClient, role_indices: Optional[Dict[Role, int]] = None):
        self.client = client
        if role_indices is None:
            settings = get_settings()
            role_indices = {
                Role.OWNER: settings.owner_account_index,
                Role.RECIPIENT: settings.recipient_account_index,
            }
        self.role_indices = dict(role_indices)
        self._accounts: Optional[List[Identity]] = None

    async def accounts(self) -> List[Identity]:
        if self._accounts is None:
            self._accounts = await self.client.get_test_accounts()
            logger.debug(f"Fetched {len(self._accounts)} test account(s)")
        return self._accounts

    async def resolve(self, role: Role) -> Identity:
        role = Role(role)
        index = self.role_indices.get(role)
        if index is None:
            raise IdentityUnavailable(f"No account position configured for role '{role.value}'", operation="resolve_identity")

        accounts = await self.accounts()
        if index >= len(accounts):
            raise IdentityUnavailable(
                f"Role '{role.value}' needs test account #{index} but the PXE has {len(accounts)}",
                operation="resolve_identity",
                metadata={"available": len(accounts)}
            )
        identity = accounts[index]
        return Identity(address=identity.address, alias=role.value)
