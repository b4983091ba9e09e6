"""
Deploy-once coordination backed by the address book
"""
from typing import Optional

from profile_sharing.core.config import get_settings
from profile_sharing.core.errors import DeploymentFailed, ProfileSharingError
from profile_sharing.core.logging_config import LoggingConfig
from profile_sharing.core.pxe_client import LedgerClient, RpcError
from profile_sharing.core.tracing import add_span_attributes, get_tracer
from profile_sharing.models.contract import ContractArtifact, Identity
from profile_sharing.models.field import FieldValue
from profile_sharing.services.address_store import AddressStore
from profile_sharing.services.field_codec import random_field

logger = LoggingConfig.get_logger(__name__)


class DeploymentCoordinator:
    """
    Decides between reusing a cached deployment and deploying a new one.

    GUARANTEES:
    - A cached address is returned without any network call
    - The address book is written only after the deployment is mined
    - No retries; failures propagate to the caller
    """

    def __init__(
        self,
        client: LedgerClient,
        store: AddressStore,
        tx_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None
    ):
        settings = get_settings()
        self.client = client
        self.store = store
        self.tx_timeout = tx_timeout if tx_timeout is not None else settings.tx_timeout_seconds
        self.poll_interval = poll_interval if poll_interval is not None else settings.pxe_poll_interval_seconds
        self.tracer = get_tracer(__name__)

    async def ensure_deployed(
        self,
        contract_name: str,
        artifact: ContractArtifact,
        deployer: Identity,
        force: bool = False,
        salt: Optional[FieldValue] = None
    ) -> str:
        """
        Return the address of contract_name, deploying it if it is not cached.

        Args:
            contract_name: Address book key
            artifact: Compiled contract to deploy
            deployer: Identity that sends the deployment
            force: Deploy even if an address is cached, replacing it once mined
            salt: Address salt (random if not given)

        Returns:
            Contract address

        Raises:
            CacheCorrupt: the address book cannot be read
            DeploymentFailed: the deploy request was rejected or did not succeed
            LedgerTimeout: the deployment was not mined in time (outcome unknown)
        """
        saved_context = LoggingConfig.get_context()
        LoggingConfig.set_context(contract=contract_name, operation="deploy")
        try:
            # Read the whole book first so a corrupt file fails before any deploy
            book = self.store.load()
            if not force:
                cached = book.get(contract_name)
                if cached is not None:
                    logger.info(f"Using cached {artifact.name} at {cached}")
                    return cached
            else:
                logger.info(f"Forced redeploy of {contract_name} requested")

            with self.tracer.start_as_current_span("deploy"):
                add_span_attributes(contract=contract_name, deployer=deployer.address)
                address = await self._deploy(contract_name, artifact, deployer, salt or random_field())

            self.store.save(contract_name, address)
            logger.info(f"{artifact.name} deployed at {address}")
            return address
        except ProfileSharingError as e:
            raise e.with_context(contract_name=contract_name, operation="deploy")
        finally:
            LoggingConfig.clear_context()
            if saved_context:
                LoggingConfig.set_context(**saved_context)

    async def _deploy(
        self,
        contract_name: str,
        artifact: ContractArtifact,
        deployer: Identity,
        salt: FieldValue
    ) -> str:
        logger.info(f"Deploying {artifact.name} from {deployer.address}")
        try:
            deployed = await self.client.deploy_contract(artifact, deployer, [], salt)
            logger.info(f"Deployment tx {deployed.tx_hash} sent for {deployed.address}, waiting for confirmation")
            receipt = await self.client.wait_for_tx(deployed.tx_hash, self.tx_timeout, self.poll_interval)
        except RpcError as e:
            raise DeploymentFailed(
                f"Deployment of {artifact.name} failed: {e}",
                contract_name=contract_name,
                operation="deploy",
                metadata={"rpc_code": e.code}
            ) from e

        if not receipt.is_success:
            raise DeploymentFailed(
                f"Deployment tx {receipt.tx_hash} ended with status {receipt.status.value}"
                + (f": {receipt.error}" if receipt.error else ""),
                contract_name=contract_name,
                operation="deploy",
                metadata={"tx_hash": receipt.tx_hash, "status": receipt.status.value}
            )
        if receipt.contract_address and receipt.contract_address.lower() != deployed.address.lower():
            raise DeploymentFailed(
                f"Receipt reports address {receipt.contract_address}, expected {deployed.address}",
                contract_name=contract_name,
                operation="deploy",
                metadata={"tx_hash": receipt.tx_hash}
            )
        return deployed.address
