"""
Contract session: a deployed contract bound to an acting identity
"""
from typing import Any, Optional

from profile_sharing.core.config import get_settings
from profile_sharing.core.errors import CallFailed, SessionBindFailed
from profile_sharing.core.logging_config import LoggingConfig
from profile_sharing.core.pxe_client import LedgerClient, RpcError
from profile_sharing.core.tracing import add_span_attributes, get_tracer
from profile_sharing.models.contract import (ContractArtifact, ContractFunction,
                                             Identity, TxReceipt)

logger = LoggingConfig.get_logger(__name__)
tracer = get_tracer(__name__)


class SentTx:
    """
    A submitted transaction.

    Submission is not proof of effect; only wait() returning a successful
    receipt is.
    """

    def __init__(self, session: "ContractSession", method: str, tx_hash: str):
        self.session = session
        self.method = method
        self.tx_hash = tx_hash
        self.receipt: Optional[TxReceipt] = None

    async def wait(self, timeout: Optional[float] = None) -> TxReceipt:
        """
        Block until the transaction is mined.

        Raises:
            CallFailed: the transaction was reverted or dropped
            LedgerTimeout: still pending after timeout seconds
        """
        if self.receipt is not None:
            return self.receipt

        session = self.session
        with tracer.start_as_current_span("tx.wait"):
            add_span_attributes(tx_hash=self.tx_hash, method=self.method)
            try:
                receipt = await session.client.wait_for_tx(
                    self.tx_hash,
                    timeout if timeout is not None else session.tx_timeout,
                    session.poll_interval
                )
            except RpcError as e:
                raise CallFailed(
                    f"Could not confirm {self.method} tx {self.tx_hash}: {e}",
                    contract_name=session.contract_name,
                    operation=self.method
                ) from e

        if not receipt.is_success:
            raise CallFailed(
                f"{self.method} tx {self.tx_hash} ended with status {receipt.status.value}"
                + (f": {receipt.error}" if receipt.error else ""),
                contract_name=session.contract_name,
                operation=self.method,
                metadata={"tx_hash": self.tx_hash, "status": receipt.status.value}
            )
        logger.info(f"{self.method} confirmed in block {receipt.block_number} (tx {self.tx_hash})")
        self.receipt = receipt
        return receipt


class ContractSession:
    """Calls on one deployed contract, sent as one identity"""

    def __init__(
        self,
        client: LedgerClient,
        address: str,
        artifact: ContractArtifact,
        identity: Identity,
        contract_name: Optional[str] = None,
        tx_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None
    ):
        settings = get_settings()
        self.client = client
        self.address = address
        self.artifact = artifact
        self.identity = identity
        self.contract_name = contract_name or artifact.name
        self.tx_timeout = tx_timeout if tx_timeout is not None else settings.tx_timeout_seconds
        self.poll_interval = poll_interval if poll_interval is not None else settings.pxe_poll_interval_seconds

    @classmethod
    async def open(
        cls,
        client: LedgerClient,
        address: str,
        artifact: ContractArtifact,
        identity: Identity,
        contract_name: Optional[str] = None,
        **kwargs
    ) -> "ContractSession":
        """
        Resolve the contract at address and bind it to identity.

        Raises:
            SessionBindFailed: nothing is deployed at address, or the node
                reports a different contract than artifact
        """
        name = contract_name or artifact.name
        with tracer.start_as_current_span("session.open"):
            add_span_attributes(contract=name, address=address, identity=identity.address)
            try:
                metadata = await client.get_contract_metadata(address)
            except RpcError as e:
                raise SessionBindFailed(
                    f"Cannot resolve contract at {address}: {e}",
                    contract_name=name,
                    operation="open_session"
                ) from e

        if not metadata.deployed:
            raise SessionBindFailed(
                f"No contract is deployed at {address}",
                contract_name=name,
                operation="open_session"
            )
        if metadata.contract_name and metadata.contract_name != artifact.name:
            raise SessionBindFailed(
                f"Contract at {address} is {metadata.contract_name}, not {artifact.name}",
                contract_name=name,
                operation="open_session"
            )
        if metadata.artifact_hash and metadata.artifact_hash.lower() != artifact.fingerprint().lower():
            raise SessionBindFailed(
                f"Artifact for {artifact.name} does not match the code deployed at {address}",
                contract_name=name,
                operation="open_session",
                metadata={"deployed_hash": metadata.artifact_hash, "local_hash": artifact.fingerprint()}
            )

        logger.debug(f"Session opened on {artifact.name} at {address} as {identity}")
        return cls(client, address, artifact, identity, contract_name=name, **kwargs)

    def with_identity(self, identity: Identity) -> "ContractSession":
        """Same contract, different sender; no extra round trip"""
        return ContractSession(
            self.client,
            self.address,
            self.artifact,
            identity,
            contract_name=self.contract_name,
            tx_timeout=self.tx_timeout,
            poll_interval=self.poll_interval
        )

    def _check_call(self, method: str, args: tuple) -> ContractFunction:
        function = self.artifact.get_function(method)
        if function is None:
            raise SessionBindFailed(
                f"{self.artifact.name} has no method '{method}'",
                contract_name=self.contract_name,
                operation=method
            )
        if function.arity != len(args):
            raise CallFailed(
                f"{method} takes {function.arity} argument(s), got {len(args)}",
                contract_name=self.contract_name,
                operation=method
            )
        return function

    async def simulate(self, method: str, *args: Any) -> Any:
        """
        Read-only call; one round trip, no state change.

        Raises:
            CallFailed: the contract rejected the call
        """
        self._check_call(method, args)
        with tracer.start_as_current_span("session.simulate"):
            add_span_attributes(method=method, sender=self.identity.address)
            try:
                result = await self.client.simulate(self.address, method, list(args), self.identity)
            except RpcError as e:
                raise CallFailed(
                    f"Simulation of {method} as {self.identity} rejected: {e}",
                    contract_name=self.contract_name,
                    operation=method,
                    metadata={"rpc_code": e.code}
                ) from e
        logger.debug(f"Simulated {method} as {self.identity}")
        return result

    async def send(self, method: str, *args: Any) -> SentTx:
        """
        Submit a state-changing call. The caller must wait() on the result.

        Raises:
            CallFailed: the node rejected the transaction
        """
        self._check_call(method, args)
        with tracer.start_as_current_span("session.send"):
            add_span_attributes(method=method, sender=self.identity.address)
            try:
                tx_hash = await self.client.send_tx(self.address, method, list(args), self.identity)
            except RpcError as e:
                raise CallFailed(
                    f"Transaction {method} as {self.identity} rejected: {e}",
                    contract_name=self.contract_name,
                    operation=method,
                    metadata={"rpc_code": e.code}
                ) from e
        logger.info(f"Sent {method} as {self.identity} (tx {tx_hash})")
        return SentTx(self, method, tx_hash)
