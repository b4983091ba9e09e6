"""
PXE JSON-RPC client used for deploy, send and simulate round trips

The pxe_* methods and their payloads target a JSON-RPC gateway in front of the
PXE. They are not the PXE's native interface; a different node needs its own
LedgerClient.
"""
import asyncio
import itertools
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from profile_sharing.core.config import get_settings
from profile_sharing.core.errors import LedgerTimeout, NodeUnavailable
from profile_sharing.core.logging_config import LoggingConfig
from profile_sharing.models.contract import (ContractArtifact, ContractMetadata,
                                             DeployedTx, Identity, NodeInfo,
                                             TxReceipt)
from profile_sharing.models.field import FieldValue

logger = LoggingConfig.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class RpcError(Exception):
    """Error returned by the PXE or raised by the HTTP transport"""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.code is not None:
            return f"[{self.code}] {self.message}"
        return self.message


def serialize_arg(arg: Any) -> Any:
    """Convert a call argument into its JSON wire form"""
    if isinstance(arg, FieldValue):
        return arg.to_hex()
    if isinstance(arg, Identity):
        return arg.address
    if isinstance(arg, (list, tuple)):
        return [serialize_arg(a) for a in arg]
    if arg is None or isinstance(arg, (bool, int, str)):
        return arg
    raise TypeError(f"Unsupported argument type: {type(arg).__name__}")


class LedgerClient(ABC):
    """
    Network client interface the services depend on.

    GUARANTEES:
    - Every method is a single blocking round trip except the wait_* pollers
    - Contract-level rejections surface as RpcError
    - Bounded waits surface as LedgerTimeout
    """

    @abstractmethod
    async def get_node_info(self) -> NodeInfo:
        pass

    @abstractmethod
    async def get_test_accounts(self) -> List[Identity]:
        """Pre-provisioned accounts in their canonical order"""
        pass

    @abstractmethod
    async def deploy_contract(
        self,
        artifact: ContractArtifact,
        deployer: Identity,
        args: Sequence[Any],
        salt: FieldValue
    ) -> DeployedTx:
        pass

    @abstractmethod
    async def send_tx(
        self,
        address: str,
        method: str,
        args: Sequence[Any],
        sender: Identity
    ) -> str:
        """Submit a state-changing call and return its tx hash"""
        pass

    @abstractmethod
    async def get_tx_receipt(self, tx_hash: str) -> TxReceipt:
        pass

    @abstractmethod
    async def simulate(
        self,
        address: str,
        method: str,
        args: Sequence[Any],
        sender: Identity
    ) -> Any:
        pass

    @abstractmethod
    async def get_contract_metadata(self, address: str) -> ContractMetadata:
        pass

    async def close(self):
        """Release transport resources"""
        return None

    async def wait_until_ready(self, timeout: float, interval: float) -> NodeInfo:
        """
        Poll get_node_info until it answers.

        Raises:
            NodeUnavailable: the node did not answer within timeout seconds
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        attempt = 0
        while True:
            attempt += 1
            try:
                info = await self.get_node_info()
                logger.info(f"PXE ready (node {info.node_version}) after {attempt} attempt(s)")
                return info
            except (RpcError, LedgerTimeout) as e:
                if loop.time() + interval > deadline:
                    raise NodeUnavailable(
                        f"PXE did not become ready within {timeout:.0f}s: {e}",
                        operation="wait_until_ready",
                        metadata={"attempts": attempt}
                    ) from e
                logger.debug(f"PXE not ready yet (attempt {attempt}): {e}")
                await asyncio.sleep(interval)

    async def wait_for_tx(self, tx_hash: str, timeout: float, interval: float) -> TxReceipt:
        """
        Poll the receipt until the transaction leaves the pending state.

        Returns the terminal receipt whatever its status; callers decide what a
        revert means for their operation.

        Raises:
            LedgerTimeout: still pending after timeout seconds
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            receipt = await self.get_tx_receipt(tx_hash)
            if not receipt.is_pending:
                logger.debug(f"Tx {tx_hash} reached status {receipt.status.value}")
                return receipt
            if loop.time() + interval > deadline:
                raise LedgerTimeout(
                    f"Transaction {tx_hash} still pending after {timeout:.0f}s",
                    operation="wait_for_tx",
                    metadata={"tx_hash": tx_hash}
                )
            await asyncio.sleep(interval)


class PXEClient(LedgerClient):
    """JSON-RPC 2.0 client for a PXE endpoint"""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        settings = get_settings()
        self.url = (url or settings.pxe_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.pxe_request_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._ids = itertools.count(1)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.url,
                timeout=self.timeout,
                transport=self._transport,
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            )
        return self._client

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Perform one JSON-RPC round trip.

        Raises:
            RpcError: transport failure, HTTP error status or JSON-RPC error object
            LedgerTimeout: the request timed out
        """
        request_id = next(self._ids)
        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or []}
        logger.debug(f"-> {method} id={request_id}")

        try:
            response = await self._get_client().post("/", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise LedgerTimeout(
                f"Request {method} to {self.url} timed out after {self.timeout:.0f}s",
                operation=method
            ) from e
        except httpx.HTTPStatusError as e:
            raise RpcError(
                f"HTTP error from {self.url}: {e.response.status_code} - {e.response.text}",
                code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise RpcError(f"Error calling PXE at {self.url}: {e}") from e
        except ValueError as e:
            raise RpcError(f"Invalid JSON from {self.url} for {method}: {e}") from e

        if not isinstance(data, dict):
            raise RpcError(f"Malformed JSON-RPC response for {method}")
        if data.get("error"):
            error = data["error"]
            if isinstance(error, dict):
                raise RpcError(
                    str(error.get("message", "unknown error")),
                    code=error.get("code"),
                    data=error.get("data")
                )
            raise RpcError(str(error))
        if "result" not in data:
            raise RpcError(f"JSON-RPC response for {method} has no result")
        return data["result"]

    @staticmethod
    def _parse(model: Type[M], method: str, result: Any) -> M:
        try:
            return model.model_validate(result)
        except ValidationError as e:
            raise RpcError(f"Unexpected {method} result: {e.error_count()} validation error(s)", data=str(e)) from e

    async def get_node_info(self) -> NodeInfo:
        return self._parse(NodeInfo, "pxe_getNodeInfo", await self.call("pxe_getNodeInfo"))

    async def get_test_accounts(self) -> List[Identity]:
        result = await self.call("pxe_getRegisteredAccounts")
        if not isinstance(result, list):
            raise RpcError("pxe_getRegisteredAccounts did not return a list")
        accounts = []
        for index, entry in enumerate(result):
            address = entry.get("address") if isinstance(entry, dict) else entry
            accounts.append(self._parse(
                Identity,
                "pxe_getRegisteredAccounts",
                {"address": address, "alias": f"account{index}"}
            ))
        return accounts

    async def deploy_contract(
        self,
        artifact: ContractArtifact,
        deployer: Identity,
        args: Sequence[Any],
        salt: FieldValue
    ) -> DeployedTx:
        result = await self.call("pxe_deployContract", [{
            "artifact": artifact.to_wire(),
            "deployer": deployer.address,
            "args": [serialize_arg(a) for a in args],
            "contractAddressSalt": salt.to_hex(),
        }])
        return self._parse(DeployedTx, "pxe_deployContract", result)

    async def send_tx(
        self,
        address: str,
        method: str,
        args: Sequence[Any],
        sender: Identity
    ) -> str:
        result = await self.call("pxe_sendTx", [{
            "contractAddress": address,
            "method": method,
            "args": [serialize_arg(a) for a in args],
            "from": sender.address,
        }])
        tx_hash = result.get("txHash") if isinstance(result, dict) else result
        if not isinstance(tx_hash, str) or not tx_hash:
            raise RpcError(f"pxe_sendTx for {method} returned no tx hash")
        return tx_hash

    async def get_tx_receipt(self, tx_hash: str) -> TxReceipt:
        return self._parse(TxReceipt, "pxe_getTxReceipt", await self.call("pxe_getTxReceipt", [tx_hash]))

    async def simulate(
        self,
        address: str,
        method: str,
        args: Sequence[Any],
        sender: Identity
    ) -> Any:
        return await self.call("pxe_simulateUtility", [{
            "contractAddress": address,
            "method": method,
            "args": [serialize_arg(a) for a in args],
            "from": sender.address,
        }])

    async def get_contract_metadata(self, address: str) -> ContractMetadata:
        return self._parse(
            ContractMetadata,
            "pxe_getContractMetadata",
            await self.call("pxe_getContractMetadata", [address])
        )

    async def close(self):
        """Close the HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Global client instance
_pxe_client: Optional[PXEClient] = None


def get_pxe_client() -> PXEClient:
    """Get global PXE client instance"""
    global _pxe_client
    if _pxe_client is None:
        _pxe_client = PXEClient()
    return _pxe_client


def reset_pxe_client():
    """Drop the global instance (the caller is responsible for closing it)"""
    global _pxe_client
    _pxe_client = None
