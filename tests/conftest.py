"""
Pytest configuration and fixtures
"""
import copy
import hashlib
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

# Ensure project root is importable when running without an install
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Do not talk to a real PXE unless explicitly enabled
os.environ.setdefault("RUN_PXE_TESTS", "0")

from profile_sharing.core.pxe_client import LedgerClient, RpcError, serialize_arg
from profile_sharing.models.contract import (ContractArtifact, ContractMetadata,
                                             DeployedTx, Identity, NodeInfo,
                                             TxReceipt, TxStatus)
from profile_sharing.models.field import FieldValue
from profile_sharing.services.address_store import AddressStore, MemoryStorageBackend
from profile_sharing.services.artifact_loader import parse_artifact

OWNER_ADDRESS = "0x" + "0a" * 32
RECIPIENT_ADDRESS = "0x" + "0b" * 32
STRANGER_ADDRESS = "0x" + "0c" * 32


def _param(name: str, kind: str = "field") -> Dict[str, Any]:
    return {"name": name, "type": {"kind": kind}, "visibility": "private"}


ARTIFACT_DATA: Dict[str, Any] = {
    "name": "ProfileSharing",
    "noir_version": "1.0.0-beta.3",
    "functions": [
        {
            "name": "constructor",
            "custom_attributes": ["private", "initializer"],
            "abi": {"parameters": []},
        },
        {
            "name": "create_profile",
            "custom_attributes": ["private"],
            "abi": {"parameters": [
                _param("name"), _param("bio"), _param("age", "integer"), _param("nonce"),
            ]},
        },
        {
            "name": "share_profile",
            "custom_attributes": ["private"],
            "abi": {"parameters": [
                _param("recipient", "struct"), _param("name"), _param("bio"),
                _param("age", "integer"), _param("nonce"),
            ]},
        },
        {
            "name": "get_profile",
            "is_unconstrained": True,
            "custom_attributes": ["utility"],
            "abi": {"parameters": [_param("owner", "struct")]},
        },
    ],
}


class FakeLedgerClient(LedgerClient):
    """
    In-memory PXE double with the ProfileSharing contract's observable behaviour.

    - create_profile stores a record keyed by the sender
    - share_profile stores a copy readable by the named recipient and rejects
      the sender as recipient
    - get_profile returns the caller's own record or one shared with the caller
    """

    def __init__(self, accounts: Sequence[Identity]):
        self.accounts = list(accounts)
        self.calls: List[Tuple[str, Any]] = []
        self.deploy_calls = 0
        self.node_failures = 0
        self.deploy_error: Optional[RpcError] = None
        self.deploy_status = TxStatus.SUCCESS
        self.send_status = TxStatus.SUCCESS
        self.pending_polls = 0
        self.contracts: Dict[str, ContractArtifact] = {}
        self.receipts: Dict[str, TxReceipt] = {}
        self._pending: Dict[str, int] = {}
        self.profiles: Dict[str, Dict[str, Any]] = {}
        self.shared: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.closed = False
        self._tx_counter = 0

    @property
    def network_calls(self) -> int:
        return len(self.calls)

    def _new_tx(self, status: TxStatus, contract_address: Optional[str] = None) -> str:
        self._tx_counter += 1
        tx_hash = "0x" + hashlib.sha256(f"tx{self._tx_counter}".encode()).hexdigest()
        self.receipts[tx_hash] = TxReceipt(
            tx_hash=tx_hash,
            status=status,
            block_number=self._tx_counter,
            error="assertion failed" if status != TxStatus.SUCCESS else None,
            contract_address=contract_address,
        )
        self._pending[tx_hash] = self.pending_polls
        return tx_hash

    async def get_node_info(self) -> NodeInfo:
        self.calls.append(("get_node_info", None))
        if self.node_failures > 0:
            self.node_failures -= 1
            raise RpcError("connection refused")
        return NodeInfo(node_version="fake-1.0", l1_chain_id=31337)

    async def get_test_accounts(self) -> List[Identity]:
        self.calls.append(("get_test_accounts", None))
        return list(self.accounts)

    async def deploy_contract(self, artifact, deployer, args, salt) -> DeployedTx:
        self.calls.append(("deploy_contract", {"deployer": deployer.address, "args": list(args)}))
        self.deploy_calls += 1
        if self.deploy_error is not None:
            raise self.deploy_error
        address = "0x" + hashlib.sha256(f"{artifact.name}:{salt.to_hex()}".encode()).hexdigest()
        tx_hash = self._new_tx(self.deploy_status, contract_address=address)
        if self.deploy_status == TxStatus.SUCCESS:
            self.contracts[address] = artifact
        return DeployedTx(tx_hash=tx_hash, address=address)

    async def get_tx_receipt(self, tx_hash: str) -> TxReceipt:
        self.calls.append(("get_tx_receipt", tx_hash))
        if tx_hash not in self.receipts:
            raise RpcError(f"Unknown tx {tx_hash}", code=-32602)
        if self._pending[tx_hash] > 0:
            self._pending[tx_hash] -= 1
            return TxReceipt(tx_hash=tx_hash, status=TxStatus.PENDING)
        return self.receipts[tx_hash]

    async def get_contract_metadata(self, address: str) -> ContractMetadata:
        self.calls.append(("get_contract_metadata", address))
        artifact = self.contracts.get(address)
        if artifact is None:
            return ContractMetadata(address=address, deployed=False)
        return ContractMetadata(
            address=address,
            deployed=True,
            contract_name=artifact.name,
            artifact_hash=artifact.fingerprint(),
        )

    def _require_contract(self, address: str):
        if address not in self.contracts:
            raise RpcError(f"No contract at {address}", code=-32000)

    async def send_tx(self, address, method, args, sender) -> str:
        wire = [serialize_arg(a) for a in args]
        self.calls.append(("send_tx", {"method": method, "args": wire, "from": sender.address}))
        self._require_contract(address)
        if method == "create_profile":
            name, bio, age, nonce = wire
            self.profiles[sender.address] = {"name": name, "bio": bio, "age": age, "nonce": nonce}
        elif method == "share_profile":
            recipient, name, bio, age, nonce = wire
            if recipient == sender.address:
                raise RpcError("Assertion failed: cannot share with self", code=-32000)
            self.shared[(recipient, sender.address)] = {"name": name, "bio": bio, "age": age, "nonce": nonce}
        else:
            raise RpcError(f"Unknown private function {method}", code=-32601)
        return self._new_tx(self.send_status)

    async def simulate(self, address, method, args, sender) -> Any:
        wire = [serialize_arg(a) for a in args]
        self.calls.append(("simulate", {"method": method, "args": wire, "from": sender.address}))
        self._require_contract(address)
        if method != "get_profile":
            raise RpcError(f"Unknown utility function {method}", code=-32601)
        (owner,) = wire
        if owner == sender.address and owner in self.profiles:
            return dict(self.profiles[owner])
        if (sender.address, owner) in self.shared:
            return dict(self.shared[(sender.address, owner)])
        raise RpcError("Assertion failed: profile not found", code=-32000)

    async def close(self):
        self.closed = True


@pytest.fixture
def artifact_data() -> Dict[str, Any]:
    """Raw ProfileSharing artifact in nargo layout"""
    return copy.deepcopy(ARTIFACT_DATA)


@pytest.fixture
def artifact(artifact_data) -> ContractArtifact:
    return parse_artifact(artifact_data)


@pytest.fixture
def owner() -> Identity:
    return Identity(address=OWNER_ADDRESS, alias="owner")


@pytest.fixture
def recipient() -> Identity:
    return Identity(address=RECIPIENT_ADDRESS, alias="recipient")


@pytest.fixture
def stranger() -> Identity:
    return Identity(address=STRANGER_ADDRESS, alias="stranger")


@pytest.fixture
def fake_client(owner, recipient, stranger) -> FakeLedgerClient:
    """Fake PXE with three test accounts"""
    return FakeLedgerClient([owner, recipient, stranger])


@pytest.fixture
def memory_backend() -> MemoryStorageBackend:
    return MemoryStorageBackend()


@pytest.fixture
def store(memory_backend) -> AddressStore:
    """Address store over an in-memory backend"""
    return AddressStore(memory_backend)


@pytest.fixture
def nonce() -> FieldValue:
    return FieldValue(0x1234)


def pytest_collection_modifyitems(config, items):
    """Skip tests that need a live PXE unless RUN_PXE_TESTS=1 is set in env."""
    if os.environ.get("RUN_PXE_TESTS", "0") == "1":
        return
    skip_marker = pytest.mark.skip(reason="Live PXE tests disabled. Set RUN_PXE_TESTS=1 to enable.")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_marker)
