"""
Contract artifact, identity and transaction models
"""
from __future__ import annotations

import hashlib
import json
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator
from pydantic.alias_generators import to_camel

ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{64}$"

ContractAddress = Annotated[str, StringConstraints(strip_whitespace=True, pattern=ADDRESS_PATTERN)]


class WireModel(BaseModel):
    """Base for payloads exchanged with the PXE (camelCase on the wire)"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class FunctionType(str, Enum):
    PRIVATE = "private"
    PUBLIC = "public"
    UTILITY = "utility"


class FunctionParameter(BaseModel):
    name: str
    kind: str = Field(default="field", description="ABI type kind (field, integer, struct, ...)")


class ContractFunction(BaseModel):
    """One callable method described by the artifact"""
    name: str
    function_type: FunctionType = FunctionType.PRIVATE
    parameters: List[FunctionParameter] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def flatten_abi(cls, data: Any) -> Any:
        """Accept the nargo layout ({"abi": {"parameters": ...}, "custom_attributes": [...]})"""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        abi = data.pop("abi", None)
        if isinstance(abi, dict) and "parameters" not in data:
            data["parameters"] = [
                {"name": p.get("name"), "kind": (p.get("type") or {}).get("kind", "field")}
                for p in abi.get("parameters", [])
                if isinstance(p, dict)
            ]
        if "function_type" not in data:
            attributes = {str(a).lower() for a in data.get("custom_attributes", [])}
            if data.get("is_unconstrained") or "utility" in attributes:
                data["function_type"] = FunctionType.UTILITY
            elif "public" in attributes:
                data["function_type"] = FunctionType.PUBLIC
            else:
                data["function_type"] = FunctionType.PRIVATE
        return data

    @property
    def arity(self) -> int:
        return len(self.parameters)


class ContractArtifact(BaseModel):
    """Compiled contract interface loaded from the build output"""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    noir_version: Optional[str] = None
    functions: List[ContractFunction] = Field(..., min_length=1)

    def get_function(self, method: str) -> Optional[ContractFunction]:
        for function in self.functions:
            if function.name == method:
                return function
        return None

    def fingerprint(self) -> str:
        """sha256 of the canonical ABI (names, kinds and function types)"""
        canonical = [
            {
                "name": f.name,
                "type": f.function_type.value,
                "parameters": [[p.name, p.kind] for p in f.parameters],
            }
            for f in sorted(self.functions, key=lambda f: f.name)
        ]
        payload = json.dumps({"name": self.name, "functions": canonical}, sort_keys=True)
        return "0x" + hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class Identity(BaseModel):
    """
    Acting principal registered with the PXE.

    The PXE holds the signing keys; the client refers to an account by address.
    """
    model_config = ConfigDict(frozen=True)

    address: ContractAddress
    alias: Optional[str] = None

    def __str__(self) -> str:
        return self.alias or self.address


class NodeInfo(WireModel):
    node_version: str = "unknown"
    l1_chain_id: Optional[int] = None
    protocol_version: Optional[int] = None


class TxStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    DROPPED = "dropped"
    APP_LOGIC_REVERTED = "app_logic_reverted"
    TEARDOWN_REVERTED = "teardown_reverted"
    BOTH_REVERTED = "both_reverted"


class TxReceipt(WireModel):
    tx_hash: str
    status: TxStatus
    error: Optional[str] = None
    block_number: Optional[int] = None
    contract_address: Optional[ContractAddress] = None

    @property
    def is_pending(self) -> bool:
        return self.status == TxStatus.PENDING

    @property
    def is_success(self) -> bool:
        return self.status == TxStatus.SUCCESS


class DeployedTx(WireModel):
    """Deployment submitted but not yet confirmed"""
    tx_hash: str
    address: ContractAddress


class ContractMetadata(WireModel):
    address: ContractAddress
    deployed: bool = False
    contract_name: Optional[str] = None
    artifact_hash: Optional[str] = None
