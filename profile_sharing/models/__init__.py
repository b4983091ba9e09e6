"""
Typed records exchanged with the PXE and persisted locally
"""
from profile_sharing.models.contract import (ContractAddress, ContractArtifact,
                                             ContractFunction, ContractMetadata,
                                             DeployedTx, FunctionParameter,
                                             FunctionType, Identity, NodeInfo,
                                             TxReceipt, TxStatus)
from profile_sharing.models.deployment import AddressBook, address_book_adapter
from profile_sharing.models.field import FIELD_MODULUS, FieldValue
from profile_sharing.models.profile import ProfileRecord

__all__ = [
    "AddressBook",
    "ContractAddress",
    "ContractArtifact",
    "ContractFunction",
    "ContractMetadata",
    "DeployedTx",
    "FIELD_MODULUS",
    "FieldValue",
    "FunctionParameter",
    "FunctionType",
    "Identity",
    "NodeInfo",
    "ProfileRecord",
    "TxReceipt",
    "TxStatus",
    "address_book_adapter",
]
