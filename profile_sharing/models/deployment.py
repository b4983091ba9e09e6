"""
Address book schema
"""
from typing import Dict

from pydantic import TypeAdapter

from profile_sharing.models.contract import ContractAddress

# Persisted record: {"<contractName>": "<address>"}
AddressBook = Dict[str, ContractAddress]
address_book_adapter: TypeAdapter[AddressBook] = TypeAdapter(AddressBook)
