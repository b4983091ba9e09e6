"""
Address book persistence: deployed contract addresses keyed by logical contract name
"""
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from pydantic import ValidationError

from profile_sharing.core.errors import CacheCorrupt, CacheMissingField
from profile_sharing.core.logging_config import LoggingConfig
from profile_sharing.models.deployment import AddressBook, address_book_adapter

logger = LoggingConfig.get_logger(__name__)


class StorageBackend(ABC):
    """Raw text storage for the address book"""

    @abstractmethod
    def read(self) -> Optional[str]:
        """Return the stored text, or None if nothing has been written"""
        pass

    @abstractmethod
    def write(self, text: str) -> None:
        """Replace the stored text"""
        pass

    @property
    def location(self) -> str:
        return type(self).__name__


class MemoryStorageBackend(StorageBackend):
    """In-memory backend for tests"""

    def __init__(self, initial: Optional[str] = None):
        self.text = initial
        self.writes = 0

    def read(self) -> Optional[str]:
        return self.text

    def write(self, text: str) -> None:
        self.text = text
        self.writes += 1

    @property
    def location(self) -> str:
        return "memory"


class FileStorageBackend(StorageBackend):
    """
    JSON file backend.

    Writes go to a temp file in the same directory and are moved into place
    with os.replace, so readers never see a half-written record.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(text)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    @property
    def location(self) -> str:
        return str(self.path)


class AddressStore:
    """
    Typed address book over a storage backend.

    save() is a read-modify-write of the whole record under a lock.
    The lock is per process; concurrent writers in other processes are not
    coordinated.
    """

    def __init__(self, backend: StorageBackend):
        self.backend = backend
        self._lock = threading.RLock()

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "AddressStore":
        return cls(FileStorageBackend(path))

    def load(self) -> Dict[str, str]:
        """
        Read the address book.

        Returns:
            Mapping of contract name to address; empty if nothing is stored

        Raises:
            CacheCorrupt: the record exists but is not a valid address book
        """
        with self._lock:
            return dict(self._read())

    def get(self, contract_name: str) -> Optional[str]:
        return self.load().get(contract_name)

    def require(self, contract_name: str) -> str:
        """
        Address for contract_name, for callers that need a prior deployment.

        Raises:
            CacheMissingField: no entry for contract_name
        """
        address = self.get(contract_name)
        if address is None:
            raise CacheMissingField(
                f"No address for '{contract_name}' in {self.backend.location}. Run the deploy command first",
                contract_name=contract_name,
                operation="load_address"
            )
        return address

    def save(self, contract_name: str, address: str) -> Dict[str, str]:
        """
        Set one entry and write the whole record back.

        Returns:
            The address book as written
        """
        with self.transaction() as book:
            previous = book.get(contract_name)
            book[contract_name] = address
        if previous is not None and previous != address:
            logger.warning(f"Replaced cached address for {contract_name}: {previous} -> {address}")
        else:
            logger.info(f"Saved address for {contract_name}: {address}")
        return book

    @contextmanager
    def transaction(self) -> Iterator[Dict[str, str]]:
        """
        Scoped read-modify-write.

        Yields a mutable copy of the book; it is validated and written back
        only if the block exits without an exception.
        """
        with self._lock:
            book = dict(self._read())
            yield book
            # ValidationError here means the caller passed a bad address
            validated = address_book_adapter.validate_python(book, strict=True)
            self.backend.write(json.dumps(validated, indent=2) + "\n")

    def _read(self) -> AddressBook:
        text = self.backend.read()
        if text is None:
            return {}
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise CacheCorrupt(
                f"Address book at {self.backend.location} is not valid JSON: {e.msg} (line {e.lineno})",
                operation="load_addresses",
                metadata={"location": self.backend.location}
            ) from e
        return self._validate(raw, source=self.backend.location)

    @staticmethod
    def _validate(raw: object, source: str) -> AddressBook:
        try:
            return address_book_adapter.validate_python(raw, strict=True)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise CacheCorrupt(
                f"Address book at {source} failed validation: {problems}",
                operation="load_addresses",
                metadata={"location": source}
            ) from e
