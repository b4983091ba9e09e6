"""
Profile operations on the ProfileSharing contract
"""
from typing import Any, Dict, Optional, Union

from profile_sharing.core.errors import CallFailed, ProfileSharingError
from profile_sharing.core.logging_config import LoggingConfig
from profile_sharing.models.contract import Identity, TxReceipt
from profile_sharing.models.field import FieldValue
from profile_sharing.models.profile import ProfileRecord
from profile_sharing.services.contract_session import ContractSession
from profile_sharing.services.field_codec import as_field, decode, random_field

logger = LoggingConfig.get_logger(__name__)

TextOrField = Union[str, FieldValue]


class ProfileService:
    """
    Create, share and read profiles through a contract session.

    The record is keyed by the session's identity on the contract side;
    sharing re-sends the full record to the recipient (push disclosure).
    Operations run strictly one after another; each send is confirmed
    before the method returns.
    """

    CREATE = "create_profile"
    SHARE = "share_profile"
    GET = "get_profile"

    def __init__(self, session: ContractSession):
        self.session = session

    @property
    def identity(self) -> Identity:
        return self.session.identity

    async def create_profile(
        self,
        name: TextOrField,
        bio: TextOrField,
        age: int,
        nonce: Optional[FieldValue] = None
    ) -> TxReceipt:
        """Register a profile owned by the session identity and wait for confirmation"""
        args = self._profile_args(name, bio, age, nonce)
        with self._operation(self.CREATE):
            sent = await self.session.send(self.CREATE, *args)
            receipt = await sent.wait()
        logger.info(f"Profile created for {self.identity}")
        return receipt

    async def share_profile(
        self,
        recipient: Identity,
        name: TextOrField,
        bio: TextOrField,
        age: int,
        nonce: Optional[FieldValue] = None
    ) -> TxReceipt:
        """
        Push a profile to recipient and wait for confirmation.

        The fields are sent again rather than referenced, so the caller keeps
        them consistent with the stored record. A fresh nonce is drawn when none
        is given, so the shared copy cannot be linked to the owner's record by
        its nonce. Whether the recipient is acceptable is up to the contract.
        """
        args = self._profile_args(name, bio, age, nonce)
        with self._operation(self.SHARE, recipient=recipient.address):
            sent = await self.session.send(self.SHARE, recipient, *args)
            receipt = await sent.wait()
        logger.info(f"Profile shared by {self.identity} with {recipient.address}")
        return receipt

    async def share_record(self, recipient: Identity, record: ProfileRecord) -> TxReceipt:
        """Share a record exactly as read back; reuses its nonce, so the two copies are linkable"""
        return await self.share_profile(recipient, record.name, record.bio, record.age, record.nonce)

    async def get_profile(self, owner: Identity) -> ProfileRecord:
        """
        Read owner's profile as seen by the session identity.

        Side-effect free. Whether a non-owner may read it is up to the contract.

        Raises:
            CallFailed: the contract refused the read or returned an unexpected shape
        """
        with self._operation(self.GET, owner=owner.address):
            raw = await self.session.simulate(self.GET, owner)
            try:
                record = ProfileRecord.from_result(raw)
            except (ValueError, TypeError, ProfileSharingError) as e:
                raise CallFailed(
                    f"Unexpected {self.GET} result: {e}",
                    contract_name=self.session.contract_name,
                    operation=self.GET
                ) from e
        return record

    @staticmethod
    def describe(record: ProfileRecord) -> Dict[str, Any]:
        """Record with decoded display strings alongside the raw field values"""
        data = record.to_dict()
        data["name_text"] = decode(record.name)
        data["bio_text"] = decode(record.bio)
        return data

    def _profile_args(
        self,
        name: TextOrField,
        bio: TextOrField,
        age: int,
        nonce: Optional[FieldValue]
    ) -> tuple:
        if isinstance(age, bool) or not isinstance(age, int) or age < 0:
            raise ValueError(f"age must be a non-negative integer, got {age!r}")
        return (as_field(name), as_field(bio), age, nonce if nonce is not None else random_field())

    def _operation(self, operation: str, **context: Any) -> "_OperationScope":
        return _OperationScope(self.session, operation, context)


class _OperationScope:
    """Log context for one operation; stamps contract/operation on escaping errors"""

    def __init__(self, session: ContractSession, operation: str, context: Dict[str, Any]):
        self.session = session
        self.operation = operation
        self.context = context
        self._saved: Dict[str, Any] = {}

    def __enter__(self):
        self._saved = LoggingConfig.get_context()
        LoggingConfig.set_context(
            contract=self.session.contract_name,
            operation=self.operation,
            identity=self.session.identity.address,
            **self.context
        )
        return self

    def __exit__(self, exc_type, exc, tb):
        LoggingConfig.clear_context()
        if self._saved:
            LoggingConfig.set_context(**self._saved)
        if isinstance(exc, ProfileSharingError):
            exc.with_context(contract_name=self.session.contract_name, operation=self.operation)
        return False
