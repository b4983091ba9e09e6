"""
Command line entry point: deploy the ProfileSharing contract and exercise it
"""
import argparse
import asyncio
import json
import sys
from typing import List, Optional

from profile_sharing.core.config import Settings, get_settings
from profile_sharing.core.errors import ProfileSharingError
from profile_sharing.core.logging_config import LoggingConfig
from profile_sharing.core.pxe_client import (LedgerClient, PXEClient,
                                             get_pxe_client, reset_pxe_client)
from profile_sharing.core.tracing import configure_tracing, shutdown_tracing
from profile_sharing.models.contract import ContractArtifact
from profile_sharing.models.field import FieldValue
from profile_sharing.services.address_store import AddressStore
from profile_sharing.services.artifact_loader import load_contract_artifact
from profile_sharing.services.contract_session import ContractSession
from profile_sharing.services.deployment_coordinator import DeploymentCoordinator
from profile_sharing.services.identity_provider import (IdentityProvider, Role,
                                                        TestAccountIdentityProvider)
from profile_sharing.services.profile_service import ProfileService

logger = LoggingConfig.get_logger(__name__)


class Runtime:
    """Collaborators shared by every command"""

    def __init__(
        self,
        settings: Settings,
        client: LedgerClient,
        store: AddressStore,
        artifact: ContractArtifact,
        identities: IdentityProvider
    ):
        self.settings = settings
        self.client = client
        self.store = store
        self.artifact = artifact
        self.identities = identities

    @property
    def contract_name(self) -> str:
        return self.settings.contract_name

    async def session_for(self, role: Role) -> ContractSession:
        address = self.store.require(self.contract_name)
        identity = await self.identities.resolve(role)
        return await ContractSession.open(
            self.client,
            address,
            self.artifact,
            identity,
            contract_name=self.contract_name
        )


def _nonce(raw: Optional[str]) -> Optional[FieldValue]:
    if raw is None:
        return None
    return FieldValue.from_hex(raw) if raw.lower().startswith("0x") else FieldValue(int(raw))


def _print_record(label: str, record_data: dict):
    print(f"{label}: {json.dumps(record_data, indent=2, ensure_ascii=False)}")


async def cmd_deploy(runtime: Runtime, args: argparse.Namespace) -> int:
    deployer = await runtime.identities.resolve(Role.OWNER)
    coordinator = DeploymentCoordinator(runtime.client, runtime.store)
    address = await coordinator.ensure_deployed(
        runtime.contract_name,
        runtime.artifact,
        deployer,
        force=args.force
    )
    print(f"{runtime.artifact.name} at {address}")
    return 0


async def cmd_create(runtime: Runtime, args: argparse.Namespace) -> int:
    service = ProfileService(await runtime.session_for(Role.OWNER))
    receipt = await service.create_profile(args.name, args.bio, args.age, _nonce(args.nonce))
    print(f"Profile created for {service.identity.address} (tx {receipt.tx_hash})")
    return 0


async def cmd_share(runtime: Runtime, args: argparse.Namespace) -> int:
    service = ProfileService(await runtime.session_for(Role.OWNER))
    recipient = await runtime.identities.resolve(Role.RECIPIENT)
    receipt = await service.share_profile(recipient, args.name, args.bio, args.age, _nonce(args.nonce))
    print(f"Profile shared with {recipient.address} (tx {receipt.tx_hash})")
    return 0


async def cmd_get(runtime: Runtime, args: argparse.Namespace) -> int:
    service = ProfileService(await runtime.session_for(Role(args.viewer)))
    owner = await runtime.identities.resolve(Role(args.owner))
    record = await service.get_profile(owner)
    _print_record("Profile", ProfileService.describe(record))
    return 0


async def cmd_demo(runtime: Runtime, args: argparse.Namespace) -> int:
    owner_session = await runtime.session_for(Role.OWNER)
    recipient = await runtime.identities.resolve(Role.RECIPIENT)
    owner_service = ProfileService(owner_session)
    recipient_service = ProfileService(owner_session.with_identity(recipient))

    await owner_service.create_profile(args.name, args.bio, args.age)
    own = await owner_service.get_profile(owner_session.identity)
    _print_record("Owner view", ProfileService.describe(own))

    await owner_service.share_profile(recipient, own.name, own.bio, own.age)
    shared = await recipient_service.get_profile(owner_session.identity)
    _print_record("Recipient view", ProfileService.describe(shared))

    print("Created and shared profile.")
    return 0


COMMANDS = {
    "deploy": cmd_deploy,
    "create": cmd_create,
    "share": cmd_share,
    "get": cmd_get,
    "demo": cmd_demo,
}


def _add_profile_arguments(parser: argparse.ArgumentParser, defaults: bool = False):
    parser.add_argument("--name", required=not defaults, default="Alice" if defaults else None, help="Display name")
    parser.add_argument("--bio", required=not defaults, default="NY dev" if defaults else None, help="Short bio")
    parser.add_argument("--age", type=int, required=not defaults, default=25 if defaults else None, help="Age")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="profile-sharing",
        description="Deploy the ProfileSharing contract once and create, share or read profiles"
    )
    parser.add_argument("--pxe-url", help="PXE endpoint (default: $PXE_URL or http://localhost:8080)")
    parser.add_argument("--addresses", help="Address book file (default: addresses.json)")
    parser.add_argument("--artifact", help="Compiled contract artifact")
    sub = parser.add_subparsers(dest="command", required=True)

    deploy = sub.add_parser("deploy", help="Deploy the contract unless an address is cached")
    deploy.add_argument("--force", action="store_true", help="Deploy even if an address is cached")

    create = sub.add_parser("create", help="Create the owner's profile")
    _add_profile_arguments(create)
    create.add_argument("--nonce", help="Nonce as decimal or 0x-hex (random if omitted)")

    share = sub.add_parser("share", help="Push a profile from the owner to the recipient")
    _add_profile_arguments(share)
    share.add_argument("--nonce", help="Nonce as decimal or 0x-hex (random if omitted)")

    get = sub.add_parser("get", help="Read a profile")
    roles = [r.value for r in Role]
    get.add_argument("--as", dest="viewer", choices=roles, default=Role.OWNER.value, help="Identity making the call")
    get.add_argument("--of", dest="owner", choices=roles, default=Role.OWNER.value, help="Profile owner")

    demo = sub.add_parser("demo", help="Create, share and read back a profile")
    _add_profile_arguments(demo, defaults=True)

    return parser


def _settings_for(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    overrides = {}
    if args.pxe_url:
        overrides["pxe_url"] = args.pxe_url
    if args.addresses:
        overrides["addresses_path"] = args.addresses
    if args.artifact:
        overrides["artifact_path"] = args.artifact
    if not overrides:
        return settings
    return Settings(**{**settings.model_dump(), **overrides})


async def run(args: argparse.Namespace, client: Optional[LedgerClient] = None) -> int:
    """Run one command; returns the process exit status"""
    settings = _settings_for(args)
    owns_client = client is None
    if client is None:
        client = PXEClient(url=settings.pxe_url) if args.pxe_url else get_pxe_client()

    LoggingConfig.set_context(command=args.command)
    try:
        artifact = load_contract_artifact(settings.artifact_file)
        await client.wait_until_ready(settings.pxe_ready_timeout_seconds, settings.pxe_poll_interval_seconds)
        runtime = Runtime(
            settings,
            client,
            AddressStore.from_path(settings.addresses_file),
            artifact,
            TestAccountIdentityProvider(client, {
                Role.OWNER: settings.owner_account_index,
                Role.RECIPIENT: settings.recipient_account_index,
            })
        )
        return await COMMANDS[args.command](runtime, args)
    except ProfileSharingError as e:
        logger.error(f"{args.command} failed: {e}", extra={"error": e.to_dict()})
        print(f"Error [{type(e).__name__}]: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        LoggingConfig.clear_context()
        if owns_client:
            await client.close()
            reset_pxe_client()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    LoggingConfig.configure()
    configure_tracing()
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
    except Exception as e:
        logger.critical(f"Unhandled error in {args.command}: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    sys.exit(main())
