"""
Tests for role resolution
"""
import pytest

from profile_sharing.core.errors import IdentityUnavailable
from profile_sharing.services.identity_provider import (Role, StaticIdentityProvider,
                                                        TestAccountIdentityProvider)


@pytest.mark.asyncio
async def test_default_positions(fake_client, owner, recipient):
    provider = TestAccountIdentityProvider(fake_client, {Role.OWNER: 0, Role.RECIPIENT: 1})

    resolved_owner = await provider.resolve(Role.OWNER)
    resolved_recipient = await provider.resolve("recipient")

    assert resolved_owner.address == owner.address
    assert resolved_owner.alias == "owner"
    assert resolved_recipient.address == recipient.address


@pytest.mark.asyncio
async def test_accounts_are_fetched_once(fake_client):
    provider = TestAccountIdentityProvider(fake_client, {Role.OWNER: 0, Role.RECIPIENT: 1})
    await provider.resolve(Role.OWNER)
    await provider.resolve(Role.RECIPIENT)
    assert [c[0] for c in fake_client.calls] == ["get_test_accounts"]


@pytest.mark.asyncio
async def test_configured_positions(fake_client, stranger):
    provider = TestAccountIdentityProvider(fake_client, {Role.OWNER: 2, Role.RECIPIENT: 0})
    assert (await provider.resolve(Role.OWNER)).address == stranger.address


@pytest.mark.asyncio
async def test_position_out_of_range(fake_client):
    provider = TestAccountIdentityProvider(fake_client, {Role.OWNER: 0, Role.RECIPIENT: 7})
    with pytest.raises(IdentityUnavailable, match="#7") as exc_info:
        await provider.resolve(Role.RECIPIENT)
    assert exc_info.value.metadata["available"] == 3


@pytest.mark.asyncio
async def test_static_provider(owner):
    provider = StaticIdentityProvider({Role.OWNER: owner})
    assert await provider.resolve(Role.OWNER) == owner
    with pytest.raises(IdentityUnavailable):
        await provider.resolve(Role.RECIPIENT)
