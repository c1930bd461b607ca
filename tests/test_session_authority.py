import pytest

from mines_server.domain.commit_reveal import ZERO_ADDRESS
from mines_server.errors import ErrorKind, GameError
from tests.helpers import ALICE, ALICE_DELEGATE, BOB, MALLORY


class TestRegister:
    async def test_register_and_read(self, authority, publisher):
        delegation = await authority.register_delegate(ALICE, ALICE_DELEGATE)
        assert delegation.principal == ALICE
        assert (await authority.read_principal(ALICE_DELEGATE)).principal == ALICE
        assert publisher.kinds() == ["delegate_registered"]

    async def test_zero_delegate_is_rejected(self, authority):
        with pytest.raises(GameError) as exc_info:
            await authority.register_delegate(ALICE, ZERO_ADDRESS)
        assert exc_info.value.kind == ErrorKind.zero_delegate

    async def test_self_delegation_is_rejected(self, authority):
        with pytest.raises(GameError) as exc_info:
            await authority.register_delegate(ALICE, ALICE)
        assert exc_info.value.kind == ErrorKind.self_delegation

    async def test_registration_overwrites_previous_principal(self, authority):
        await authority.register_delegate(ALICE, ALICE_DELEGATE)
        await authority.register_delegate(BOB, ALICE_DELEGATE)
        assert (await authority.read_principal(ALICE_DELEGATE)).principal == BOB


class TestRevoke:
    async def test_principal_revokes_its_delegate(self, authority, publisher):
        await authority.register_delegate(ALICE, ALICE_DELEGATE)
        await authority.revoke_delegate(ALICE, ALICE_DELEGATE)
        assert (await authority.read_principal(ALICE_DELEGATE)).principal is None
        assert publisher.kinds() == ["delegate_registered", "delegate_revoked"]

    async def test_unregistered_key_cannot_be_revoked(self, authority):
        with pytest.raises(GameError) as exc_info:
            await authority.revoke_delegate(ALICE_DELEGATE, ALICE_DELEGATE)
        assert exc_info.value.kind == ErrorKind.not_your_delegate

    async def test_only_installing_principal_can_revoke(self, authority):
        await authority.register_delegate(ALICE, ALICE_DELEGATE)
        with pytest.raises(GameError) as exc_info:
            await authority.revoke_delegate(MALLORY, ALICE_DELEGATE)
        assert exc_info.value.kind == ErrorKind.not_your_delegate
        assert (await authority.read_principal(ALICE_DELEGATE)).principal == ALICE


class TestAuthorize:
    async def test_principal_and_delegate_are_authorized(self, authority, fulfilled_game):
        game = await fulfilled_game(ALICE)
        await authority.register_delegate(ALICE, ALICE_DELEGATE)
        assert await authority.is_authorized(game.game_id, ALICE)
        assert await authority.is_authorized(game.game_id, ALICE_DELEGATE)
        assert not await authority.is_authorized(game.game_id, MALLORY)

    async def test_delegate_of_someone_else_is_not_authorized(self, authority, fulfilled_game):
        game = await fulfilled_game(ALICE)
        await authority.register_delegate(BOB, MALLORY)
        assert not await authority.is_authorized(game.game_id, MALLORY)

    async def test_revoked_delegate_loses_access(self, authority, fulfilled_game):
        game = await fulfilled_game(ALICE)
        await authority.register_delegate(ALICE, ALICE_DELEGATE)
        await authority.revoke_delegate(ALICE, ALICE_DELEGATE)
        assert not await authority.is_authorized(game.game_id, ALICE_DELEGATE)

    async def test_unknown_game(self, authority):
        with pytest.raises(GameError) as exc_info:
            await authority.is_authorized(404, ALICE)
        assert exc_info.value.kind == ErrorKind.game_not_found
