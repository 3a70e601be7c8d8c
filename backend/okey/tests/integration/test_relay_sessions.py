"""
Two GameSessions synchronizing through the relay server.

Each peer speaks the ASGI websocket protocol to the same in-process app, so
frames go through the real endpoint, hub validation and fan-out.
"""

import asyncio

import pytest

from okey.server.app import create_app
from okey.server.client import RelayClientTransport
from okey.server.relay import GAME_FULL_CLOSE_CODE
from okey.server.settings import RelayServerSettings
from okey.session.manager import GameSession
from okey.tests.asgi import AsgiWebSocketChannel
from okey.tests.helpers import B, K, R, Y, make_controller, t

RACKS = [[t(13, R), t(13, B), t(13, K), t(13, Y), t(4)], [t(1, B)] * 5]


async def _eventually(predicate, timeout=2.0):
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)


async def _relay_session(app, name):
    channel = await AsgiWebSocketChannel(app, "/ws/table").connect()
    transport = RelayClientTransport(channel)
    controller = make_controller(RACKS, pool=[t(9, B), t(10, B)], transport=transport)
    return GameSession(name, controller=controller, transport=transport), transport


@pytest.fixture
def app():
    return create_app(settings=RelayServerSettings(max_games=5, max_players_per_game=2))


@pytest.fixture
async def peers(app):
    first, first_transport = await _relay_session(app, "alice")
    second, second_transport = await _relay_session(app, "bob")
    async with first, second:
        await _eventually(lambda: len(first.controller.roster) == 2)
        yield first, first_transport, second, second_transport


class TestRelaySessions:
    async def test_roster_holds_relay_connection_ids(self, peers):
        first, first_transport, second, second_transport = peers
        roster = (first_transport.participant_id, second_transport.participant_id)
        assert first.controller.roster == roster
        assert second.controller.roster == roster

    async def test_play_converges_through_relay(self, peers):
        first, first_transport, second, _ = peers
        for tile in RACKS[0][:4]:
            await first.select_tile(tile)
        result = await first.play_selected_tiles()
        await first_transport.flush()

        assert result.success
        await _eventually(lambda: second.controller.board.current_player_index == 1)
        board = second.controller.board
        assert board.has_opened == (True, False)
        assert board.per == 52
        assert board.players[0].rack == [t(4)]
        assert board.melds == first.controller.board.melds
        assert board.tile_counts() == first.controller.board.tile_counts()

    async def test_reply_from_second_peer_reaches_first(self, peers):
        first, _, second, second_transport = peers
        await second.select_tile(t(1, B))
        await second_transport.flush()

        await _eventually(lambda: first.controller.selected_tiles == (t(1, B),))

    async def test_third_peer_refused_when_game_full(self, app, peers):
        channel = await AsgiWebSocketChannel(app, "/ws/table").connect()
        transport = RelayClientTransport(channel)

        with pytest.raises(ConnectionError):
            await transport.open()
        assert channel.close_code == GAME_FULL_CLOSE_CODE
        await channel.close()
