"""
Unit tests for snapshot projection, wire format and merging.
"""

import msgpack
import pytest
from pydantic import ValidationError

from okey.logic.board import GameBoard
from okey.logic.enums import GameErrorCode, GamePhase
from okey.logic.settings import GameSettings
from okey.messaging.encoder import DecodeError, decode
from okey.messaging.snapshot import GameSnapshot, PlayerState, TileState, apply_snapshot, build_snapshot
from okey.tests.helpers import B, K, R, Y, SignalCounter, joker, make_board, make_controller, t
from okey.tests.mocks import RecordingTransport


def _state(tile):
    return TileState.from_tile(tile)


def _minimal_snapshot(**overrides):
    values = {
        "current_player_index": 1,
        "players": [
            PlayerState(id="a", name="Ada", rack=[_state(t(7)), _state(joker())], score=5),
            PlayerState(id="b", name="Bo", rack=[_state(t(8, K))], score=0),
        ],
        "selected_tiles": [_state(t(7))],
        "per": 33,
        "has_opened": [True, False],
    }
    values.update(overrides)
    return GameSnapshot(**values)


class TestWireFormat:
    def test_keys_are_camel_case(self):
        board = make_board([[t(3)], [joker()]])
        wire = build_snapshot(board, [t(3)]).to_wire()
        assert set(wire) == {
            "currentPlayerIndex",
            "players",
            "selectedTiles",
            "per",
            "hasOpened",
            "indicatorTile",
            "pool",
            "discards",
            "melds",
            "gameOver",
        }
        assert wire["players"][1]["rack"] == [{"number": 0, "color": "red", "isJoker": True}]
        assert wire["selectedTiles"] == [{"number": 3, "color": "red", "isJoker": False}]
        assert wire["indicatorTile"] == {"number": 1, "color": "yellow", "isJoker": False}

    def test_tile_ids_not_transmitted(self):
        board = make_board([[t(3)], [t(4)]])
        wire = build_snapshot(board, []).to_wire()
        assert set(wire["players"][0]["rack"][0]) == {"number", "color", "isJoker"}

    def test_core_only_snapshot_omits_extension_keys(self):
        board = make_board([[t(3)], [t(4)]])
        wire = build_snapshot(board, [], include_board=False).to_wire()
        assert set(wire) == {"currentPlayerIndex", "players", "selectedTiles", "per", "hasOpened"}

    def test_bytes_are_a_messagepack_map(self):
        board = make_board([[t(3)], [t(4)]])
        decoded = decode(build_snapshot(board, []).to_bytes())
        assert decoded["currentPlayerIndex"] == 0
        assert decoded["hasOpened"] == [False, False]

    def test_unknown_keys_ignored(self):
        data = _minimal_snapshot().to_wire()
        data["chat"] = "hello"
        snapshot = GameSnapshot.from_bytes(msgpack.packb(data))
        assert snapshot.per == 33

    def test_missing_required_key_rejected(self):
        data = _minimal_snapshot().to_wire()
        del data["hasOpened"]
        with pytest.raises(ValidationError):
            GameSnapshot.from_bytes(msgpack.packb(data))

    def test_unknown_color_rejected(self):
        data = _minimal_snapshot().to_wire()
        data["selectedTiles"] = [{"number": 3, "color": "green", "isJoker": False}]
        with pytest.raises(ValidationError):
            GameSnapshot.from_bytes(msgpack.packb(data))

    def test_garbage_rejected(self):
        with pytest.raises(DecodeError):
            GameSnapshot.from_bytes(b"\xc1\xc1")


class TestApplySnapshot:
    def test_round_trip_to_fresh_board(self):
        source = GameBoard(GameSettings(num_players=3, seed=1))
        source.add_discard(source.draw_tile())
        source.mark_as_opened(2)
        source.update_per(40)
        source.next_turn()
        target = GameBoard(GameSettings(num_players=3, seed=2))

        selection, report = apply_snapshot(target, build_snapshot(source, [t(5)]))

        assert selection == [t(5)]
        assert report.players_applied == 3
        assert report.players_ignored == 0
        assert [p.rack for p in target.players] == [p.rack for p in source.players]
        assert [p.score for p in target.players] == [p.score for p in source.players]
        assert target.current_player_index == 1
        assert target.has_opened == (False, False, True)
        assert target.per == 40
        assert target.indicator_tile == source.indicator_tile
        assert target.okey_tile == source.okey_tile
        assert target.tiles == source.tiles
        assert target.discards == source.discards
        assert target.tile_counts() == source.tile_counts()

    def test_per_is_overwritten_not_added(self):
        board = make_board([[t(3)], [t(4)]])
        board.update_per(10)
        apply_snapshot(board, _minimal_snapshot())
        assert board.per == 33

    def test_racks_scores_and_selection_applied(self):
        board = make_board([[t(3)], [t(4)]])
        selection, _ = apply_snapshot(board, _minimal_snapshot())
        assert board.players[0].rack == [t(7), joker()]
        assert board.players[0].score == 5
        assert board.players[1].rack == [t(8, K)]
        assert board.current_player_index == 1
        assert board.has_opened == (True, False)
        assert selection == [t(7)]

    def test_extra_players_ignored(self):
        board = make_board([[t(3)], [t(4)]])
        players = [PlayerState(id=str(i), name=f"P{i}", rack=[], score=i) for i in range(4)]
        _, report = apply_snapshot(board, _minimal_snapshot(players=players, has_opened=[True] * 4))
        assert report.players_applied == 2
        assert report.players_ignored == 2
        assert [p.score for p in board.players] == [0, 1]

    def test_mismatched_opened_flags_ignored_rest_applied(self):
        board = make_board([[t(3)], [t(4)]])
        _, report = apply_snapshot(board, _minimal_snapshot(has_opened=[True, True, True]))
        assert not report.opened_applied
        assert board.has_opened == (False, False)
        assert board.per == 33
        assert board.players[0].rack == [t(7), joker()]

    def test_out_of_range_current_index_ignored(self):
        board = make_board([[t(3)], [t(4)]])
        _, report = apply_snapshot(board, _minimal_snapshot(current_player_index=5))
        assert not report.current_index_applied
        assert board.current_player_index == 0

    def test_missing_extension_keys_leave_board_parts(self):
        board = make_board([[t(3)], [t(4)]], pool=[t(9, B)])
        board.add_discard(t(6))
        apply_snapshot(board, _minimal_snapshot())
        assert board.tiles == (t(9, B), t(2, Y))
        assert board.discards == (t(6),)
        assert board.okey_tile == t(2, Y)


class TestControllerApply:
    def test_apply_emits_one_signal_and_no_broadcast(self):
        transport = RecordingTransport()
        controller = make_controller([[t(3)], [t(4)]], transport=transport)
        counter = SignalCounter()
        controller.subscribe(counter)

        result = controller.apply_snapshot_bytes(_minimal_snapshot().to_bytes())

        assert result.success
        assert counter.calls == 1
        assert transport.frames == []
        assert controller.selected_tiles == (t(7),)

    def test_malformed_frame_dropped(self):
        controller = make_controller([[t(3)], [t(4)]])
        counter = SignalCounter()
        controller.subscribe(counter)

        result = controller.apply_snapshot_bytes(b"not a snapshot")

        assert result.error == GameErrorCode.SYNC_FAILED
        assert controller.error_message.startswith("Dropped malformed game state")
        assert controller.board.players[0].rack == [t(3)]
        assert counter.calls == 0

    def test_wrong_shape_dropped(self):
        controller = make_controller([[t(3)], [t(4)]])
        result = controller.apply_snapshot_bytes(msgpack.packb({"per": "lots"}))
        assert result.error == GameErrorCode.SYNC_FAILED
        assert controller.board.per == 0

    def test_game_over_flag_adopted(self):
        controller = make_controller([[t(3)], [t(4)]])
        controller.apply_snapshot(_minimal_snapshot(game_over=True))
        assert controller.phase == GamePhase.GAME_OVER
        assert controller.draw_tile().error == GameErrorCode.GAME_OVER

    def test_snapshot_reflects_game_over(self):
        controller = make_controller([[t(3)], [t(4)]])
        controller.draw_tile()
        controller.draw_tile()
        assert controller.snapshot().game_over is True

    def test_peers_converge(self):
        racks = [[t(13, R), t(13, B), t(13, K), t(13, Y)], [t(1, B)] * 4]
        first = make_controller(racks, pool=[t(9, B)])
        second = make_controller([[t(2)] * 4, [t(3)] * 4], pool=[t(10, B)])
        for tile in racks[0]:
            first.select_tile(tile)
        first.play_selected_tiles()

        second.apply_snapshot_bytes(first.snapshot().to_bytes())

        assert second.snapshot().model_dump(exclude={"players"}) == first.snapshot().model_dump(exclude={"players"})
        assert [p.rack for p in second.board.players] == [p.rack for p in first.board.players]
        assert second.board.melds == first.board.melds
