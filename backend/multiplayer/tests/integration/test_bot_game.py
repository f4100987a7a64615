import asyncio

from multiplayer.logic.actions import FlipCardAction
from multiplayer.logic.enums import RoomStatus
from multiplayer.session.controller import BOT_PLAYER_ID
from multiplayer.tests.conftest import HOST, wait_until

BOT_DECK = {"deck": ["A", "B", "C", "A", "B", "C"], "mismatch_delay_seconds": 0}


def pick_mismatch(cards: list[dict]) -> tuple[int, int]:
    """First face-down card plus a face-down card of another symbol (its pair when none is left)."""
    face_down = [i for i, card in enumerate(cards) if not card["matched"]]
    first = face_down[0]
    others = [i for i in face_down[1:] if cards[i]["symbol"] != cards[first]["symbol"]]
    if others:
        return first, others[0]
    return first, face_down[1]


async def play_until_finished(player) -> None:
    """Hand the turn to the bot at every opportunity until the board is cleared."""

    def ready() -> bool:
        view = player.current_view
        return view.status == RoomStatus.FINISHED or (
            view.is_my_turn and view.sub_phase is None and not view.pending
        )

    async with asyncio.timeout(10):
        while True:
            await wait_until(ready, timeout=10)
            if player.current_view.status == RoomStatus.FINISHED:
                return
            first, second = pick_mismatch(player.current_view.shared_state["cards"])
            await player.submit_action(FlipCardAction(index=first))
            await player.submit_action(FlipCardAction(index=second))


class TestBotGame:
    async def test_bot_game_runs_to_completion(self, make_controller, store):
        player = make_controller(HOST)
        code = await player.create_solo_game(BOT_DECK, with_bot=True)
        assert player.current_view.opponent_id == BOT_PLAYER_ID
        assert player.current_view.is_my_turn
        # practice games never touch the shared store
        assert await store.get(code) is None

        await play_until_finished(player)

        view = player.current_view
        assert sum(view.scores.values()) == 3
        assert view.scores[BOT_PLAYER_ID] >= 2
        assert view.shared_state["matches_found"] == 3
        assert view.winners

    async def test_leaving_stops_the_bot(self, make_controller):
        player = make_controller(HOST)
        await player.create_solo_game(BOT_DECK, with_bot=True)
        first, second = pick_mismatch(player.current_view.shared_state["cards"])
        await player.submit_action(FlipCardAction(index=first))
        await player.submit_action(FlipCardAction(index=second))
        await player.leave_room()
        assert player.room_code is None
        assert player.current_view.status is None
        assert player._timers.pending_keys == []
