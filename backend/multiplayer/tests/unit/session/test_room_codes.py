import random

import pytest

from multiplayer.logic.enums import CodeFormat, RoomStatus
from multiplayer.logic.exceptions import CodeSpaceExhaustedError, InvalidRoomCodeError
from multiplayer.session.room_codes import (
    ALPHANUMERIC_ALPHABET,
    RoomCodeGenerator,
    normalize_room_code,
)
from multiplayer.session.store import InMemoryRoomStore
from multiplayer.tests.mocks import FlakyRoomStore


def room_doc(code, status=RoomStatus.WAITING):
    return {"code": code, "status": status.value}


class FixedRandom(random.Random):
    """Random whose choice() walks through a fixed character sequence."""

    def __init__(self, chars: str) -> None:
        super().__init__(0)
        self._chars = list(chars)

    def choice(self, seq):
        return self._chars.pop(0)


class TestNormalize:
    def test_numeric_code(self):
        assert normalize_room_code(" 0042 ", CodeFormat.NUMERIC) == "0042"

    def test_alphanumeric_is_uppercased(self):
        assert normalize_room_code("ab3d", CodeFormat.ALPHANUMERIC) == "AB3D"

    @pytest.mark.parametrize("code", ["123", "12345", "12a4", "", "12 4"])
    def test_bad_numeric_codes(self, code):
        with pytest.raises(InvalidRoomCodeError):
            normalize_room_code(code, CodeFormat.NUMERIC)

    @pytest.mark.parametrize("code", ["AB-D", "ABCDE", "ÄBCD"])
    def test_bad_alphanumeric_codes(self, code):
        with pytest.raises(InvalidRoomCodeError):
            normalize_room_code(code, CodeFormat.ALPHANUMERIC)


class TestGenerate:
    async def test_numeric_codes_are_four_digits(self, store):
        generator = RoomCodeGenerator(store, CodeFormat.NUMERIC, rng=random.Random(1))
        for _ in range(20):
            code = await generator.generate()
            assert len(code) == 4
            assert code.isdigit()

    async def test_alphanumeric_alphabet(self, store):
        generator = RoomCodeGenerator(store, CodeFormat.ALPHANUMERIC, rng=random.Random(1))
        code = await generator.generate()
        assert set(code) <= set(ALPHANUMERIC_ALPHABET)

    async def test_skips_active_rooms(self, store):
        await store.create("1111", room_doc("1111"))
        generator = RoomCodeGenerator(store, CodeFormat.NUMERIC, rng=FixedRandom("11112222"))
        assert await generator.generate() == "2222"

    async def test_finished_room_code_is_free(self, store):
        await store.create("1111", room_doc("1111", RoomStatus.FINISHED))
        generator = RoomCodeGenerator(store, CodeFormat.NUMERIC, rng=FixedRandom("1111"))
        assert await generator.generate() == "1111"

    async def test_exhausted_after_max_attempts(self, store):
        await store.create("1111", room_doc("1111"))
        generator = RoomCodeGenerator(store, CodeFormat.NUMERIC, max_attempts=3, rng=FixedRandom("1" * 12))
        with pytest.raises(CodeSpaceExhaustedError):
            await generator.generate()

    def test_max_attempts_must_be_positive(self):
        with pytest.raises(ValueError, match="max_attempts"):
            RoomCodeGenerator(InMemoryRoomStore(), CodeFormat.NUMERIC, max_attempts=0)


class TestClaim:
    async def test_creates_room_under_new_code(self, store):
        generator = RoomCodeGenerator(store, CodeFormat.NUMERIC, rng=FixedRandom("4321"))
        doc = await generator.claim(room_doc)
        assert doc["code"] == "4321"
        assert (await store.get("4321"))["revision"] == 1

    async def test_reuses_abandoned_code(self, store):
        await store.create("1111", room_doc("1111", RoomStatus.ABANDONED))
        generator = RoomCodeGenerator(store, CodeFormat.NUMERIC, rng=FixedRandom("1111"))
        doc = await generator.claim(room_doc)
        assert doc["status"] == RoomStatus.WAITING
        assert doc["revision"] == 2

    async def test_collision_with_active_room_retries(self, store):
        await store.create("1111", room_doc("1111"))
        generator = RoomCodeGenerator(store, CodeFormat.NUMERIC, rng=FixedRandom("11115555"))
        doc = await generator.claim(room_doc)
        assert doc["code"] == "5555"
        assert (await store.get("1111"))["revision"] == 1

    async def test_no_two_active_rooms_share_a_code(self):
        store = InMemoryRoomStore()
        generator = RoomCodeGenerator(store, CodeFormat.NUMERIC, max_attempts=200, rng=random.Random(9))
        # a 16-code space forces plenty of collisions
        generator._alphabet = "01"
        codes = []
        for _ in range(10):
            doc = await generator.claim(lambda code: {"code": code, "status": "waiting"})
            codes.append(doc["code"])
        assert len(set(codes)) == len(codes)

    async def test_concurrent_claim_counts_as_collision(self):
        store = FlakyRoomStore()
        generator = RoomCodeGenerator(store, CodeFormat.NUMERIC, max_attempts=2, rng=FixedRandom("77778888"))
        original_create = store.create

        async def racing_create(room_id, doc, *, replace_revision=None):
            if room_id == "7777":
                # another host claims the code between our get and create
                await original_create(room_id, {"code": room_id, "status": "waiting"})
            return await original_create(room_id, doc, replace_revision=replace_revision)

        store.create = racing_create
        doc = await generator.claim(room_doc)
        assert doc["code"] == "8888"

    async def test_claim_exhausted(self, store):
        await store.create("1111", room_doc("1111"))
        generator = RoomCodeGenerator(store, CodeFormat.NUMERIC, max_attempts=2, rng=FixedRandom("1" * 8))
        with pytest.raises(CodeSpaceExhaustedError):
            await generator.claim(room_doc)
