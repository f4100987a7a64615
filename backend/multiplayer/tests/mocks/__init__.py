from multiplayer.tests.mocks.flaky_store import FlakyRoomStore

__all__ = ["FlakyRoomStore"]
