"""
Join code generation and validation.

Codes are 4 characters drawn uniformly from the game's alphabet. A code is
free when no room uses it or its room is finished or abandoned; claiming a
code is a conditional create in the store, so two hosts racing for the same
code cannot both win.
"""

from __future__ import annotations

import random
import re
import string
from typing import TYPE_CHECKING, Any

import structlog

from multiplayer.logic.enums import CodeFormat, RoomStatus
from multiplayer.logic.exceptions import CodeSpaceExhaustedError, InvalidRoomCodeError
from multiplayer.session.store import DocumentExistsError, RevisionConflictError

if TYPE_CHECKING:
    from collections.abc import Callable

    from multiplayer.session.store import RoomStore

logger = structlog.get_logger()

CODE_LENGTH = 4
# no I, O, 0 or 1: easy to misread on a large-print screen
ALPHANUMERIC_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

_ALPHABETS: dict[CodeFormat, str] = {
    CodeFormat.NUMERIC: string.digits,
    CodeFormat.ALPHANUMERIC: ALPHANUMERIC_ALPHABET,
}
_PATTERNS: dict[CodeFormat, re.Pattern[str]] = {
    CodeFormat.NUMERIC: re.compile(rf"[0-9]{{{CODE_LENGTH}}}"),
    CodeFormat.ALPHANUMERIC: re.compile(rf"[A-Z0-9]{{{CODE_LENGTH}}}"),
}


def normalize_room_code(code: str, code_format: CodeFormat) -> str:
    """Return the canonical form of a typed code, or raise InvalidRoomCodeError."""
    normalized = code.strip().upper()
    if not _PATTERNS[code_format].fullmatch(normalized):
        expected = "digits" if code_format == CodeFormat.NUMERIC else "letters or digits"
        raise InvalidRoomCodeError(f"room code must be {CODE_LENGTH} {expected}, got {code!r}")
    return normalized


def _is_active(doc: dict[str, Any] | None) -> bool:
    return doc is not None and RoomStatus(doc["status"]).is_active


class RoomCodeGenerator:
    def __init__(
        self,
        store: RoomStore,
        code_format: CodeFormat,
        max_attempts: int = 5,
        rng: random.Random | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._alphabet = _ALPHABETS[code_format]
        self._max_attempts = max_attempts
        self._rng = rng or random.Random()

    def _random_code(self) -> str:
        return "".join(self._rng.choice(self._alphabet) for _ in range(CODE_LENGTH))

    async def generate(self) -> str:
        """Return a code not used by any waiting or playing room."""
        for attempt in range(1, self._max_attempts + 1):
            code = self._random_code()
            if not _is_active(await self._store.get(code)):
                return code
            logger.info("room code collision", room_code=code, attempt=attempt)
        raise CodeSpaceExhaustedError(f"no free room code after {self._max_attempts} attempts")

    async def claim(self, build_doc: Callable[[str], dict[str, Any]]) -> dict[str, Any]:
        """
        Generate a code and atomically create the room document under it.

        build_doc receives the chosen code and returns the document to store.
        A finished or abandoned room under the same code is replaced.
        """
        for attempt in range(1, self._max_attempts + 1):
            code = self._random_code()
            existing = await self._store.get(code)
            if _is_active(existing):
                logger.info("room code collision", room_code=code, attempt=attempt)
                continue
            replace_revision = existing["revision"] if existing is not None else None
            try:
                return await self._store.create(code, build_doc(code), replace_revision=replace_revision)
            except (DocumentExistsError, RevisionConflictError):
                logger.info("room code claimed concurrently", room_code=code, attempt=attempt)
        raise CodeSpaceExhaustedError(f"no free room code after {self._max_attempts} attempts")
