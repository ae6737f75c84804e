"""
Class invite code allocation.

A code is ``length`` characters drawn from lowercase letters and digits
(uppercased when configured). ``allocate_unique`` generates candidates until
one is not held by any class or the attempt limit runs out. The unique
constraint on ``classes.invite_code`` remains the final guard, since another
request can take the same code between the check and the insert.
"""

import logging
import secrets
import string
from typing import Callable, Optional

from app.core.config import Settings
from app.core.exceptions import AllocationExhausted
from app.core.storage import ClassroomStorage

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = string.ascii_lowercase + string.digits


def generate_invite_code(length: int = 6, uppercase: bool = False) -> str:
    """
    Random invite code, e.g. ``k3x9q2`` (or ``K3X9Q2`` when uppercase).

    Production-safe: uses secrets for the random part.
    """
    code = "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))
    return code.upper() if uppercase else code


class InviteCodeAllocator:
    def __init__(
        self,
        storage: ClassroomStorage,
        length: int = 6,
        uppercase: bool = False,
        max_attempts: int = 10,
        generator: Optional[Callable[[], str]] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.storage = storage
        self.length = length
        self.uppercase = uppercase
        self.max_attempts = max_attempts
        self._generator = generator

    @classmethod
    def from_settings(
        cls,
        storage: ClassroomStorage,
        settings: Settings,
        generator: Optional[Callable[[], str]] = None,
    ) -> "InviteCodeAllocator":
        return cls(
            storage,
            length=settings.invite_code_length,
            uppercase=settings.invite_code_uppercase,
            max_attempts=settings.invite_code_max_attempts,
            generator=generator,
        )

    def allocate(self) -> str:
        """Candidate code; not checked against storage."""
        if self._generator is not None:
            return self._generator()
        return generate_invite_code(self.length, self.uppercase)

    async def is_unique(self, code: str) -> bool:
        return not await self.storage.class_with_invite_code_exists(code)

    async def allocate_unique(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            code = self.allocate()
            if await self.is_unique(code):
                if attempt > 1:
                    logger.info("Allocated invite code after %d attempts", attempt)
                return code
            logger.debug("Invite code %s already taken (attempt %d/%d)", code, attempt, self.max_attempts)
        logger.warning("Invite code allocation exhausted after %d attempts", self.max_attempts)
        raise AllocationExhausted(self.max_attempts)
