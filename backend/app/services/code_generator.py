"""
Unique code generation.

16-character codes drawn with `secrets` from a fixed alphabet, checked
against the store and retried a bounded number of times.
"""

import secrets
import string
from typing import Awaitable, Callable, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import GenerationExhaustedError
from backend.app.models.device import Device
from backend.app.models.generated_qr_code import GeneratedQRCode
from backend.app.models.user import User

USER_CODE_ALPHABET = string.ascii_uppercase + string.digits
QR_CODE_ALPHABET = string.digits

ExistsCheck = Callable[[str], Awaitable[bool]]


class UniqueCodeGenerator:
    """
    Collision-free code generator.
    
    Args:
        alphabet: Characters codes are drawn from
        exists: Async predicate telling whether a code is already issued
        length: Code length
        max_attempts: Candidates tried per code before giving up
    """

    def __init__(
        self,
        alphabet: str,
        exists: ExistsCheck,
        length: int = settings.unique_code_length,
        max_attempts: int = settings.code_generation_max_attempts,
    ):
        if not alphabet:
            raise ValueError("alphabet must not be empty")
        self.alphabet = alphabet
        self.exists = exists
        self.length = length
        self.max_attempts = max_attempts

    def _candidate(self) -> str:
        return "".join(secrets.choice(self.alphabet) for _ in range(self.length))

    async def generate(self, reserved: Optional[Set[str]] = None) -> str:
        """
        Generate one code not present in the store nor in `reserved`.
        
        Raises:
            GenerationExhaustedError: every attempt collided
        """
        reserved = reserved or set()
        for _ in range(self.max_attempts):
            code = self._candidate()
            if code in reserved:
                continue
            if not await self.exists(code):
                return code
        raise GenerationExhaustedError(self.max_attempts)

    async def generate_batch(self, count: int) -> List[str]:
        """Generate `count` distinct codes."""
        codes: List[str] = []
        issued: Set[str] = set()
        for _ in range(count):
            code = await self.generate(reserved=issued)
            issued.add(code)
            codes.append(code)
        return codes


def user_code_generator(db: AsyncSession) -> UniqueCodeGenerator:
    """Alphanumeric generator for user unique codes."""
    async def exists(code: str) -> bool:
        result = await db.execute(select(User.id).where(User.unique_code == code))
        return result.scalar_one_or_none() is not None
    
    return UniqueCodeGenerator(USER_CODE_ALPHABET, exists)


def qr_code_generator(db: AsyncSession) -> UniqueCodeGenerator:
    """Digit-only generator for QR batch codes."""
    async def exists(code: str) -> bool:
        generated = await db.execute(select(GeneratedQRCode.id).where(GeneratedQRCode.qr_code == code))
        if generated.scalar_one_or_none() is not None:
            return True
        device = await db.execute(select(Device.id).where(Device.qr_code == code))
        return device.scalar_one_or_none() is not None
    
    return UniqueCodeGenerator(QR_CODE_ALPHABET, exists)
