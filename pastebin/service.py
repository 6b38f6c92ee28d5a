"""
Paste service: creates pastes with fresh keys and resolves reads into
permitted or denied results.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from pastebin.config import settings
from pastebin.database import LookupStatus, PasteDatabase, resolve_now
from pastebin.exceptions import KeyCollision, KeyGenerationExhausted
from pastebin.keygen import KeyGenerator
from pastebin.models import PasteRecord
from pastebin.policy import AccessMode, Denied, DenialReason, ReadResult, evaluate

logger = logging.getLogger(__name__)


def compute_expire_at(expire_minutes: Optional[int], now: datetime) -> Optional[datetime]:
    """Absolute expiry for a paste. None or a non-positive value means it never expires."""
    if expire_minutes is None or expire_minutes <= 0:
        return None
    return now + timedelta(minutes=expire_minutes)


class PasteService:
    """Composes key generation, the paste store and the access policy."""

    def __init__(
        self,
        database: PasteDatabase,
        key_generator: Optional[KeyGenerator] = None,
        max_attempts: Optional[int] = None,
    ):
        self.db = database
        self.key_generator = key_generator or KeyGenerator(settings.KEY_LENGTH)
        if max_attempts is None:
            max_attempts = settings.KEY_MAX_ATTEMPTS
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts

    def create(
        self,
        content: str,
        syntax: Optional[str] = None,
        burn_after_reading: Optional[bool] = None,
        expire_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Store a new paste under a freshly generated key.

        Args:
            content: Text content of the paste
            syntax: Optional syntax label, defaults to plaintext
            burn_after_reading: Destroy the paste on its first view
            expire_minutes: Minutes until expiry; None or <= 0 never expires
            now: Creation time, defaults to the current UTC time

        Returns:
            The assigned key

        Raises:
            KeyGenerationExhausted: If every generated key collided
        """
        now = resolve_now(now)
        expire_at = compute_expire_at(expire_minutes, now)

        for attempt in range(1, self.max_attempts + 1):
            record = PasteRecord(
                key=self.key_generator.generate(),
                content=content,
                syntax=syntax or settings.DEFAULT_SYNTAX,
                burn_after_reading=bool(burn_after_reading),
                expire_at=expire_at,
                created_at=now,
            )
            try:
                self.db.put(record, now)
            except KeyCollision:
                logger.warning(f"Key collision on attempt {attempt}, regenerating")
                continue
            logger.info(
                f"Paste {record.key} created, length: {len(content)}, "
                f"syntax: {record.syntax}, burn: {record.burn_after_reading}"
            )
            return record.key

        logger.critical(f"Key generation exhausted after {self.max_attempts} attempts")
        raise KeyGenerationExhausted(self.max_attempts)

    def read(self, key: str, mode: AccessMode, now: Optional[datetime] = None) -> ReadResult:
        """
        Read a paste in the given access mode.

        The view mode consumes burn-after-reading pastes; raw and download
        never do and refuse burn-after-reading content altogether.
        """
        lookup = self.db.lookup(key, mode, now)

        if lookup.status is LookupStatus.EXPIRED:
            logger.warning(f"Paste {key} has expired ({mode.value})")
            return Denied(DenialReason.EXPIRED)
        if lookup.record is None:
            logger.warning(f"Paste {key} not found ({mode.value})")
            return Denied(DenialReason.NOT_FOUND)

        result = evaluate(mode, lookup.record)
        if isinstance(result, Denied):
            logger.warning(f"Paste {key} denied in {mode.value} mode: {result.reason.value}")
        elif mode.consumes and lookup.record.burn_after_reading:
            logger.info(f"Paste {key} burned after reading")
        return result
