"""
Access policy for paste reads.

Expiry is enforced by the store on every access mode, so the policy only
decides whether burn-after-reading content may leave through a given mode.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Union

from pastebin.models import PasteRecord


class AccessMode(str, Enum):
    VIEW = "view"
    RAW = "raw"
    DOWNLOAD = "download"

    @property
    def consumes(self) -> bool:
        """Only the view mode burns a burn-after-reading paste."""
        return self is AccessMode.VIEW


class DenialReason(str, Enum):
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    BURN_CONTENT_FORBIDDEN = "burn_content_forbidden"


@dataclass(frozen=True)
class Permitted:
    record: PasteRecord


@dataclass(frozen=True)
class Denied:
    reason: DenialReason


ReadResult = Union[Permitted, Denied]


def evaluate(mode: AccessMode, record: PasteRecord) -> ReadResult:
    if mode is not AccessMode.VIEW and record.burn_after_reading:
        return Denied(DenialReason.BURN_CONTENT_FORBIDDEN)
    return Permitted(record)
