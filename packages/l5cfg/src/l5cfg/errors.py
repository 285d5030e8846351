# packages/l5cfg/src/l5cfg/errors.py
from __future__ import annotations

__all__ = [
    "CfgBinError",
    "DecodeError",
    "TooSmall",
    "InvalidFooter",
    "InvalidHeaderField",
    "KeyTableCorrupt",
    "EntriesBufferTooSmall",
]


class CfgBinError(ValueError):
    """Base error of the cfg.bin codec (encode and decode)."""


class DecodeError(CfgBinError):
    """The buffer cannot be parsed as a cfg.bin document (non-recoverable)."""


class TooSmall(DecodeError):
    pass


class InvalidFooter(DecodeError):
    pass


class InvalidHeaderField(DecodeError):
    """A header offset/length/count failed its bound check."""

    def __init__(self, field: str, value: int, reason: str = "") -> None:
        self.field = field
        self.value = value
        msg = f"invalid {field}: {value}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class KeyTableCorrupt(DecodeError):
    pass


class EntriesBufferTooSmall(DecodeError):
    pass
