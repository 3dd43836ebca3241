"""A/D converter readings and the mask commands that select them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

AD_CHANNELS = 16
RESET_SEQUENCE = b"\n\n\n\n"


class MaskReply(Enum):
    """State of the reply to a mask command."""

    PENDING = 0
    ACCEPTED = -1
    FINISHED = -2


@dataclass
class ADInput:
    """Latest twelve-bit value of each A/D channel."""

    values: list[int] = field(default_factory=lambda: [0] * AD_CHANNELS)

    def process(self, buf: bytes) -> int:
        """Store readings from big-endian 16-bit words; return how many were read.

        The top four bits of each word name the channel, the rest is the value.
        """
        data = bytes(buf)
        if len(data) % 2:
            raise ValueError("A/D data must hold whole 16-bit words")
        count = 0
        for hi, lo in zip(data[::2], data[1::2]):
            word = (hi << 8) | lo
            self.values[word >> 12] = word & 0x0FFF
            count += 1
        return count

    def get(self, num: int) -> int:
        """Return the value of channel ``num``, or 0 for an unknown channel."""
        if num < 0 or num >= AD_CHANNELS:
            return 0
        return self.values[num]


def admask_command(mask: int) -> tuple[bytes, int]:
    """Build the ADMASK command for an 8-bit mask; return it and the channel count."""
    if not 0 <= mask <= 0xFF:
        raise ValueError(f"A/D mask out of range: {mask}")
    bits = format(mask, "08b")
    return f"ADMASK{bits}\n".encode("ascii"), bits.count("1")


def diomask_command(enable: bool) -> tuple[bytes, int]:
    """Build the GETIO command; return it and the number of digital inputs enabled."""
    flag = 1 if enable else 0
    return f"GETIO{flag}\n".encode("ascii"), flag


def mask_reply_status(data: bytes | str) -> MaskReply:
    """Classify the reply received so far to a mask command."""
    raw = data.encode("latin-1") if isinstance(data, str) else bytes(data)
    if b"00P\n\n" in raw:
        return MaskReply.ACCEPTED
    if b"\n\n" in raw:
        return MaskReply.FINISHED
    return MaskReply.PENDING