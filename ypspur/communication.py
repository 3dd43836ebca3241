"""Six-bit printable encoding used on the serial link."""

from __future__ import annotations

from typing import Optional

_OFFSET = 0x40
_MASK16 = 0xFFFF


class DecodeError(ValueError):
    """Raised when encoded data holds characters below the encoding range."""

    def __init__(self, errors: int) -> None:
        super().__init__(f"{errors} invalid character(s) in encoded data")
        self.errors = errors


def encode(data: bytes, buf_max: Optional[int] = None) -> bytes:
    """Pack bytes into characters of six bits each, offset by 0x40.

    ``buf_max`` bounds the output; the output must be shorter than it.
    """
    src = bytes(data)
    out = bytearray()
    pos = 0
    s_pos = 0
    b = 0
    while pos < len(src) or s_pos >= 6:
        if s_pos >= 6:
            out.append(((b >> 10) & 0x3F) + _OFFSET)
            if buf_max is not None and len(out) >= buf_max:
                raise ValueError("encoded data does not fit the buffer")
            b = (b << 6) & _MASK16
            s_pos -= 6
        else:
            b = (b | (src[pos] << (8 - s_pos))) & _MASK16
            s_pos += 8
            pos += 1
            if pos >= len(src):
                s_pos += 4
    if buf_max is not None and len(out) >= buf_max:
        raise ValueError("encoded data does not fit the buffer")
    return bytes(out)


def decode(data: bytes, buf_max: Optional[int] = None) -> bytes:
    """Unpack six-bit characters back into bytes.

    Raises DecodeError when characters below 0x40 were seen, and
    ValueError when the output reaches ``buf_max``.
    """
    src = bytes(data)
    out = bytearray()
    s_pos = 0
    errors = 0
    dat = 0
    b = 0
    for ch in src:
        if ch >= _OFFSET:
            b = ch - _OFFSET
        else:
            errors += 1
        dat = (dat | (b << (10 - s_pos))) & _MASK16
        s_pos += 6
        if s_pos >= 8:
            out.append(dat >> 8)
            if buf_max is not None and len(out) >= buf_max:
                raise ValueError("decoded data does not fit the buffer")
            s_pos -= 8
            dat = (dat << 8) & _MASK16
    if errors:
        raise DecodeError(errors)
    return bytes(out)