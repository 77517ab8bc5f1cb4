#!/usr/bin/env python3
"""
record_padding.py - Byte-range codec for a single fixed-width field

Encode side:
    pad(value_bytes, descriptor) -> exactly descriptor.width bytes
        - longer values are cut on the right, whatever the justification
        - shorter values get pad bytes after them (LEFT) or before them (RIGHT)

Decode side:
    extract(record, descriptor)     -> record[start:end], or UnexpectedEndOfRecord
    field_text(record, descriptor)  -> UTF-8 text with ASCII whitespace trimmed

The trim always strips ASCII whitespace and ignores the descriptor's pad
character, so a field padded with e.g. '0' keeps its zeros on decode.
"""

from typing import Union

from record_errors import InvalidEncoding, UnexpectedEndOfRecord
from record_fields import FieldDescriptor, Justify


# bytes.strip() set, spelled out for the str side.
ASCII_WHITESPACE = ' \t\n\r\x0b\x0c'

BytesLike = Union[bytes, bytearray, memoryview]


def pad(value: BytesLike, descriptor: FieldDescriptor) -> bytes:
    """Fit ``value`` into the descriptor's width.

    >>> pad(b'123', FieldDescriptor(0, 5, pad_with='T', justify=Justify.RIGHT))
    b'TT123'
    """
    width = descriptor.width
    data = bytes(value)

    if len(data) >= width:
        return data[:width]

    padding = descriptor.pad_byte * (width - len(data))
    if descriptor.justify is Justify.LEFT:
        return data + padding
    return padding + data


def extract(record: BytesLike, descriptor: FieldDescriptor) -> bytes:
    """Slice the descriptor's range out of the record, never clamping."""
    if descriptor.end > len(record):
        raise UnexpectedEndOfRecord(descriptor)
    return bytes(record[descriptor.start:descriptor.end])


def decode_text(raw: bytes, descriptor: FieldDescriptor) -> str:
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError as e:
        raise InvalidEncoding(f"field bytes are not valid UTF-8: {e.reason}",
                              descriptor) from e


def field_text(record: BytesLike, descriptor: FieldDescriptor) -> str:
    """Extract, decode and trim one field."""
    return decode_text(extract(record, descriptor), descriptor).strip(ASCII_WHITESPACE)
