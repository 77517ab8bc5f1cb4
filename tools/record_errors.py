#!/usr/bin/env python3
"""
record_errors.py - Error taxonomy for the fixed-width record codec

Every failure is a deterministic function of (bytes, fields, requested shape),
so nothing here is retried: errors propagate to the immediate caller and a
record is decoded or encoded entirely or not at all.

Hierarchy:
    FixedWidthError (ValueError)
    +-- UsageError                 descriptor construction misuse
    +-- DecodeError
    |   +-- UnexpectedEndOfRecord  no descriptor left / range past the buffer
    |   +-- InvalidEncoding        bytes are not valid UTF-8 text
    |   +-- ParseError             bool/char/int/float conversion failure
    |   +-- Unsupported            (also an EncodeError)
    +-- EncodeError
        +-- UnexpectedEndOfFields  values remain but descriptors do not
        +-- Unsupported
"""

from enum import Enum
from typing import Optional


class ParseKind(Enum):
    """Primitive conversion that failed."""
    BOOL = 'bool'
    CHAR = 'char'
    INT = 'int'
    FLOAT = 'float'


def _describe(field) -> str:
    if field is None:
        return ''
    label = f" '{field.name}'" if field.name else ''
    return f" (field{label} {field.start}..{field.end})"


class FixedWidthError(ValueError):
    """Base class for all codec errors.

    Derives from ValueError so callers that treat malformed payloads as
    ValueError keep working.
    """

    def __init__(self, message: str, field=None):
        self.field = field
        super().__init__(message + _describe(field))


class UsageError(FixedWidthError):
    """A field layout was built incorrectly (e.g. naming a Seq)."""


class DecodeError(FixedWidthError):
    """Failure while turning record bytes into a value."""


class EncodeError(FixedWidthError):
    """Failure while turning a value into record bytes."""


class UnexpectedEndOfRecord(DecodeError):

    def __init__(self, field=None):
        if field is None:
            message = 'no field left to decode'
        else:
            message = 'byte length of record was less than defined length'
        super().__init__(message, field)


class UnexpectedEndOfFields(EncodeError):

    def __init__(self):
        super().__init__('unexpected end of fields')


class InvalidEncoding(DecodeError):
    """The bytes of a text field are not valid UTF-8."""


class ParseError(DecodeError):
    """A trimmed field could not be converted to the requested primitive."""

    def __init__(self, kind: ParseKind, text: str, field=None,
                 reason: Optional[str] = None):
        self.kind = kind
        self.text = text
        message = reason or f"invalid {kind.value} literal {text!r}"
        super().__init__(message, field)


class Unsupported(DecodeError, EncodeError):
    """A value shape the fixed-width model cannot represent."""

    def __init__(self, what: str, field=None):
        self.what = what
        super().__init__(f"unsupported: {what}", field)
