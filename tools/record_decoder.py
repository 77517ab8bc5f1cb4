#!/usr/bin/env python3
"""
record_decoder.py - Field-driven decoder for fixed-width records

Walks a flattened descriptor list with a single forward cursor and builds the
requested value shape. Each primitive consumes exactly one descriptor; nested
shapes consume a run of descriptors in flattened order. There is no
backtracking: peeking never advances and consuming never rewinds.

Decoding rules (after ASCII-whitespace trim of the field text):
    bool        ''/'0' -> False, any other single character -> True
    int         [+-]?digits
    float       ASCII decimal or exponent form, inf, infinity, nan
    Char        one character, '' -> ' '
    str         trimmed text
    bytes       raw slice, untrimmed
    Optional    blank field -> None (field consumed), else the inner shape
    None/unit   field consumed and ignored
    List[X]     elements until descriptors run out
    Tuple/dataclass/NamedTuple  one element per declared slot
    Dict[str,X] key = descriptor name or "start..end", value decoded from it
    Enum/Literal  the next descriptor's *name* picks the variant
    Any         '1'/'0' -> bool, other single char -> str, int, float, text

Usage:
    from record_decoder import decode

    numbers = decode(b'111222', [FieldDescriptor(0, 3), FieldDescriptor(3, 6)],
                     List[int])
"""

import logging
import re
from typing import Any, List, Optional, Union

from record_errors import DecodeError, ParseError, ParseKind, UnexpectedEndOfRecord, Unsupported
from record_fields import FieldDescriptor, FieldSet, as_descriptors
from record_padding import BytesLike, extract, field_text
from record_shapes import Shape, ShapeKind, shape_for


logger = logging.getLogger(__name__)

INT_PATTERN = re.compile(r'[+-]?[0-9]+', re.ASCII)
FLOAT_PATTERN = re.compile(
    r'[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)',
    re.ASCII | re.IGNORECASE,
)


def parse_int(text: str, field: Optional[FieldDescriptor] = None) -> int:
    if not INT_PATTERN.fullmatch(text):
        raise ParseError(ParseKind.INT, text, field)
    return int(text)


def parse_float(text: str, field: Optional[FieldDescriptor] = None) -> float:
    if not FLOAT_PATTERN.fullmatch(text):
        raise ParseError(ParseKind.FLOAT, text, field)
    return float(text)


class Decoder:
    """Cursor over one record's descriptors.

    A Decoder is created per record and thrown away afterwards; the
    descriptor list is owned by it and drained as decoding proceeds.
    """

    def __init__(self, record: BytesLike, fields: Union[FieldSet, List[FieldDescriptor]]):
        self.record = record
        self._fields = as_descriptors(fields)
        self._pos = 0
        self._handlers = {
            ShapeKind.BOOLEAN: self._decode_bool,
            ShapeKind.INTEGER: self._decode_int,
            ShapeKind.FLOAT: self._decode_float,
            ShapeKind.CHARACTER: self._decode_char,
            ShapeKind.TEXT: self._decode_text,
            ShapeKind.BYTES: self._decode_bytes,
            ShapeKind.OPTIONAL: self._decode_optional,
            ShapeKind.UNIT: self._decode_unit,
            ShapeKind.SEQUENCE: self._decode_sequence,
            ShapeKind.PRODUCT: self._decode_product,
            ShapeKind.MAP: self._decode_map,
            ShapeKind.TAGGED_UNION: self._decode_tagged_union,
            ShapeKind.ANY: self._decode_any,
        }

    # -- cursor -------------------------------------------------------------

    @property
    def done(self) -> bool:
        return self._pos >= len(self._fields)

    @property
    def remaining(self) -> int:
        return len(self._fields) - self._pos

    def peek_field(self) -> FieldDescriptor:
        if self.done:
            raise UnexpectedEndOfRecord()
        return self._fields[self._pos]

    def next_field(self) -> FieldDescriptor:
        field = self.peek_field()
        self._pos += 1
        return field

    def skip_field(self) -> None:
        self.next_field()

    def peek_text(self) -> str:
        field = self.peek_field()
        return field_text(self.record, field)

    def next_text(self):
        field = self.next_field()
        return field_text(self.record, field), field

    def next_bytes(self) -> bytes:
        return extract(self.record, self.next_field())

    # -- dispatch -----------------------------------------------------------

    def decode(self, shape: Shape) -> Any:
        return self._handlers[shape.kind](shape)

    def _decode_bool(self, shape: Shape) -> bool:
        text, field = self.next_text()
        if len(text) > 1:
            raise ParseError(ParseKind.BOOL, text, field,
                             f"expected bool field to be 1 character, got {len(text)}")
        return text not in ('', '0')

    def _decode_int(self, shape: Shape) -> int:
        text, field = self.next_text()
        return parse_int(text, field)

    def _decode_float(self, shape: Shape) -> float:
        text, field = self.next_text()
        return parse_float(text, field)

    def _decode_char(self, shape: Shape) -> str:
        text, field = self.next_text()
        if len(text) > 1:
            raise ParseError(ParseKind.CHAR, text, field,
                             f"expected char field to be 1 character, got {len(text)}")
        return text or ' '

    def _decode_text(self, shape: Shape) -> str:
        text, _ = self.next_text()
        return text

    def _decode_bytes(self, shape: Shape):
        raw = self.next_bytes()
        return shape.build(raw) if shape.build else raw

    def _decode_optional(self, shape: Shape) -> Any:
        if self.peek_text() == '':
            self.skip_field()
            return None
        return self.decode(shape.inner)

    def _decode_unit(self, shape: Shape) -> Any:
        self.skip_field()
        return shape.build([]) if shape.build else None

    def _decode_sequence(self, shape: Shape):
        values = []
        while not self.done:
            values.append(self._decode_element(shape))
        return shape.build(values) if shape.build else values

    def _decode_element(self, shape: Shape) -> Any:
        start = self._pos
        value = self.decode(shape.inner)
        if self._pos == start:
            raise Unsupported(f"{shape.inner.describe()} elements consume no field",
                              self.peek_field())
        return value

    def _decode_product(self, shape: Shape):
        values = [self.decode(item) for item in shape.items]
        return shape.build(values)

    def _decode_map(self, shape: Shape) -> dict:
        result = {}
        while not self.done:
            key = self.peek_field().key
            result[key] = self._decode_element(shape)
        return result

    def _decode_tagged_union(self, shape: Shape) -> Any:
        field = self.peek_field()
        if field.name is None:
            raise DecodeError(f"no name for field with range {field.span}", field)

        variant = shape.variant(field.name)
        if variant is None:
            expected = ', '.join(shape.variants)
            raise DecodeError(f"unknown variant '{field.name}', expected one of: {expected}",
                              field)
        if variant.payload is not None:
            raise Unsupported(f"decoding variant '{variant.name}' with a payload", field)

        self.skip_field()
        if variant.construct is not None:
            return variant.construct()
        return variant.value

    def _decode_any(self, shape: Shape) -> Any:
        text, field = self.next_text()
        if len(text) == 1:
            if text == '1':
                return True
            if text == '0':
                return False
            return text
        if INT_PATTERN.fullmatch(text):
            return int(text)
        try:
            return parse_float(text, field)
        except ParseError:
            return text


def decode(record: BytesLike, fields: Union[FieldSet, List[FieldDescriptor]],
           into: Any = Any) -> Any:
    """
    Decode one record.

    Args:
        record: Bytes of exactly one record
        fields: FieldSet layout or flattened descriptor list
        into: Type hint (or resolved Shape) of the value to build

    Returns:
        The decoded value

    Raises:
        DecodeError: UnexpectedEndOfRecord, InvalidEncoding, ParseError, Unsupported
    """
    shape = shape_for(into)
    decoder = Decoder(record, fields)
    logger.debug("decoding %d-byte record with %d fields into %s",
                 len(record), decoder.remaining, shape.describe())
    return decoder.decode(shape)
