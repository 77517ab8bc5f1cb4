#!/usr/bin/env python3
"""
record_encoder.py - Field-driven encoder for fixed-width records

Mirror of record_decoder: the same forward cursor over the flattened
descriptors, one descriptor per primitive value. Each primitive is turned into
its canonical text, UTF-8 encoded and padded/truncated to the width of the
next descriptor. Padded slices are appended in descriptor order.

Canonical text:
    bool   '1' / '0'
    int    str(value)
    float  plain decimal, no exponent; integral values without '.0'
           (9876.0 -> '9876', 1e-05 -> '0.00001')
    Char   exactly one character
    str    itself
    Enum   member name
    None   empty, i.e. a field made only of pad characters

Maps are rejected: without a fixed key order they cannot be lined up with
byte ranges.

Usage:
    from record_encoder import encode

    record = encode((123, 'abc'), FieldSet.seq(FieldSet.new_field('0..4'),
                                                 FieldSet.new_field('4..7')))
    # b'123 abc'
"""

import dataclasses
import logging
import math
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Union

from record_errors import EncodeError, UnexpectedEndOfFields, Unsupported
from record_fields import FieldDescriptor, FieldSet, as_descriptors
from record_padding import pad
from record_shapes import ANY_SHAPE, Shape, ShapeKind, Tagged, shape_for, shape_of_value


logger = logging.getLogger(__name__)


def format_float(value: float) -> str:
    """Plain decimal text, never exponent notation.

    >>> format_float(9876.0), format_float(0.00001)
    ('9876', '0.00001')
    """
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return 'inf' if value > 0 else '-inf'
    # shortest round-trip digits, spelled out without an exponent
    number = Decimal(repr(value))
    if value.is_integer():
        number = number.to_integral_value()
    return format(number, 'f')


class Encoder:
    """Cursor over one record's descriptors plus the growing output."""

    def __init__(self, fields: Union[FieldSet, List[FieldDescriptor]]):
        self._fields = as_descriptors(fields)
        self._pos = 0
        self.output = bytearray()
        self._handlers = {
            ShapeKind.BOOLEAN: self._encode_bool,
            ShapeKind.INTEGER: self._encode_int,
            ShapeKind.FLOAT: self._encode_float,
            ShapeKind.CHARACTER: self._encode_char,
            ShapeKind.TEXT: self._encode_text,
            ShapeKind.BYTES: self._encode_bytes,
            ShapeKind.OPTIONAL: self._encode_optional,
            ShapeKind.UNIT: self._encode_unit,
            ShapeKind.SEQUENCE: self._encode_sequence,
            ShapeKind.PRODUCT: self._encode_product,
            ShapeKind.MAP: self._encode_map,
            ShapeKind.TAGGED_UNION: self._encode_tagged_union,
            ShapeKind.ANY: self._encode_any,
        }

    @property
    def remaining(self) -> int:
        return len(self._fields) - self._pos

    def next_field(self) -> FieldDescriptor:
        if self._pos >= len(self._fields):
            raise UnexpectedEndOfFields()
        field = self._fields[self._pos]
        self._pos += 1
        return field

    def write_bytes(self, value: bytes) -> None:
        self.output += pad(value, self.next_field())

    def write_text(self, text: str) -> None:
        self.write_bytes(text.encode('utf-8'))

    def encode(self, value: Any, shape: Optional[Shape] = None) -> None:
        if shape is None or shape.kind is ShapeKind.ANY:
            shape = shape_of_value(value)
        self._handlers[shape.kind](value, shape)

    def _mismatch(self, value: Any, shape: Shape, cause: Exception = None):
        error = EncodeError(f"cannot encode {type(value).__name__} value {value!r} "
                            f"as {shape.describe()}")
        if cause is not None:
            raise error from cause
        raise error

    def _encode_bool(self, value: Any, shape: Shape) -> None:
        if not isinstance(value, bool):
            self._mismatch(value, shape)
        self.write_text('1' if value else '0')

    def _encode_int(self, value: Any, shape: Shape) -> None:
        if isinstance(value, (bool, float)) or not isinstance(value, int):
            self._mismatch(value, shape)
        self.write_text(str(int(value)))

    def _encode_float(self, value: Any, shape: Shape) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            self._mismatch(value, shape)
        self.write_text(format_float(float(value)))

    def _encode_char(self, value: Any, shape: Shape) -> None:
        if not isinstance(value, str) or len(value) != 1:
            self._mismatch(value, shape)
        self.write_text(value)

    def _encode_text(self, value: Any, shape: Shape) -> None:
        if not isinstance(value, str):
            self._mismatch(value, shape)
        self.write_text(value)

    def _encode_bytes(self, value: Any, shape: Shape) -> None:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            self._mismatch(value, shape)
        self.write_bytes(bytes(value))

    def _encode_optional(self, value: Any, shape: Shape) -> None:
        if value is None:
            self.write_bytes(b'')
        else:
            self.encode(value, shape.inner)

    def _encode_unit(self, value: Any, shape: Shape) -> None:
        self.write_bytes(b'')

    def _encode_sequence(self, value: Any, shape: Shape) -> None:
        if isinstance(value, (str, bytes)):
            self._mismatch(value, shape)
        try:
            elements = iter(value)
        except TypeError as e:
            self._mismatch(value, shape, e)
        for element in elements:
            self.encode(element, shape.inner)

    def _encode_product(self, value: Any, shape: Shape) -> None:
        values = shape.unpack(value)
        if len(values) != len(shape.items):
            raise EncodeError(f"expected {len(shape.items)} values for "
                              f"{shape.describe()}, got {len(values)}")
        for item, item_shape in zip(values, shape.items):
            self.encode(item, item_shape)

    def _encode_map(self, value: Any, shape: Shape) -> None:
        raise Unsupported('encoding a map: key order cannot be aligned to byte ranges')

    def _encode_tagged_union(self, value: Any, shape: Shape) -> None:
        if isinstance(value, Tagged):
            self._check_variant(value.name, shape)
            self.write_text(value.name)
            if value.payload is not None:
                self.encode(value.payload, ANY_SHAPE)
            return

        if isinstance(value, Enum):
            self._check_variant(value.name, shape)
            self.write_text(value.name)
            return

        if isinstance(value, str):
            variant = self._check_variant(value, shape)
            if variant is not None and variant.payload is not None:
                self._mismatch(value, shape)
            self.write_text(value)
            return

        if dataclasses.is_dataclass(value) or isinstance(value, tuple):
            name = type(value).__name__
            variant = self._check_variant(name, shape)
            self.write_text(name)
            if variant is None:
                self.encode(value)
            elif variant.payload is not None:
                self.encode(value, variant.payload)
            return

        self._mismatch(value, shape)

    def _check_variant(self, name: str, shape: Shape):
        if not shape.variants:
            return None
        variant = shape.variant(name)
        if variant is None:
            expected = ', '.join(shape.variants)
            raise EncodeError(f"unknown variant '{name}', expected one of: {expected}")
        return variant

    def _encode_any(self, value: Any, shape: Shape) -> None:
        self.encode(value, shape_of_value(value))


def encode(value: Any, fields: Union[FieldSet, List[FieldDescriptor]],
           shape: Any = None) -> bytes:
    """
    Encode one value into record bytes.

    Args:
        value: Value to render
        fields: FieldSet layout or flattened descriptor list
        shape: Optional type hint; inferred from ``value`` when omitted

    Returns:
        Record bytes (no line break)

    Raises:
        EncodeError: UnexpectedEndOfFields, Unsupported, value/shape mismatch
    """
    resolved = shape_for(shape) if shape is not None else None
    encoder = Encoder(fields)
    logger.debug("encoding %s with %d fields", type(value).__name__, encoder.remaining)
    encoder.encode(value, resolved)
    return bytes(encoder.output)
