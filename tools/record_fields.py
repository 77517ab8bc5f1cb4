#!/usr/bin/env python3
"""
record_fields.py - Field descriptor model for fixed-width records

A record is a flat run of bytes with no delimiters. Each addressable slot is
described by a FieldDescriptor (byte range, optional name, pad character,
justification). Descriptors are grouped into a FieldSet tree that mirrors the
nesting of the value being decoded or encoded:

    FieldSet = Item(FieldDescriptor) | Seq([FieldSet, ...])

The decoder and encoder never look at the tree itself; they consume the
ordered list produced by FieldSet.flatten().

Usage:
    from record_fields import FieldSet, Justify

    fields = FieldSet.seq(
        FieldSet.new_field(range(0, 6)).name('name'),
        FieldSet.new_field('6..9').pad_with('0').justify(Justify.RIGHT),
    )
    for descriptor in fields.flatten():
        print(descriptor.key, descriptor.width)
"""

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterator, List, Optional, Tuple, Union

from record_errors import UsageError


RANGE_PATTERN = re.compile(r'^\s*(\d+)\s*\.\.\s*(\d+)\s*$')

RangeLike = Union[range, Tuple[int, int], List[int], str]


class Justify(Enum):
    """Side of the field the value is aligned to; padding goes on the other side."""
    LEFT = 'left'
    RIGHT = 'right'

    @classmethod
    def coerce(cls, value: Union['Justify', str]) -> 'Justify':
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UsageError(f"justify must be 'left' or 'right', got {value!r}")


class LineBreak(Enum):
    """Separator between records, only relevant to record I/O."""
    NONE = b''
    NEWLINE = b'\n'
    CRLF = b'\r\n'

    @property
    def byte_width(self) -> int:
        return len(self.value)

    @property
    def as_bytes(self) -> bytes:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> 'LineBreak':
        aliases = {
            'none': cls.NONE,
            'lf': cls.NEWLINE,
            'newline': cls.NEWLINE,
            'crlf': cls.CRLF,
        }
        try:
            return aliases[name.strip().lower()]
        except KeyError:
            raise UsageError(f"unknown line break {name!r}") from None


def parse_range(value: RangeLike) -> Tuple[int, int]:
    """Normalize a byte range to a (start, end) pair.

    Accepts a step-1 ``range``, a two-item tuple/list, or a ``"start..end"``
    string.
    """
    if isinstance(value, range):
        if value.step != 1:
            raise UsageError(f"byte range must have step 1, got {value!r}")
        start, end = value.start, value.stop
    elif isinstance(value, str):
        match = RANGE_PATTERN.match(value)
        if not match:
            raise UsageError(f"invalid range {value!r}, expected 'start..end'")
        start, end = int(match.group(1)), int(match.group(2))
    elif isinstance(value, (tuple, list)) and len(value) == 2:
        start, end = value
    else:
        raise UsageError(f"invalid range {value!r}")

    if isinstance(start, bool) or isinstance(end, bool) \
            or not isinstance(start, int) or not isinstance(end, int):
        raise UsageError(f"range bounds must be integers, got {value!r}")
    if start < 0 or start > end:
        raise UsageError(f"invalid range {start}..{end}: need 0 <= start <= end")
    return start, end


def _check_pad(value: Any) -> str:
    if not isinstance(value, str) or len(value) != 1:
        raise UsageError(f"pad_with must be a single character, got {value!r}")
    if ord(value) > 0xFF:
        raise UsageError(f"pad_with must fit in one byte, got {value!r}")
    return value


@dataclass(frozen=True)
class FieldDescriptor:
    """One addressable slot ``[start, end)`` of a record."""
    start: int
    end: int
    name: Optional[str] = None
    pad_with: str = ' '
    justify: Justify = Justify.LEFT

    def __post_init__(self):
        parse_range((self.start, self.end))
        _check_pad(self.pad_with)
        if not isinstance(self.justify, Justify):
            object.__setattr__(self, 'justify', Justify.coerce(self.justify))

    @classmethod
    def new(cls, byte_range: RangeLike) -> 'FieldDescriptor':
        start, end = parse_range(byte_range)
        return cls(start, end)

    @property
    def range(self) -> range:
        return range(self.start, self.end)

    @property
    def width(self) -> int:
        return self.end - self.start

    @property
    def span(self) -> str:
        return f"{self.start}..{self.end}"

    @property
    def key(self) -> str:
        """Map key: the declared name, or ``"start..end"`` when unnamed."""
        return self.name if self.name is not None else self.span

    @property
    def pad_byte(self) -> bytes:
        return bytes([ord(self.pad_with)])


class FieldSet:
    """A tree of field descriptors: an Item leaf or a Seq of FieldSets.

    Builder methods never mutate; they return a modified copy, so a layout
    can be shared freely and flattened once per record.
    """

    @staticmethod
    def new_field(byte_range: RangeLike) -> 'Item':
        """Create a leaf with default name (None), pad (' ') and justify (left)."""
        return Item(FieldDescriptor.new(byte_range))

    @staticmethod
    def seq(*items: 'FieldSet') -> 'Seq':
        return Seq(tuple(items))

    def name(self, value: str) -> 'FieldSet':
        raise NotImplementedError

    def pad_with(self, value: str) -> 'FieldSet':
        raise NotImplementedError

    def justify(self, value: Union[Justify, str]) -> 'FieldSet':
        raise NotImplementedError

    def append(self, other: 'FieldSet') -> 'Seq':
        """Add ``other`` as one element, keeping its nesting."""
        raise NotImplementedError

    def extend(self, other: 'FieldSet') -> 'Seq':
        """Splice the top-level elements of ``other`` into this sequence."""
        raise NotImplementedError

    def __iter__(self) -> Iterator['FieldSet']:
        raise NotImplementedError

    def flatten(self) -> List[FieldDescriptor]:
        """Depth-first, left-to-right list of leaf descriptors.

        Uses an explicit stack of iterators so deeply nested layouts do not
        hit the interpreter recursion limit.
        """
        flat: List[FieldDescriptor] = []
        stack = [iter((self,))]
        while stack:
            node = next(stack[-1], None)
            if node is None:
                stack.pop()
            elif isinstance(node, Item):
                flat.append(node.field)
            else:
                stack.append(iter(node.items))
        return flat


@dataclass(frozen=True)
class Item(FieldSet):
    field: FieldDescriptor

    def name(self, value: str) -> 'Item':
        if not isinstance(value, str):
            raise UsageError(f"field name must be a string, got {value!r}")
        return Item(replace(self.field, name=value))

    def pad_with(self, value: str) -> 'Item':
        return Item(replace(self.field, pad_with=_check_pad(value)))

    def justify(self, value: Union[Justify, str]) -> 'Item':
        return Item(replace(self.field, justify=Justify.coerce(value)))

    def append(self, other: FieldSet) -> 'Seq':
        return Seq((self, other))

    def extend(self, other: FieldSet) -> 'Seq':
        if isinstance(other, Item):
            return self.append(other)
        return Seq((self,)).extend(other)

    def __iter__(self) -> Iterator[FieldSet]:
        return iter((self,))


@dataclass(frozen=True)
class Seq(FieldSet):
    items: Tuple[FieldSet, ...] = ()

    def __post_init__(self):
        items = tuple(self.items)
        for item in items:
            if not isinstance(item, FieldSet):
                raise UsageError(f"Seq elements must be FieldSets, got {item!r}")
        object.__setattr__(self, 'items', items)

    def name(self, value: str) -> 'Seq':
        raise UsageError('setting a name on a FieldSet Seq is not feasible')

    def pad_with(self, value: str) -> 'Seq':
        return Seq(tuple(item.pad_with(value) for item in self.items))

    def justify(self, value: Union[Justify, str]) -> 'Seq':
        justify = Justify.coerce(value)
        return Seq(tuple(item.justify(justify) for item in self.items))

    def append(self, other: FieldSet) -> 'Seq':
        return Seq(self.items + (other,))

    def extend(self, other: FieldSet) -> 'Seq':
        return Seq(self.items + tuple(other))

    def __iter__(self) -> Iterator[FieldSet]:
        return iter(self.items)


def field_seq(*items: FieldSet) -> Seq:
    """Shorthand for ``FieldSet.seq(...)``."""
    return Seq(tuple(items))


def as_descriptors(fields: Union[FieldSet, List[FieldDescriptor], Tuple[FieldDescriptor, ...]]
                   ) -> List[FieldDescriptor]:
    """Return a fresh, owned descriptor list for one decode/encode call."""
    if isinstance(fields, FieldSet):
        return fields.flatten()
    if isinstance(fields, FieldDescriptor):
        return [fields]
    descriptors = list(fields)
    for descriptor in descriptors:
        if not isinstance(descriptor, FieldDescriptor):
            raise UsageError(f"expected FieldDescriptor, got {descriptor!r}")
    return descriptors
