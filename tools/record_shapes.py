#!/usr/bin/env python3
"""
record_shapes.py - Closed set of value shapes the record codec understands

Fixed-width records are not self describing, so the caller states what a
record should become. That request is a plain Python type hint which is
resolved once into a Shape tree; the decoder and encoder then dispatch on
Shape.kind only.

Supported hints:
    bool, int, float, str, bytes, bytearray, Char
    Optional[X], None
    List[X], Sequence[X], Tuple[X, ...], list, tuple
    Tuple[A, B], dataclasses, NamedTuple
    Dict[str, X], Mapping[str, X], dict
    Enum subclasses, Literal['a', 'b'], Union[DataclassA, DataclassB]
    Any, object, NewType(...)

Usage:
    from record_shapes import shape_for, Char

    shape = shape_for(Optional[Char])
    assert shape.kind is ShapeKind.OPTIONAL
"""

import collections.abc
import dataclasses
import typing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, NewType, Optional, Tuple

from record_errors import Unsupported

try:
    from types import UnionType
except ImportError:  # Python < 3.10 has no ``X | Y`` syntax
    UnionType = None


Char = NewType('Char', str)
"""A single character; a blank field decodes to ``' '``."""

NoneType = type(None)


class ShapeKind(Enum):
    BOOLEAN = 'boolean'
    INTEGER = 'integer'
    FLOAT = 'float'
    CHARACTER = 'character'
    TEXT = 'text'
    BYTES = 'bytes'
    OPTIONAL = 'optional'
    UNIT = 'unit'
    SEQUENCE = 'sequence'
    PRODUCT = 'product'
    MAP = 'map'
    TAGGED_UNION = 'tagged_union'
    ANY = 'any'


@dataclass(frozen=True)
class Tagged:
    """Value of a variant that carries a payload.

    Encodes as the variant name in one field followed by the payload.
    """
    name: str
    payload: Any = None


@dataclass
class Variant:
    name: str
    value: Any
    payload: Optional['Shape'] = None
    construct: Optional[Callable[[], Any]] = None


@dataclass
class Shape:
    """Resolved form of a type hint.

    ``inner`` is the wrapped shape of OPTIONAL, the element of SEQUENCE and
    the value of MAP. ``items``/``names`` describe a PRODUCT in declaration
    order. ``build`` turns decoded parts into the final Python value and
    ``unpack`` does the reverse for the encoder.
    """
    kind: ShapeKind
    hint: Any = None
    inner: Optional['Shape'] = None
    items: Tuple['Shape', ...] = ()
    names: Tuple[str, ...] = ()
    variants: Dict[str, Variant] = field(default_factory=dict)
    build: Optional[Callable[[List[Any]], Any]] = None
    unpack: Optional[Callable[[Any], List[Any]]] = None

    def variant(self, name: str) -> Optional[Variant]:
        return self.variants.get(name)

    def describe(self) -> str:
        if self.hint is None:
            return self.kind.value
        return getattr(self.hint, '__name__', None) or repr(self.hint)


ANY_SHAPE = Shape(ShapeKind.ANY)
UNIT_SHAPE = Shape(ShapeKind.UNIT, hint=None)

_PRIMITIVES = {
    bool: ShapeKind.BOOLEAN,
    int: ShapeKind.INTEGER,
    float: ShapeKind.FLOAT,
    str: ShapeKind.TEXT,
    bytes: ShapeKind.BYTES,
    bytearray: ShapeKind.BYTES,
}

_SEQUENCE_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence)
_MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def _is_union(origin) -> bool:
    return origin is typing.Union or (UnionType is not None and origin is UnionType)


def _is_namedtuple(hint) -> bool:
    return isinstance(hint, type) and issubclass(hint, tuple) and hasattr(hint, '_fields')


def _is_dataclass_type(hint) -> bool:
    return isinstance(hint, type) and dataclasses.is_dataclass(hint)


def init_fields(cls) -> List[dataclasses.Field]:
    """Dataclass fields that take part in the record, in declaration order."""
    return [f for f in dataclasses.fields(cls) if f.init]


def shape_for(hint: Any) -> Shape:
    """Resolve a type hint into a Shape, or raise Unsupported."""
    return _resolve(hint, ())


def _resolve(hint: Any, seen: Tuple[Any, ...]) -> Shape:
    if isinstance(hint, Shape):
        return hint
    if hint is Any or hint is object:
        return ANY_SHAPE
    if hint is Char:
        return Shape(ShapeKind.CHARACTER, hint=Char)
    if hasattr(hint, '__supertype__'):
        return _resolve(hint.__supertype__, seen)
    if hint is None or hint is NoneType:
        return UNIT_SHAPE
    if isinstance(hint, type) and hint in _PRIMITIVES:
        return _primitive(hint)

    # bare Tuple has origin tuple and no args, same as Tuple[()] on 3.11+
    if hint is tuple or hint is typing.Tuple:
        return Shape(ShapeKind.SEQUENCE, hint=hint, inner=ANY_SHAPE, build=tuple)

    origin = typing.get_origin(hint)
    args = typing.get_args(hint)

    if _is_union(origin):
        return _union(hint, args, seen)
    if origin is typing.Literal:
        return _literal(hint, args)
    if origin is tuple:
        return _tuple(hint, args, seen)
    if origin in _SEQUENCE_ORIGINS:
        element = _resolve(args[0], seen) if args else ANY_SHAPE
        return Shape(ShapeKind.SEQUENCE, hint=hint, inner=element, build=list)
    if origin in _MAP_ORIGINS:
        return _mapping(hint, args, seen)

    if hint is list:
        return Shape(ShapeKind.SEQUENCE, hint=hint, inner=ANY_SHAPE, build=list)
    if hint is dict:
        return Shape(ShapeKind.MAP, hint=hint, inner=ANY_SHAPE)

    if isinstance(hint, type) and issubclass(hint, Enum):
        variants = {name: Variant(name, member)
                    for name, member in hint.__members__.items()}
        return Shape(ShapeKind.TAGGED_UNION, hint=hint, variants=variants)

    if hint in seen:
        raise Unsupported(f"recursive type {hint!r}")
    if _is_dataclass_type(hint):
        return _dataclass(hint, seen + (hint,))
    if _is_namedtuple(hint):
        return _namedtuple(hint, seen + (hint,))

    raise Unsupported(f"type {hint!r}")


def _primitive(hint: type) -> Shape:
    kind = _PRIMITIVES[hint]
    build = bytearray if hint is bytearray else None
    return Shape(kind, hint=hint, build=build)


def _union(hint, args, seen) -> Shape:
    members = [a for a in args if a is not NoneType]
    if len(members) < len(args):
        inner = members[0] if len(members) == 1 else typing.Union[tuple(members)]
        return Shape(ShapeKind.OPTIONAL, hint=hint, inner=_resolve(inner, seen))

    if all(_is_dataclass_type(m) or _is_namedtuple(m) for m in members):
        variants = {}
        for member in members:
            variants[member.__name__] = _class_variant(member, _resolve(member, seen))
        return Shape(ShapeKind.TAGGED_UNION, hint=hint, variants=variants)

    raise Unsupported(f"union {hint!r}: only Optional[...] or unions of dataclasses")


def _class_variant(member, resolved: Shape) -> Variant:
    # a field-less class carries nothing past its name
    if resolved.kind is ShapeKind.UNIT or (resolved.kind is ShapeKind.PRODUCT
                                           and not resolved.items):
        return Variant(member.__name__, member,
                       construct=lambda: resolved.build([]))
    return Variant(member.__name__, member, payload=resolved)


def _literal(hint, args) -> Shape:
    variants = {}
    for arg in args:
        if not isinstance(arg, str):
            raise Unsupported(f"non-string literal {arg!r} in {hint!r}")
        variants[arg] = Variant(arg, arg)
    return Shape(ShapeKind.TAGGED_UNION, hint=hint, variants=variants)


def _tuple(hint, args, seen) -> Shape:
    if len(args) == 2 and args[1] is Ellipsis:
        return Shape(ShapeKind.SEQUENCE, hint=hint, inner=_resolve(args[0], seen),
                     build=tuple)
    if args == ((),):  # Tuple[()] on older interpreters
        args = ()
    items = tuple(_resolve(a, seen) for a in args)
    return Shape(ShapeKind.PRODUCT, hint=hint, items=items,
                 build=tuple, unpack=list)


def _mapping(hint, args, seen) -> Shape:
    if args:
        key, value = args
        if key is not str and key is not Any:
            raise Unsupported(f"map keys must be str, got {key!r}")
        inner = _resolve(value, seen)
    else:
        inner = ANY_SHAPE
    return Shape(ShapeKind.MAP, hint=hint, inner=inner)


def _dataclass(cls, seen) -> Shape:
    fields = init_fields(cls)
    if not fields:
        return Shape(ShapeKind.UNIT, hint=cls, build=lambda _: cls())

    hints = typing.get_type_hints(cls)
    names = tuple(f.name for f in fields)
    items = tuple(_resolve(hints.get(name, Any), seen) for name in names)

    def build(values):
        return cls(**dict(zip(names, values)))

    def unpack(value):
        return [getattr(value, name) for name in names]

    return Shape(ShapeKind.PRODUCT, hint=cls, items=items, names=names,
                 build=build, unpack=unpack)


def _namedtuple(cls, seen) -> Shape:
    hints = typing.get_type_hints(cls)
    names = tuple(cls._fields)
    items = tuple(_resolve(hints.get(name, Any), seen) for name in names)
    return Shape(ShapeKind.PRODUCT, hint=cls, items=items, names=names,
                 build=lambda values: cls(*values), unpack=list)


def shape_of_value(value: Any) -> Shape:
    """Infer the shape of a runtime value for encoding without a hint."""
    if value is None:
        return UNIT_SHAPE
    if isinstance(value, Enum):
        return shape_for(type(value))
    if isinstance(value, Tagged):
        return Shape(ShapeKind.TAGGED_UNION, hint=Tagged)
    if isinstance(value, bool):
        return _primitive(bool)
    if isinstance(value, int):
        return _primitive(int)
    if isinstance(value, float):
        return _primitive(float)
    if isinstance(value, str):
        return _primitive(str)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _primitive(bytes)
    if dataclasses.is_dataclass(value) or _is_namedtuple(type(value)):
        return shape_for(type(value))
    if isinstance(value, collections.abc.Mapping):
        return Shape(ShapeKind.MAP, hint=type(value), inner=ANY_SHAPE)
    if isinstance(value, (list, tuple)):
        return Shape(ShapeKind.SEQUENCE, hint=type(value), inner=ANY_SHAPE)
    raise Unsupported(f"value of type {type(value).__name__}")
