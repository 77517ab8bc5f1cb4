#!/usr/bin/env python3
"""
record_layout.py - Build field layouts from dataclasses or YAML documents

The codec only needs a FieldSet; this module offers two declarative ways of
producing one besides writing FieldSet calls by hand.

Dataclass metadata:

    @dataclass
    class Person:
        name: str = fixed_field('0..6')
        age: int = fixed_field('6..9', pad_with='0', justify='right')
        height: int = fixed_field('9..11', name='height_cm')

    fields_of(Person)   # Seq of three Items named name, age, height_cm

A class may instead provide the whole layout itself through a
``fixed_width_fields()`` classmethod (or a FieldSet class attribute). Mixing
both styles on one class is rejected.

YAML layout documents:

    name: person
    justify: left          # defaults for every leaf below
    fields:
      - name: name
        range: 0..6
      - range: [6, 9]
        pad_with: '0'
        justify: right
      - fields:            # nested group
          - range: 9..11

Usage:
    from record_layout import load_layout
    fields = load_layout(Path('person.yaml'))
"""

import dataclasses
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from record_errors import UsageError
from record_fields import FieldDescriptor, FieldSet, Item, Justify, Seq, parse_range
from record_shapes import init_fields


logger = logging.getLogger(__name__)

FIXED_WIDTH = 'fixed_width'

LEAF_KEYS = {'name', 'range', 'pad_with', 'justify'}
GROUP_KEYS = {'fields', 'pad_with', 'justify'}
DOCUMENT_KEYS = {'name', 'description', 'fields', 'pad_with', 'justify'}


def fixed_field(byte_range, *, name: Optional[str] = None, pad_with: str = ' ',
                justify: Union[Justify, str] = Justify.LEFT, **kwargs):
    """
    Declare a dataclass attribute together with its byte range.

    Args:
        byte_range: ``"start..end"``, ``range(start, end)``, ``(start, end)``,
            or a ready FieldSet used verbatim (for nested records)
        name: Descriptor name; defaults to the attribute name
        pad_with: Pad character
        justify: ``Justify`` or ``'left'``/``'right'``
        **kwargs: Passed through to ``dataclasses.field`` (default, ...)
    """
    if isinstance(byte_range, FieldSet):
        layout = byte_range
    else:
        start, end = parse_range(byte_range)
        layout = Item(FieldDescriptor(start, end, name=name, pad_with=pad_with,
                                      justify=Justify.coerce(justify)))

    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[FIXED_WIDTH] = layout
    return dataclasses.field(metadata=metadata, **kwargs)


def fields_of(cls) -> FieldSet:
    """Return the layout declared on ``cls``."""
    definition = getattr(cls, 'fixed_width_fields', None)
    declared = [f for f in dataclasses.fields(cls) if FIXED_WIDTH in f.metadata] \
        if dataclasses.is_dataclass(cls) else []

    if definition is not None:
        if declared:
            raise UsageError(f"{cls.__name__}: use either fixed_width_fields() or "
                             f"fixed_field() attributes, not both")
        layout = definition() if callable(definition) else definition
        if not isinstance(layout, FieldSet):
            raise UsageError(f"{cls.__name__}.fixed_width_fields must give a FieldSet, "
                             f"got {layout!r}")
        return layout

    if not dataclasses.is_dataclass(cls):
        raise UsageError(f"{cls!r} has no fixed-width layout; pass fields explicitly")

    items = []
    for f in init_fields(cls):
        layout = f.metadata.get(FIXED_WIDTH)
        if layout is None:
            raise UsageError(f"Must supply a byte range for field: {f.name}")
        if isinstance(layout, Item) and layout.field.name is None:
            layout = layout.name(f.name)
        items.append(layout)

    logger.debug("built layout for %s with %d items", cls.__name__, len(items))
    return Seq(tuple(items))


def _pad_value(value: Any, where: str) -> str:
    # YAML reads an unquoted 0 as an int
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 9:
        return str(value)
    if not isinstance(value, str):
        raise UsageError(f"{where}: pad_with must be a single character, got {value!r}")
    return value


def _node(entry: Any, defaults: Dict[str, Any], where: str) -> FieldSet:
    if not isinstance(entry, dict):
        raise UsageError(f"{where}: expected a mapping, got {entry!r}")

    if 'fields' in entry:
        unknown = set(entry) - GROUP_KEYS
        if unknown:
            raise UsageError(f"{where}: unknown keys for a field group: {sorted(unknown)}")
        return _group(entry, defaults, where)

    unknown = set(entry) - LEAF_KEYS
    if unknown:
        raise UsageError(f"{where}: unknown keys {sorted(unknown)}")
    if 'range' not in entry:
        raise UsageError(f"{where}: missing 'range'")

    item = FieldSet.new_field(entry['range'])
    name = entry.get('name')
    if name is not None:
        item = item.name(str(name))
    item = item.pad_with(_pad_value(entry.get('pad_with', defaults['pad_with']), where))
    return item.justify(entry.get('justify', defaults['justify']))


def _group(entry: Dict[str, Any], defaults: Dict[str, Any], where: str) -> Seq:
    children = entry['fields']
    if not isinstance(children, list):
        raise UsageError(f"{where}: 'fields' must be a list")

    scoped = dict(defaults)
    if 'pad_with' in entry:
        scoped['pad_with'] = _pad_value(entry['pad_with'], where)
    if 'justify' in entry:
        scoped['justify'] = Justify.coerce(entry['justify'])

    return Seq(tuple(_node(child, scoped, f"{where}.fields[{i}]")
                     for i, child in enumerate(children)))


def layout_from_dict(data: Union[Dict[str, Any], List[Any]]) -> FieldSet:
    """Build a FieldSet from a parsed layout document (or a bare field list)."""
    if isinstance(data, list):
        data = {'fields': data}
    if not isinstance(data, dict) or 'fields' not in data:
        raise UsageError("layout document must contain a 'fields' list")

    unknown = set(data) - DOCUMENT_KEYS
    if unknown:
        raise UsageError(f"unknown layout keys: {sorted(unknown)}")

    defaults = {'pad_with': ' ', 'justify': Justify.LEFT}
    group = {k: v for k, v in data.items() if k in GROUP_KEYS}
    return _group(group, defaults, data.get('name') or 'layout')


def load_layout(path: Union[str, Path]) -> FieldSet:
    """Load a YAML layout file."""
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    layout = layout_from_dict(data)
    logger.debug("loaded layout %s with %d fields", path, len(layout.flatten()))
    return layout


def record_width(fields: FieldSet) -> int:
    """Smallest record length that holds every descriptor."""
    return max((d.end for d in fields.flatten()), default=0)
