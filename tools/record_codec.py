#!/usr/bin/env python3
"""
record_codec.py - Fixed-width record codec: public API and command line

Converts between flat fixed-width records and Python values using a field
layout (see record_fields). Layouts come from code, from dataclass metadata
(record_layout.fixed_field) or from YAML layout files.

Usage:
    from record_codec import from_bytes, to_bytes, RecordCodec

    person = from_bytes(b'foobar 25', Person)           # layout from Person
    mapping = from_bytes(b'1234abcd', Dict[str, str], fields)
    record = to_bytes(person)                            # b'foobar 25'

    codec = RecordCodec(fields, Person)
    people = list(codec.decode_many(RecordReader.from_file('people.txt', 9)))

Command line:
    python record_codec.py decode layout.yaml data.txt --linebreak lf
    python record_codec.py encode layout.yaml rows.jsonl -o data.txt
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

import yaml

from record_decoder import decode
from record_encoder import encode
from record_errors import FixedWidthError, UsageError
from record_fields import FieldDescriptor, FieldSet, LineBreak
from record_io import RecordReader, RecordWriter
from record_layout import fields_of, load_layout, record_width
from record_shapes import shape_for


logger = logging.getLogger(__name__)

Fields = Union[FieldSet, List[FieldDescriptor]]


def _layout_for(fields: Optional[Fields], hint: Any) -> Fields:
    if fields is not None:
        return fields
    if hint is None:
        raise UsageError('no field layout given and none can be derived')
    return fields_of(hint)


def from_bytes(record: bytes, into: Any, fields: Optional[Fields] = None) -> Any:
    """Decode one record into ``into``; the layout defaults to ``fields_of(into)``."""
    return decode(record, _layout_for(fields, into), into)


def from_str(text: str, into: Any, fields: Optional[Fields] = None) -> Any:
    return from_bytes(text.encode('utf-8'), into, fields)


def to_bytes(value: Any, fields: Optional[Fields] = None, shape: Any = None) -> bytes:
    """Encode one value; the layout defaults to ``fields_of(type(value))``."""
    return encode(value, _layout_for(fields, type(value)), shape)


def to_str(value: Any, fields: Optional[Fields] = None, shape: Any = None) -> str:
    return to_bytes(value, fields, shape).decode('utf-8')


class RecordCodec:
    """A layout paired with the shape of its records.

    The layout is flattened afresh for every record, so one codec can be used
    for any number of records without sharing a cursor between them.
    """

    def __init__(self, fields: Optional[Fields] = None, into: Any = Any):
        self.into = into
        self.shape = shape_for(into)
        self.fields = _layout_for(fields, None if into is Any else into)

    def decode(self, record: bytes) -> Any:
        return decode(record, self.fields, self.shape)

    def encode(self, value: Any) -> bytes:
        shape = None if self.into is Any else self.shape
        return encode(value, self.fields, shape)

    def decode_many(self, records: Iterable[bytes]) -> Iterator[Any]:
        for record in records:
            yield self.decode(record)

    def encode_many(self, values: Iterable[Any]) -> Iterator[bytes]:
        for value in values:
            yield self.encode(value)


def _decode_command(args) -> int:
    fields = load_layout(args.layout)
    width = args.width or record_width(fields)
    codec = RecordCodec(fields, Dict[str, Any])
    linebreak = LineBreak.from_name(args.linebreak)

    with RecordReader.from_file(args.data, width, linebreak) as reader:
        for record in reader:
            print(json.dumps(codec.decode(record)))
    return 0


def _encode_command(args) -> int:
    fields = load_layout(args.layout)
    linebreak = LineBreak.from_name(args.linebreak)

    with open(args.rows) as f:
        rows = [json.loads(line) for line in f if line.strip()]
    for number, row in enumerate(rows, 1):
        if not isinstance(row, list):
            raise UsageError(f"line {number}: expected a JSON array of values")

    codec = RecordCodec(fields)
    if args.output:
        with RecordWriter.to_file(args.output, linebreak) as writer:
            writer.write_iter(codec.encode_many(rows))
    else:
        writer = RecordWriter(sys.stdout.buffer, linebreak)
        writer.write_iter(codec.encode_many(rows))
        writer.flush()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Decode and encode fixed-width records with a YAML field layout'
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    dec = sub.add_parser('decode', help='Print each record as a JSON object')
    dec.add_argument('layout', type=Path, help='Path to layout YAML file')
    dec.add_argument('data', type=Path, help='Fixed-width data file')
    dec.add_argument('--width', type=int, default=None,
                     help='Record width in bytes (default: largest range end)')
    dec.add_argument('--linebreak', default='none', choices=['none', 'lf', 'crlf'],
                     help='Separator between records')
    dec.set_defaults(func=_decode_command)

    enc = sub.add_parser('encode', help='Write one record per JSON array line')
    enc.add_argument('layout', type=Path, help='Path to layout YAML file')
    enc.add_argument('rows', type=Path, help='JSON lines file, one array per record')
    enc.add_argument('-o', '--output', type=Path, help='Output file (default: stdout)')
    enc.add_argument('--linebreak', default='none', choices=['none', 'lf', 'crlf'],
                     help='Separator between records')
    enc.set_defaults(func=_encode_command)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(levelname)s %(name)s: %(message)s')

    try:
        return args.func(args)
    except (FixedWidthError, OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
