#!/usr/bin/env python3
"""
record_io.py - Sequential reader/writer for streams of fixed-width records

Records are read as exact ``width``-byte chunks, optionally followed by a
line break that is skipped. Writing inserts the line break between records,
never after the last one. The codec itself never touches streams; this module
only slices bytes for it.

Usage:
    from record_io import RecordReader, RecordWriter

    reader = RecordReader.from_string('foobar 25barfoo 35', width=9)
    people = [from_bytes(record, Person) for record in reader]

    with RecordWriter.to_file('out.txt', linebreak=LineBreak.NEWLINE) as writer:
        writer.write_serialized(people)
"""

import io
import logging
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Iterator, Optional, Union

from record_encoder import encode
from record_errors import UsageError
from record_fields import FieldSet, LineBreak
from record_layout import fields_of


logger = logging.getLogger(__name__)

BUFFER_SIZE = 8 * 1024


class RecordReader:
    """Iterate fixed-width records of a binary stream."""

    def __init__(self, stream: BinaryIO, width: int, linebreak: LineBreak = LineBreak.NONE):
        if not isinstance(width, int) or width <= 0:
            raise UsageError(f"record width must be a positive integer, got {width!r}")
        self.stream = stream
        self.width = width
        self.linebreak = linebreak
        self.records_read = 0
        self._eof = False

    @classmethod
    def from_file(cls, path: Union[str, Path], width: int,
                  linebreak: LineBreak = LineBreak.NONE) -> 'RecordReader':
        return cls(open(path, 'rb', buffering=BUFFER_SIZE), width, linebreak)

    @classmethod
    def from_bytes(cls, data: bytes, width: int,
                   linebreak: LineBreak = LineBreak.NONE) -> 'RecordReader':
        return cls(io.BytesIO(data), width, linebreak)

    @classmethod
    def from_string(cls, text: str, width: int,
                    linebreak: LineBreak = LineBreak.NONE) -> 'RecordReader':
        return cls.from_bytes(text.encode('utf-8'), width, linebreak)

    def _read_exact(self, size: int) -> bytes:
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = self.stream.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b''.join(chunks)

    def next_record(self) -> Optional[bytes]:
        """Return the next record, or None once the stream is exhausted.

        A trailing partial record is dropped, and so is a missing line break
        after the last record.
        """
        if self._eof:
            return None

        record = self._read_exact(self.width)
        if len(record) < self.width:
            self._eof = True
            if record:
                logger.debug("dropping %d trailing bytes", len(record))
            return None

        if self.linebreak.byte_width:
            separator = self._read_exact(self.linebreak.byte_width)
            if len(separator) < self.linebreak.byte_width:
                self._eof = True

        self.records_read += 1
        return record

    def __iter__(self) -> Iterator[bytes]:
        while True:
            record = self.next_record()
            if record is None:
                logger.debug("read %d records", self.records_read)
                return
            yield record

    def strings(self) -> Iterator[str]:
        """Records as text; invalid UTF-8 is replaced, not raised."""
        for record in self:
            yield record.decode('utf-8', errors='replace')

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> 'RecordReader':
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class RecordWriter:
    """Write records to a binary stream, separated by a line break."""

    def __init__(self, stream: BinaryIO, linebreak: LineBreak = LineBreak.NONE):
        self.stream = stream
        self.linebreak = linebreak
        self.records_written = 0

    @classmethod
    def to_file(cls, path: Union[str, Path],
                linebreak: LineBreak = LineBreak.NONE) -> 'RecordWriter':
        return cls(open(path, 'wb'), linebreak)

    @classmethod
    def to_memory(cls, linebreak: LineBreak = LineBreak.NONE) -> 'RecordWriter':
        return cls(io.BytesIO(), linebreak)

    def getvalue(self) -> bytes:
        """Bytes written so far, for writers created with to_memory()."""
        return self.stream.getvalue()

    def write_linebreak(self) -> None:
        self.stream.write(self.linebreak.as_bytes)

    def _write_record(self, record: bytes) -> None:
        if self.records_written:
            self.write_linebreak()
        self.stream.write(record)
        self.records_written += 1

    def write_iter(self, records: Iterable[Union[bytes, str]]) -> None:
        for record in records:
            if isinstance(record, str):
                record = record.encode('utf-8')
            self._write_record(bytes(record))

    def write_serialized(self, values: Iterable[Any], fields: Optional[FieldSet] = None,
                         shape: Any = None) -> None:
        """Encode and write each value; each record gets a fresh descriptor traversal."""
        for value in values:
            layout = fields if fields is not None else fields_of(type(value))
            self._write_record(encode(value, layout, shape))

    def flush(self) -> None:
        self.stream.flush()

    def close(self) -> None:
        logger.debug("wrote %d records", self.records_written)
        self.stream.close()

    def __enter__(self) -> 'RecordWriter':
        return self

    def __exit__(self, *exc) -> None:
        self.flush()
        self.close()
