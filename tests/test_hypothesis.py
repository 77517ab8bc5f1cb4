"""
test_hypothesis.py - Property-based testing with Hypothesis

Covers the properties the codec relies on rather than single examples:

- Padding always produces exactly the descriptor width
- Text survives pad then trim when it fits and has no edge whitespace
- Flattening is a left-to-right, depth-first walk of any nesting
- Decoding arbitrary bytes either succeeds or raises DecodeError
- Integer and float values survive an encode/decode round trip
- Record streams survive writer then reader for every line break

Run with:
    pytest tests/test_hypothesis.py -v
    HYPOTHESIS_PROFILE=ci pytest tests/test_hypothesis.py
"""

import pytest
from hypothesis import given, settings, assume, HealthCheck
from hypothesis import strategies as st
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent.parent / 'tools'))
from record_decoder import decode
from record_encoder import encode
from record_errors import DecodeError
from record_fields import FieldDescriptor, FieldSet, Item, Justify, LineBreak, Seq
from record_io import RecordReader, RecordWriter
from record_padding import field_text, pad


# =============================================================================
# Strategies for generating test data
# =============================================================================

widths = st.integers(min_value=0, max_value=40)
justifications = st.sampled_from([Justify.LEFT, Justify.RIGHT])
pad_chars = st.characters(min_codepoint=0x20, max_codepoint=0xFF)

# Text that trimming leaves untouched
plain_text = st.text(
    alphabet=st.characters(min_codepoint=0x21, max_codepoint=0x7E),
    min_size=0, max_size=40,
)


@st.composite
def descriptors(draw, width=widths):
    start = draw(st.integers(min_value=0, max_value=50))
    return FieldDescriptor(start, start + draw(width),
                           pad_with=draw(pad_chars), justify=draw(justifications))


def field_trees(max_leaves=20):
    leaves = st.builds(lambda start: Item(FieldDescriptor(start, start + 1)),
                       st.integers(min_value=0, max_value=1000))
    return st.recursive(
        leaves,
        lambda children: st.lists(children, max_size=4).map(lambda items: Seq(tuple(items))),
        max_leaves=max_leaves,
    )


def leaves_of(tree):
    """Reference walk of a field tree, recursive on purpose."""
    if isinstance(tree, Item):
        return [tree.field]
    result = []
    for child in tree.items:
        result.extend(leaves_of(child))
    return result


@dataclass
class SensorRecord:
    station: str
    reading: int
    ratio: float
    flag: Optional[bool]


SENSOR_LAYOUT = FieldSet.seq(
    FieldSet.new_field('0..4'),
    FieldSet.new_field('4..10'),
    FieldSet.new_field('10..18'),
    FieldSet.new_field('18..19'),
)


# =============================================================================
# Property Tests: Padding
# =============================================================================

class TestPadding:
    """Properties of pad() and trimming."""

    @given(st.binary(max_size=60), descriptors())
    def test_pad_has_exact_width(self, value, descriptor):
        assert len(pad(value, descriptor)) == descriptor.width

    @given(st.binary(max_size=60), descriptors())
    def test_long_values_are_truncated(self, value, descriptor):
        assume(len(value) >= descriptor.width)
        assert pad(value, descriptor) == value[:descriptor.width]

    @given(plain_text, justifications)
    def test_text_survives_pad_and_trim(self, text, justify):
        descriptor = FieldDescriptor(0, 40, justify=justify)
        record = pad(text.encode('utf-8'), descriptor)
        assert field_text(record, descriptor) == text


# =============================================================================
# Property Tests: Flattening
# =============================================================================

class TestFlatten:
    """Flattening any tree equals the recursive leaf walk."""

    @given(field_trees())
    def test_matches_reference_walk(self, tree):
        assert tree.flatten() == leaves_of(tree)

    @given(field_trees(), field_trees())
    def test_extend_concatenates(self, left, right):
        combined = Seq((left,)).extend(right)
        assert combined.flatten() == leaves_of(left) + leaves_of(right)


# =============================================================================
# Property Tests: Decoder Safety
# =============================================================================

class TestDecoderSafety:
    """Decoding never fails with anything but a DecodeError."""

    @given(st.binary(min_size=0, max_size=40))
    @settings(max_examples=500, suppress_health_check=[HealthCheck.too_slow])
    def test_random_bytes(self, data):
        try:
            result = decode(data, SENSOR_LAYOUT, SensorRecord)
        except DecodeError:
            return
        assert isinstance(result, SensorRecord)

    @given(st.binary(min_size=0, max_size=18))
    def test_short_records_fail(self, data):
        with pytest.raises(DecodeError):
            decode(data, SENSOR_LAYOUT, SensorRecord)


# =============================================================================
# Property Tests: Roundtrip Encoding
# =============================================================================

class TestRoundtrip:
    """Encode/decode round trips for values that fit their fields."""

    @given(st.integers(min_value=-(10**11 - 1), max_value=10**12 - 1), justifications)
    def test_int(self, value, justify):
        layout = [FieldDescriptor(0, 12, justify=justify)]
        assert decode(encode(value, layout, int), layout, int) == value

    # below 1e-6 the plain decimal text outgrows the field
    @given(st.floats(min_value=-1e15, max_value=1e15, allow_nan=False, allow_infinity=False)
           .filter(lambda v: v == 0 or abs(v) >= 1e-6))
    def test_float(self, value):
        layout = [FieldDescriptor(0, 32)]
        assert decode(encode(value, layout, float), layout, float) == value

    @given(
        st.text(alphabet='ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789', min_size=1, max_size=4),
        st.integers(min_value=-99999, max_value=999999),
        st.floats(min_value=-999, max_value=9999, allow_nan=False, allow_infinity=False),
        st.one_of(st.none(), st.booleans()),
    )
    def test_record(self, station, reading, ratio, flag):
        ratio = round(ratio, 2)
        value = SensorRecord(station, reading, ratio, flag)
        record = encode(value, SENSOR_LAYOUT)
        assert len(record) == 19
        assert decode(record, SENSOR_LAYOUT, SensorRecord) == value


# =============================================================================
# Property Tests: Record streams
# =============================================================================

class TestRecordStreams:
    """Writer then reader gives back the same records."""

    @given(
        st.integers(min_value=1, max_value=12).flatmap(
            lambda width: st.lists(st.binary(min_size=width, max_size=width), min_size=1, max_size=10)
        ),
        st.sampled_from(list(LineBreak)),
    )
    def test_writer_reader_round_trip(self, records, linebreak):
        width = len(records[0])
        writer = RecordWriter.to_memory(linebreak)
        writer.write_iter(records)
        assert list(RecordReader.from_bytes(writer.getvalue(), width, linebreak)) == records
