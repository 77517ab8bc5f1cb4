"""
Tests for declarative layouts: dataclass metadata and YAML layout documents.
"""

import pytest
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

# Add tools to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'tools'))

from record_errors import UsageError
from record_fields import FieldDescriptor, FieldSet, Justify
from record_layout import fixed_field, fields_of, layout_from_dict, load_layout, record_width


@dataclass
class Person:
    name: str = fixed_field('0..6')
    age: int = fixed_field(range(6, 9), pad_with='0', justify='right')
    height: Optional[int] = fixed_field((9, 12), name='height_cm', default=None)


@dataclass
class Household:
    owner: Person = fixed_field(fields_of(Person))
    city: str = fixed_field('12..18')


class TestFieldsOf:
    """Tests for fields_of()."""

    def test_attributes_name_unnamed_fields(self):
        layout = fields_of(Person).flatten()
        assert [d.name for d in layout] == ['name', 'age', 'height_cm']
        assert layout[1] == FieldDescriptor(6, 9, name='age', pad_with='0', justify=Justify.RIGHT)

    def test_dataclass_defaults_pass_through(self):
        assert Person('a', 1).height is None

    def test_nested_layout_used_verbatim(self):
        layout = fields_of(Household).flatten()
        assert [d.key for d in layout] == ['name', 'age', 'height_cm', 'city']

    def test_missing_range(self):
        @dataclass
        class Broken:
            a: int = fixed_field('0..1')
            b: int = 0

        with pytest.raises(UsageError, match='Must supply a byte range for field: b'):
            fields_of(Broken)

    def test_fixed_width_fields_classmethod(self):
        class Legacy:
            @classmethod
            def fixed_width_fields(cls):
                return FieldSet.seq(FieldSet.new_field('0..2'), FieldSet.new_field('2..4'))

        assert fields_of(Legacy).flatten() == [FieldDescriptor(0, 2), FieldDescriptor(2, 4)]

    def test_fixed_width_fields_attribute(self):
        class Legacy:
            fixed_width_fields = FieldSet.new_field('0..2')

        assert fields_of(Legacy).flatten() == [FieldDescriptor(0, 2)]

    def test_both_styles_rejected(self):
        @dataclass
        class Mixed:
            a: int = fixed_field('0..1')

            @classmethod
            def fixed_width_fields(cls):
                return FieldSet.new_field('0..1')

        with pytest.raises(UsageError, match='not both'):
            fields_of(Mixed)

    def test_definition_must_be_a_fieldset(self):
        class Wrong:
            fixed_width_fields = '0..1'

        with pytest.raises(UsageError):
            fields_of(Wrong)

    def test_plain_class_rejected(self):
        with pytest.raises(UsageError, match='no fixed-width layout'):
            fields_of(int)


class TestLayoutDocuments:
    """Tests for YAML layout documents."""

    def test_load_layout(self, layout_file):
        layout = load_layout(layout_file).flatten()
        assert layout == [
            FieldDescriptor(0, 4, name='numbers'),
            FieldDescriptor(4, 8),
            FieldDescriptor(8, 11, name='count', pad_with='0', justify=Justify.RIGHT),
        ]

    def test_group_defaults_are_scoped(self):
        layout = layout_from_dict({
            'justify': 'right',
            'fields': [
                {'range': '0..2'},
                {'pad_with': '*', 'fields': [{'range': '2..4'}]},
                {'range': '4..6'},
            ],
        }).flatten()
        assert all(d.justify is Justify.RIGHT for d in layout)
        assert [d.pad_with for d in layout] == [' ', '*', ' ']

    def test_unquoted_digit_pad(self):
        data = yaml.safe_load("fields:\n  - range: 0..3\n    pad_with: 0\n")
        assert layout_from_dict(data).flatten()[0].pad_with == '0'

    def test_bare_list(self):
        assert layout_from_dict([{'range': [0, 1]}]).flatten() == [FieldDescriptor(0, 1)]

    @pytest.mark.parametrize('data,message', [
        ({'name': 'x'}, "'fields' list"),
        ({'fields': [{'name': 'a'}]}, "missing 'range'"),
        ({'fields': [{'range': '0..1', 'width': 1}]}, 'unknown keys'),
        ({'fields': [{'range': '0..1'}], 'extra': 1}, 'unknown layout keys'),
        ({'fields': [{'range': '0..1', 'fields': []}]}, 'field group'),
        ({'fields': 'a'}, 'must be a list'),
        ({'fields': ['0..1']}, 'expected a mapping'),
        ({'fields': [{'range': '0..1', 'pad_with': 10}]}, 'single character'),
    ])
    def test_invalid_documents(self, data, message):
        with pytest.raises(UsageError, match=message):
            layout_from_dict(data)

    def test_error_location(self):
        with pytest.raises(UsageError, match=r'orders\.fields\[1\]'):
            layout_from_dict({'name': 'orders', 'fields': [{'range': '0..1'}, {}]})


class TestRecordWidth:
    """Tests for record_width()."""

    def test_largest_end(self):
        layout = FieldSet.seq(FieldSet.new_field('4..9'), FieldSet.new_field('0..4'))
        assert record_width(layout) == 9

    def test_empty(self):
        assert record_width(FieldSet.seq()) == 0
