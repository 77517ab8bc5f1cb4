"""
pytest configuration and fixtures for the fixed-width record codec tests.

Provides:
- tools/ on sys.path so the record_* modules import directly
- Hypothesis property-based testing profiles
- Layout and data-file fixtures shared by several test modules
"""

import os
import sys
from pathlib import Path

import pytest
from hypothesis import settings

# Add project paths
sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from record_fields import FieldSet  # noqa: E402

settings.register_profile("default", max_examples=100, deadline=None)
settings.register_profile("ci", max_examples=500, deadline=None)
settings.register_profile("dev", max_examples=10, deadline=None)
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture
def person_fields():
    """Layout of 'foobar 25': name 0..6, age 6..9."""
    return FieldSet.seq(
        FieldSet.new_field(range(0, 6)).name('name'),
        FieldSet.new_field(range(6, 9)).name('age'),
    )


@pytest.fixture
def four_field_layout():
    """a:int 0..3, b:str 3..6, c:float 6..10, d:Optional[int] 10..13."""
    return FieldSet.seq(
        FieldSet.new_field(range(0, 3)),
        FieldSet.new_field(range(3, 6)),
        FieldSet.new_field(range(6, 10)),
        FieldSet.new_field(range(10, 13)),
    )


@pytest.fixture
def layout_file(tmp_path):
    """YAML layout with a named, an unnamed and a right-justified field."""
    path = tmp_path / "layout.yaml"
    path.write_text(
        "name: sample\n"
        "fields:\n"
        "  - name: numbers\n"
        "    range: 0..4\n"
        "  - range: [4, 8]\n"
        "  - name: count\n"
        "    range: 8..11\n"
        "    pad_with: '0'\n"
        "    justify: right\n"
    )
    return path


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
