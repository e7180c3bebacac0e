"""
Shared fixtures for the order export enhancer tests.
"""
import io

import polars as pl
import pytest

from order_enhancer.core.config import Settings
from order_enhancer.export.assembler import ExportAssembler
from order_enhancer.registry.loader import CanonicalSchema, SchemaLoader


@pytest.fixture
def settings():
    """Default settings, ignoring any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def schema_loader():
    """Loader for the packaged schema file."""
    return SchemaLoader()


@pytest.fixture
def grid_schema(schema_loader):
    """Admin grid export schema variant."""
    return schema_loader.get_schema("grid_export")


@pytest.fixture
def small_schema():
    """Minimal schema for mapper and resolver tests."""
    return CanonicalSchema.from_dict(
        "small",
        {
            "Order ID": ["Order ID", "increment_id"],
            "Order Name": ["Order Name", "billing_firstname"],
            "Phone Number": ["Phone Number", "billing_telephone"],
            "Grand Total": ["Grand Total", "grand_total"],
        },
    )


@pytest.fixture
def assembler(grid_schema, settings):
    """Assembler over the grid export schema."""
    return ExportAssembler(grid_schema, settings=settings)


def read_enhanced_csv(csv_text: str) -> pl.DataFrame:
    """Read emitted CSV back (BOM stripped, every column as text)."""
    assert csv_text.startswith("\ufeff")
    return pl.read_csv(io.BytesIO(csv_text[1:].encode("utf-8")), infer_schema_length=0)


@pytest.fixture
def read_csv():
    """Reader for emitted CSV text."""
    return read_enhanced_csv
