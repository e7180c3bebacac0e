"""
Export module for re-serializing enhanced order CSV.
"""
from order_enhancer.export.assembler import (
    ExportAssembler,
    ExportResult,
    build_assembler,
    enhance_export,
)
from order_enhancer.export.csv_codec import parse_line, serialize_line
from order_enhancer.export.report import ExportStatistics

__all__ = [
    "ExportAssembler",
    "ExportResult",
    "ExportStatistics",
    "build_assembler",
    "enhance_export",
    "parse_line",
    "serialize_line",
]
