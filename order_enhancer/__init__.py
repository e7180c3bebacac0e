"""
Order export enhancer.

Reconciles order export columns onto a canonical schema, consolidates
multi-row orders and re-serializes the result as spreadsheet-safe CSV.
"""
from order_enhancer.core.config import Settings
from order_enhancer.export.assembler import ExportAssembler, ExportResult, build_assembler

__version__ = "1.0.0"

__all__ = ["ExportAssembler", "ExportResult", "Settings", "build_assembler"]
