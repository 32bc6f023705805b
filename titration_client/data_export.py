"""
Data export functionality for the pH titration monitor.
Handles exporting series data to CSV text, CSV files and Excel workbooks.
"""

import logging
from typing import List, Sequence

import pandas as pd

from config import EXCEL_SHEET_NAME
from data_models import Reading

logger = logging.getLogger(__name__)


class DataExporter:
    """Handles exporting measurement series to various formats."""

    @staticmethod
    def to_frame(records: Sequence, fields: List[str]) -> pd.DataFrame:
        """
        Build a DataFrame with one row per record and the given column order.

        Args:
            records: Readings or DerivativePoints (anything with as_row())
            fields: Column names, in output order

        Returns:
            DataFrame restricted to the requested fields
        """
        rows = [record.as_row() for record in records]
        for row in rows[:1]:
            unknown = [name for name in fields if name not in row]
            if unknown:
                raise ValueError(f"Unknown export fields: {', '.join(unknown)}")
        return pd.DataFrame(rows, columns=fields)

    @staticmethod
    def to_csv(records: Sequence, fields: List[str]) -> str:
        """
        Render records as CSV text: a header row, then one row per record.

        Args:
            records: Readings or DerivativePoints
            fields: Column names, in output order

        Returns:
            CSV text with '\\n' line endings
        """
        df = DataExporter.to_frame(records, fields)
        return df.to_csv(index=False, lineterminator="\n", na_rep="NaN")

    @staticmethod
    def export_to_csv(records: Sequence, fields: List[str], filename: str) -> bool:
        """
        Export records to a CSV file.

        Returns:
            True if export successful, False otherwise
        """
        if not records:
            return False

        try:
            with open(filename, "w", newline="", encoding="utf-8") as fh:
                fh.write(DataExporter.to_csv(records, fields))
            return True
        except OSError:
            logger.exception("CSV export to %s failed", filename)
            return False

    @staticmethod
    def export_to_excel(records: Sequence, fields: List[str], filename: str) -> bool:
        """
        Export records to Excel format.

        Returns:
            True if export successful, False otherwise
        """
        if not records:
            return False

        try:
            df = DataExporter.to_frame(records, fields)
            with pd.ExcelWriter(filename, engine="openpyxl") as writer:
                df.to_excel(writer, index=False, sheet_name=EXCEL_SHEET_NAME)
            return True
        except (OSError, ValueError):
            logger.exception("Excel export to %s failed", filename)
            return False

    @staticmethod
    def get_export_summary(readings: Sequence[Reading]) -> dict:
        """
        Get summary statistics for the readings to be exported.

        Args:
            readings: Real-time or experiment readings

        Returns:
            Dictionary with summary statistics
        """
        if not readings:
            return {"count": 0}

        ph_values = [r.ph for r in readings]
        temperatures = [r.temperature for r in readings]
        summary = {
            "count": len(readings),
            "min_ph": min(ph_values),
            "max_ph": max(ph_values),
            "avg_ph": sum(ph_values) / len(ph_values),
            "avg_temperature": sum(temperatures) / len(temperatures),
        }
        if readings[-1].volume is not None:
            summary["total_volume"] = readings[-1].volume
        return summary
