"""Workbook exports."""

from affiliate_desk.exporting.xlsx import export_full_workbook

__all__ = ["export_full_workbook"]
