"""File importers."""

from affiliate_desk.importers.sales_importer import ImportSummary, import_sales_file

__all__ = ["ImportSummary", "import_sales_file"]
