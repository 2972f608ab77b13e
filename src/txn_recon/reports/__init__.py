"""Excel reports and CSV exports."""

from .excel_generator import ExcelReportGenerator
from .csv_export import export_all, write_csv

__all__ = ["ExcelReportGenerator", "export_all", "write_csv"]
