"""报告模块"""

from .formatters import format_report_console, format_report_mfm, print_report_console
from .report_engine import generate_report, percentile
from .runner import ReportRunner

__all__ = ['generate_report', 'percentile', 'format_report_console',
           'format_report_mfm', 'print_report_console', 'ReportRunner']
