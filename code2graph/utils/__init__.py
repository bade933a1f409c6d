"""
Logging and path helpers.
"""

from .logger import app_logger, setup_logging, set_log_level
from .url_utils import extract_repo_name, generate_output_path, generate_dead_code_report_path

__all__ = [
    'app_logger',
    'setup_logging',
    'set_log_level',
    'extract_repo_name',
    'generate_output_path',
    'generate_dead_code_report_path',
]
