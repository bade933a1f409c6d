"""
Source tree scanning.
"""

from .local_codebase_scanner import (
    LocalCodebaseScanner,
    classify_file_role,
    is_config_file,
    is_test_file,
)

__all__ = ['LocalCodebaseScanner', 'classify_file_role', 'is_config_file', 'is_test_file']
