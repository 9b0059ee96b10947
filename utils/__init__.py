"""
工具模块初始化
"""

from .logger import setup_logger, get_logger
from .helpers import (
    get_slice_files,
    calculate_file_hash,
    read_file_content,
    split_names,
    SLICE_EXTENSIONS
)

__all__ = [
    'setup_logger',
    'get_logger',
    'get_slice_files',
    'calculate_file_hash',
    'read_file_content',
    'split_names',
    'SLICE_EXTENSIONS'
]
