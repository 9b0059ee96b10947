"""
核心模块初始化
"""

from .config import Config
from .errors import AnalyzerError, ASTLoadError, PatternLoadError
from .patterns import Pattern, PatternCatalog
from .ast_engine import ASTEngine, NodeKind, Program
from .scanner import SliceScanner
from .report import ReportGenerator

__all__ = [
    'Config',
    'AnalyzerError',
    'ASTLoadError',
    'PatternLoadError',
    'Pattern',
    'PatternCatalog',
    'ASTEngine',
    'NodeKind',
    'Program',
    'SliceScanner',
    'ReportGenerator'
]
