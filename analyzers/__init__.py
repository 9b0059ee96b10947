"""
分析器模块初始化
"""

from .environment import (
    AnalysisOptions,
    AnalysisRun,
    BlockStrategy,
    NarrowingMode,
    TaintEnvironment,
    Verdict
)
from .evaluator import ExpressionEvaluator
from .dispatcher import StatementDispatcher
from .controlflow import ConditionalHandler, LoopHandler
from .taint import TaintAnalyzer, analyze

__all__ = [
    'AnalysisOptions',
    'AnalysisRun',
    'BlockStrategy',
    'NarrowingMode',
    'TaintEnvironment',
    'Verdict',
    'ExpressionEvaluator',
    'StatementDispatcher',
    'ConditionalHandler',
    'LoopHandler',
    'TaintAnalyzer',
    'analyze'
]
