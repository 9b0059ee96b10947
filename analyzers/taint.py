"""
污点分析器
判断入口点读入的数据能否不经净化到达敏感汇聚点。
"""

from typing import Any, Dict, Iterable, Optional, Union

from core.ast_engine import ASTEngine, Program
from core.errors import AnalyzerError, PatternLoadError
from core.patterns import Pattern, PatternCatalog
from utils.logger import get_logger
from .dispatcher import StatementDispatcher
from .environment import AnalysisOptions, AnalysisRun, Verdict

PatternsLike = Union[PatternCatalog, Iterable[Pattern], Iterable[Dict[str, Any]]]


def as_catalog(patterns: PatternsLike) -> PatternCatalog:
    """接受目录、Pattern 序列或字典记录序列"""
    if isinstance(patterns, PatternCatalog):
        return patterns
    if isinstance(patterns, (str, bytes, dict)) or not isinstance(patterns, Iterable):
        raise PatternLoadError(f"无法把 {type(patterns).__name__} 当作模式列表")
    items = list(patterns)
    if all(isinstance(item, Pattern) for item in items):
        return PatternCatalog(items)
    return PatternCatalog.from_records(items)


class TaintAnalyzer:
    """污点分析器 - 每次 analyze 都使用全新的运行状态"""
    
    def __init__(self, config=None, catalog: Optional[PatternCatalog] = None,
                 options: Optional[AnalysisOptions] = None):
        self.config = config
        self.logger = get_logger()
        self.catalog = catalog
        if options is None and config is not None:
            options = AnalysisOptions.from_config(config)
        self.options = options or AnalysisOptions()
    
    def analyze(self, ast: Union[Program, Dict[str, Any]],
                patterns: Optional[PatternsLike] = None) -> Verdict:
        """
        分析一个切片。
        
        Args:
            ast: Program 或外部解析器输出的 JSON 字典
            patterns: 本次使用的模式；省略时使用构造时给定的目录
        
        Returns:
            Verdict
        """
        catalog = self.catalog if patterns is None else as_catalog(patterns)
        if catalog is None:
            catalog = PatternCatalog()
        
        engine = ASTEngine()
        program = engine.load(ast)
        
        run = AnalysisRun.start(catalog, self.options)
        run.diagnostics.merge(engine.diagnostics, prefix='ast_')
        
        try:
            StatementDispatcher(run).dispatch_all(program.children)
        except RecursionError as e:
            raise AnalyzerError("切片嵌套过深，分析中止") from e
        verdict = run.finish()
        
        if verdict.vulnerable:
            self.logger.info(f"切片存在漏洞: {', '.join(verdict.violated_patterns)}")
        else:
            self.logger.debug("切片安全")
        return verdict


def analyze(ast: Union[Program, Dict[str, Any]], patterns: PatternsLike,
            options: Optional[AnalysisOptions] = None) -> Verdict:
    """analyze(ast, patterns) -> Verdict"""
    return TaintAnalyzer(options=options).analyze(ast, patterns)
