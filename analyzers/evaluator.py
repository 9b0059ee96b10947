"""
表达式污点求值器
计算表达式的污点值（可能违反的模式名称集合）；过程中可能净化变量、
触发汇聚点或收窄模式集合。
"""

from typing import Iterator, List, Tuple

from core.ast_engine import (
    Bin, Call, Encapsed, Node, NodeKind, OffsetLookup, String, Variable
)
from core.patterns import Pattern
from utils.logger import get_logger
from .environment import CLEAN, AnalysisRun, Taint

# 被建模的二元运算：字符串连接
CONCAT_OPERATOR = '.'


class ExpressionEvaluator:
    """表达式求值器 - 返回表达式的污点值，空集表示未污染"""
    
    def __init__(self, run: AnalysisRun):
        self.run = run
        self.logger = get_logger()
        self._handlers = {
            NodeKind.OFFSETLOOKUP: self._offset_lookup,
            NodeKind.BIN: self._bin,
            NodeKind.STRING: self._string,
            NodeKind.ENCAPSED: self._encapsed,
            NodeKind.VARIABLE: self._variable,
            NodeKind.CALL: self._call,
        }
    
    def evaluate(self, node: Node) -> Taint:
        handler = self._handlers.get(node.kind)
        if handler is None:
            self.run.diagnostics.record('unknown_expression', node.kind.value)
            return CLEAN
        return handler(node)
    
    def entry_point_patterns(self, node: OffsetLookup) -> Tuple[Pattern, ...]:
        """入口点读取命中的模式（模式文件中的入口点带前缀，AST 中不带）"""
        if node.name is None:
            self.run.diagnostics.record('offsetlookup_without_name')
            return ()
        entry_point = self.run.options.entry_point_prefix + node.name
        return self.run.patterns.entry_point(entry_point)
    
    def concat(self, left: Node, right: Node) -> Taint:
        """连接运算：两侧都求值（保留副作用），结果取两侧污点的并集"""
        left_taint = self.evaluate(left)
        right_taint = self.evaluate(right)
        return left_taint | right_taint
    
    def _offset_lookup(self, node: OffsetLookup) -> Taint:
        return frozenset(p.name for p in self.entry_point_patterns(node))
    
    def _bin(self, node: Bin) -> Taint:
        if node.type == CONCAT_OPERATOR:
            return self.concat(node.left, node.right)
        return CLEAN
    
    def _string(self, node: String) -> Taint:
        # 字面量不受攻击者控制，除非命中条件守卫启发式
        guard = self.run.guard
        if self.run.options.guarded_literal_heuristic and guard is not None:
            if guard.value == node.value:
                self.logger.debug(f"字面量 '{node.value}' 与条件守卫一致，按污染处理")
                return self.run.patterns.names()
        return CLEAN
    
    def _encapsed(self, node: Encapsed) -> Taint:
        taint = CLEAN
        for part in node.parts:
            if isinstance(part, Variable) and part.name is not None:
                taint = taint | self.run.env.taint_of(part.name)
        return taint
    
    def _variable(self, node: Variable) -> Taint:
        if node.name is None:
            self.run.diagnostics.record('variable_without_name')
            return CLEAN
        return self.run.env.taint_of(node.name)
    
    def _call(self, node: Call) -> Taint:
        if node.name is None:
            self.run.diagnostics.record('call_without_name')
            return CLEAN
        
        # 截取类函数原样传递第一个参数的污点
        if node.name in self.run.options.passthrough_functions:
            if not node.arguments:
                return CLEAN
            return self.evaluate(node.arguments[0])
        
        catalog = self.run.patterns.catalog
        active = self.run.patterns.active
        sinks = catalog.with_sink(node.name, within=active)
        sanitizers = catalog.with_sanitizer(node.name, within=active)
        if not sinks and not sanitizers:
            return CLEAN
        
        arguments = list(self._named_arguments(node))
        
        # 参数先到达汇聚点，再由净化函数的效果覆盖
        for pattern in sinks:
            self._check_sink(node, pattern, arguments)
        
        if sanitizers and arguments:
            for name in arguments:
                self.run.env.sanitize(name)
            self.run.verdict.record_sanitizer(node.name)
        
        # 调用的返回值本身从不视为污染
        return CLEAN
    
    def _named_arguments(self, node: Call) -> Iterator[str]:
        """直接以变量形式出现的参数名"""
        for argument in node.arguments:
            if not isinstance(argument, Variable):
                continue
            if argument.name is None:
                self.run.diagnostics.record('variable_without_name')
                continue
            yield argument.name
    
    def _check_sink(self, node: Call, pattern: Pattern, arguments: List[str]):
        for name in arguments:
            if pattern.name in self.run.env.taint_of(name):
                self.logger.warning(
                    f"污点变量 ${name} 未经净化流向 {node.name} ({pattern.name})"
                )
                self.run.verdict.mark_vulnerable(pattern.name)
