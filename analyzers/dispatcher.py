"""
语句分发器
逐条执行语句，更新污点环境与判定结果。
"""

from typing import Iterable

from core.ast_engine import Assign, Block, Echo, Node, NodeKind, OffsetLookup, Variable
from utils.logger import get_logger
from .controlflow import ConditionalHandler, LoopHandler
from .environment import AnalysisRun, BlockStrategy
from .evaluator import ExpressionEvaluator

# 分支/循环体内被识别的语句类型
BODY_KINDS = (NodeKind.ASSIGN, NodeKind.IF)


class StatementDispatcher:
    """语句分发器 - 按节点类型选择处理方法，未识别的类型不做任何事"""
    
    def __init__(self, run: AnalysisRun):
        self.run = run
        self.logger = get_logger()
        self.evaluator = ExpressionEvaluator(run)
        self.conditionals = ConditionalHandler(self)
        self.loops = LoopHandler(self)
        self._handlers = {
            NodeKind.ASSIGN: self._assign,
            NodeKind.ECHO: self._echo,
            NodeKind.IF: self.conditionals.handle,
            NodeKind.WHILE: self.loops.handle,
            NodeKind.BLOCK: self._block,
        }
    
    def dispatch(self, node: Node):
        handler = self._handlers.get(node.kind)
        if handler is None:
            if node.kind is NodeKind.UNKNOWN:
                self.run.diagnostics.record('unknown_statement', str(getattr(node, 'raw_kind', '')))
            else:
                self.run.diagnostics.record('ignored_statement', node.kind.value)
            return
        handler(node)
    
    def dispatch_all(self, statements: Iterable[Node]):
        for statement in statements:
            self.dispatch(statement)
    
    def dispatch_body(self, statements: Iterable[Node], context: str = 'branch'):
        """
        执行分支或循环体。
        
        FIRST 策略只处理第一条赋值/条件语句；ALL 策略下分支体按完整语义
        执行，循环体仍只处理赋值与条件语句。
        """
        strategy = self.run.options.block_strategy
        if strategy is BlockStrategy.ALL and context == 'branch':
            self.dispatch_all(statements)
            return
        
        processed = False
        for statement in statements:
            if statement.kind not in BODY_KINDS:
                self.run.diagnostics.record(f'{context}_statement_skipped', statement.kind.value)
                continue
            if processed and strategy is BlockStrategy.FIRST:
                self.run.diagnostics.record(f'{context}_statement_skipped', statement.kind.value)
                continue
            self.dispatch(statement)
            processed = True
    
    def _assign(self, node: Assign):
        taint = self.evaluator.evaluate(node.right)
        left = node.left
        if not isinstance(left, Variable) or left.name is None:
            self.run.diagnostics.record('assign_without_target', left.kind.value)
            return
        self.run.env.declare(left.name)
        self.run.env.set(left.name, taint)
    
    def _echo(self, node: Echo):
        # 只有直接输出的入口点读取才会触发 echo 汇聚点
        sink = self.run.options.echo_sink
        for argument in node.arguments:
            if not isinstance(argument, OffsetLookup):
                continue
            for pattern in self.evaluator.entry_point_patterns(argument):
                if sink in pattern.sinks:
                    self.logger.warning(f"入口点 ${argument.name} 未经净化直接输出 ({pattern.name})")
                    self.run.verdict.mark_vulnerable(pattern.name)
    
    def _block(self, node: Block):
        self.dispatch_all(node.children)
