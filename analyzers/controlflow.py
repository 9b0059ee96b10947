"""
控制流处理
条件分支的合并（逐变量取或）与循环体的不动点迭代。
"""

from typing import Optional, TYPE_CHECKING

from core.ast_engine import Bin, If, Node, String, Variable, While
from utils.logger import get_logger
from .environment import GuardedLiteral

if TYPE_CHECKING:
    from .dispatcher import StatementDispatcher

# 触发字面量守卫的比较运算
EQUALITY_OPERATORS = ('==', '===')


def guarded_literal_of(test: Node) -> Optional[GuardedLiteral]:
    """条件形如 $x == 'lit'（或 'lit' == $x）时返回该字面量"""
    if not isinstance(test, Bin) or test.type not in EQUALITY_OPERATORS:
        return None
    if isinstance(test.left, Variable) and isinstance(test.right, String):
        return GuardedLiteral(test.right.value)
    if isinstance(test.left, String) and isinstance(test.right, Variable):
        return GuardedLiteral(test.left.value)
    return None


class ConditionalHandler:
    """
    if/else 处理器。
    
    两个分支都从同一个分支前快照出发，各自在副本上执行，
    结束后逐变量取或合并，作为条件语句之后的环境。
    """
    
    def __init__(self, dispatcher: 'StatementDispatcher'):
        self.dispatcher = dispatcher
        self.run = dispatcher.run
    
    def handle(self, node: If):
        literal = None
        if self.run.options.guarded_literal_heuristic:
            literal = guarded_literal_of(node.test)
        
        before = self.run.env
        with self.run.guarded(literal):
            then_env = self._run_branch(before, node.body)
            if node.alternate is None:
                else_env = before.copy()
            else:
                else_env = self._run_branch(before, node.alternate)
        
        self.run.env = then_env.join(else_env)
    
    def _run_branch(self, snapshot, statements):
        self.run.env = snapshot.copy()
        self.dispatcher.dispatch_body(statements, context='branch')
        return self.run.env


class LoopHandler:
    """
    while 处理器。
    
    在当前环境上反复执行循环体，直到环境不再变化，或 (变量, 模式)
    污点对的数量不再严格增加为止。污点对数量的上界是
    变量数 × 模式数，因此迭代次数不超过该上界 + 1；
    只有一个模式时即为变量总数 + 1。
    """
    
    def __init__(self, dispatcher: 'StatementDispatcher'):
        self.dispatcher = dispatcher
        self.run = dispatcher.run
        self.logger = get_logger()
    
    def handle(self, node: While) -> int:
        iterations = 0
        while True:
            before = self.run.env.copy()
            weight_before = before.weight()
            
            self.dispatcher.dispatch_body(node.body, context='loop')
            iterations += 1
            
            changed = self.run.env != before
            grew = self.run.env.weight() > weight_before
            if not (changed and grew):
                break
        
        self.run.verdict.loop_iterations += iterations
        self.logger.debug(f"循环在 {iterations} 次迭代后到达不动点")
        return iterations
