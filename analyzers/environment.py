"""
污点分析运行状态
污点环境、判定结果、诊断计数与当前生效的模式集合，均只属于单次分析。
"""

from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple

from core.patterns import Pattern, PatternCatalog
from utils.logger import get_logger


class BlockStrategy(Enum):
    """分支/循环体的处理策略"""
    FIRST = "first"   # 只处理第一条可识别语句
    ALL = "all"       # 依次处理全部语句


class NarrowingMode(Enum):
    """入口点读取对模式集合的影响"""
    SCOPED = "scoped"  # 只查询，不收窄
    LEGACY = "legacy"  # 在本次运行内持续收窄


@dataclass(frozen=True)
class AnalysisOptions:
    block_strategy: BlockStrategy = BlockStrategy.FIRST
    narrowing: NarrowingMode = NarrowingMode.SCOPED
    guarded_literal_heuristic: bool = True
    passthrough_functions: Tuple[str, ...] = ('substr',)
    entry_point_prefix: str = '$'
    echo_sink: str = 'echo'
    
    @classmethod
    def from_config(cls, config) -> 'AnalysisOptions':
        """从 Config 读取 analysis.* 配置"""
        return cls(
            block_strategy=BlockStrategy(config.get('analysis.block_strategy', 'first')),
            narrowing=NarrowingMode(config.get('analysis.pattern_narrowing', 'scoped')),
            guarded_literal_heuristic=bool(config.get('analysis.guarded_literal_heuristic', True)),
            passthrough_functions=tuple(config.get('analysis.passthrough_functions', ['substr'])),
            entry_point_prefix=str(config.get('analysis.entry_point_prefix', '$')),
            echo_sink=str(config.get('analysis.echo_sink', 'echo'))
        )


# 污点值: 该数据可能违反的模式名称集合，空集表示未污染
Taint = FrozenSet[str]
CLEAN: Taint = frozenset()


class TaintEnvironment:
    """
    变量名 -> 污点值（模式名称集合）。

    只有污点集合中的模式才会在汇聚点被检查，因此某个模式的入口点
    读入的数据不会被报告为其它模式的漏洞。
    读取不存在的变量不会报错，而是按未污染处理并登记该变量。
    """
    
    def __init__(self, bindings: Optional[Dict[str, Iterable[str]]] = None):
        self._taint: Dict[str, Taint] = {
            name: frozenset(patterns) for name, patterns in (bindings or {}).items()
        }
    
    def declare(self, name: str):
        self._taint.setdefault(name, CLEAN)
    
    def taint_of(self, name: str) -> Taint:
        return self._taint.setdefault(name, CLEAN)
    
    def is_tainted(self, name: str) -> bool:
        return bool(self.taint_of(name))
    
    def set(self, name: str, taint: Iterable[str]):
        self._taint[name] = frozenset(taint)
    
    def sanitize(self, name: str):
        self._taint[name] = CLEAN
    
    def tainted_names(self) -> Set[str]:
        return {name for name, taint in self._taint.items() if taint}
    
    def weight(self) -> int:
        """(变量, 模式) 污点对的数量，循环不动点以它的增长作为继续条件"""
        return sum(len(taint) for taint in self._taint.values())
    
    def copy(self) -> 'TaintEnvironment':
        return TaintEnvironment(self._taint)
    
    def to_dict(self) -> Dict[str, List[str]]:
        return {name: sorted(taint) for name, taint in self._taint.items()}
    
    def join(self, other: 'TaintEnvironment') -> 'TaintEnvironment':
        """分支合并：逐变量取并集，任一分支出现的变量都保留"""
        merged = dict(other._taint)
        for name, taint in self._taint.items():
            merged[name] = taint | other._taint.get(name, CLEAN)
        return TaintEnvironment(merged)
    
    def __contains__(self, name) -> bool:
        return name in self._taint
    
    def __len__(self) -> int:
        return len(self._taint)
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, TaintEnvironment):
            return NotImplemented
        return self._taint == other._taint
    
    def __repr__(self) -> str:
        return f"TaintEnvironment({self._taint!r})"


class Diagnostics:
    """降级路径计数器，每次局部放弃分析都会留下记录"""
    
    def __init__(self):
        self.logger = get_logger()
        self._counts: Counter = Counter()
    
    def record(self, reason: str, detail: str = ''):
        self._counts[reason] += 1
        self.logger.debug(f"降级处理: {reason} {detail}".rstrip())
    
    def merge(self, counts, prefix: str = ''):
        for reason, count in counts.items():
            self._counts[prefix + reason] += count
    
    def __getitem__(self, reason: str) -> int:
        return self._counts[reason]
    
    def total(self) -> int:
        return sum(self._counts.values())
    
    def to_dict(self) -> Dict[str, int]:
        return dict(self._counts)


class Verdict:
    """
    分析结论。vulnerable 只能从 False 变为 True，之后不再回退。
    violated_patterns 不去重：同一模式多次命中会重复记录。
    """
    
    def __init__(self):
        self._vulnerable = False
        self.violated_patterns: List[str] = []
        self.sanitizers_applied: List[str] = []
        self.diagnostics: Dict[str, int] = {}
        self.loop_iterations = 0
    
    @property
    def vulnerable(self) -> bool:
        return self._vulnerable
    
    def mark_vulnerable(self, pattern_name: str):
        self._vulnerable = True
        self.violated_patterns.append(pattern_name)
    
    def record_sanitizer(self, name: str):
        self.sanitizers_applied.append(name)
    
    def __bool__(self) -> bool:
        return self._vulnerable
    
    def to_dict(self) -> Dict:
        return {
            'vulnerable': self._vulnerable,
            'violated_patterns': list(self.violated_patterns),
            'sanitizers_applied': list(self.sanitizers_applied),
            'diagnostics': dict(self.diagnostics),
            'loop_iterations': self.loop_iterations
        }


class ActivePatternSet:
    """本次运行中参与检查的模式；目录本身从不被修改"""
    
    def __init__(self, catalog: PatternCatalog, mode: NarrowingMode = NarrowingMode.SCOPED):
        self.catalog = catalog
        self.mode = mode
        self._active: Tuple[Pattern, ...] = catalog.patterns
    
    @property
    def active(self) -> Tuple[Pattern, ...]:
        return self._active
    
    def entry_point(self, name: str) -> Tuple[Pattern, ...]:
        """返回以 name 为入口点的模式；legacy 模式下同时收窄后续检查范围"""
        matched = self.catalog.for_entry_point(name, within=self._active)
        if self.mode is NarrowingMode.LEGACY:
            self._active = matched
        return matched
    
    def names(self) -> Taint:
        """当前参与检查的模式名称"""
        return frozenset(p.name for p in self._active)


@dataclass(frozen=True)
class GuardedLiteral:
    """条件测试中与变量比较的字符串字面量，在两个分支内有效"""
    value: str


@dataclass
class AnalysisRun:
    """单次分析的全部可变状态"""
    patterns: ActivePatternSet
    options: AnalysisOptions = field(default_factory=AnalysisOptions)
    env: TaintEnvironment = field(default_factory=TaintEnvironment)
    verdict: Verdict = field(default_factory=Verdict)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    guards: List[GuardedLiteral] = field(default_factory=list)
    
    @classmethod
    def start(cls, catalog: PatternCatalog, options: Optional[AnalysisOptions] = None) -> 'AnalysisRun':
        options = options or AnalysisOptions()
        return cls(patterns=ActivePatternSet(catalog, options.narrowing), options=options)
    
    @property
    def guard(self) -> Optional[GuardedLiteral]:
        return self.guards[-1] if self.guards else None
    
    @contextmanager
    def guarded(self, literal: Optional[GuardedLiteral]) -> Iterator[None]:
        """在 with 块内生效的字面量守卫；退出时恢复外层守卫"""
        if literal is None:
            yield
            return
        self.guards.append(literal)
        try:
            yield
        finally:
            self.guards.pop()
    
    def finish(self) -> Verdict:
        self.verdict.diagnostics = self.diagnostics.to_dict()
        return self.verdict
