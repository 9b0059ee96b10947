"""
漏洞模式目录
每个模式包含: 漏洞名称、入口点、净化函数、敏感汇聚点
"""

import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

import yaml

from utils.helpers import read_file_content, split_names
from utils.logger import get_logger
from .errors import PatternLoadError

# 文本格式中分隔模式的行
PATTERN_DELIMITER = '-'

# 记录中以名称列表表示的字段
NAME_LIST_FIELDS = ('entry_points', 'sanitizers', 'sinks')


@dataclass(frozen=True)
class Pattern:
    """
    漏洞模式（加载后不可变）。
    
    数据流若经过净化函数则视为安全；未经净化到达敏感汇聚点则视为漏洞。
    """
    name: str
    entry_points: FrozenSet[str] = field(default_factory=frozenset)
    sanitizers: FrozenSet[str] = field(default_factory=frozenset)
    sinks: FrozenSet[str] = field(default_factory=frozenset)
    
    @classmethod
    def build(cls, name: str, entry_points, sanitizers, sinks) -> 'Pattern':
        return cls(
            name=name.strip(),
            entry_points=frozenset(split_names(entry_points)),
            sanitizers=frozenset(split_names(sanitizers)),
            sinks=frozenset(split_names(sinks))
        )
    
    def to_dict(self) -> Dict:
        return {
            'name': self.name,
            'entry_points': sorted(self.entry_points),
            'sanitizers': sorted(self.sanitizers),
            'sinks': sorted(self.sinks)
        }


class PatternCatalog:
    """有序、不可变的模式目录；所有查询都不修改目录本身"""
    
    def __init__(self, patterns: Iterable[Pattern] = ()):
        self._patterns: Tuple[Pattern, ...] = tuple(patterns)
    
    def __iter__(self) -> Iterator[Pattern]:
        return iter(self._patterns)
    
    def __len__(self) -> int:
        return len(self._patterns)
    
    def __bool__(self) -> bool:
        return bool(self._patterns)
    
    @property
    def patterns(self) -> Tuple[Pattern, ...]:
        return self._patterns
    
    def names(self) -> List[str]:
        return [p.name for p in self._patterns]
    
    def get(self, name: str) -> Optional[Pattern]:
        for pattern in self._patterns:
            if pattern.name == name:
                return pattern
        return None
    
    def for_entry_point(self, name: str, within: Optional[Iterable[Pattern]] = None) -> Tuple[Pattern, ...]:
        """入口点名称出现在其 entry_points 中的模式"""
        source = self._patterns if within is None else within
        return tuple(p for p in source if name in p.entry_points)
    
    def with_sanitizer(self, name: str, within: Optional[Iterable[Pattern]] = None) -> Tuple[Pattern, ...]:
        source = self._patterns if within is None else within
        return tuple(p for p in source if name in p.sanitizers)
    
    def with_sink(self, name: str, within: Optional[Iterable[Pattern]] = None) -> Tuple[Pattern, ...]:
        source = self._patterns if within is None else within
        return tuple(p for p in source if name in p.sinks)
    
    def to_list(self) -> List[Dict]:
        return [p.to_dict() for p in self._patterns]
    
    # --- 加载 ---
    
    @classmethod
    def load(cls, path: str) -> 'PatternCatalog':
        """按扩展名选择加载器: .yaml/.yml 为 YAML，其余为文本格式"""
        if not os.path.isfile(path):
            raise PatternLoadError(f"找不到模式文件: {path}")
        content = read_file_content(path)
        if path.lower().endswith(('.yaml', '.yml')):
            catalog = cls.from_yaml(content)
        else:
            catalog = cls.from_text(content)
        get_logger().info(f"从 {path} 加载了 {len(catalog)} 个漏洞模式")
        return catalog
    
    @classmethod
    def from_text(cls, content: str) -> 'PatternCatalog':
        """
        解析文本格式：每个模式四行（名称、入口点、净化函数、汇聚点，
        后三行以逗号分隔），以单独一行 "-" 结束。最后一组可以省略分隔行。
        """
        patterns = []
        group: List[str] = []
        for line_number, raw_line in enumerate(content.splitlines(), 1):
            line = raw_line.strip()
            if line == PATTERN_DELIMITER:
                patterns.append(cls._pattern_from_group(group, line_number))
                group = []
            elif line or group:
                group.append(line)
        if any(group):
            patterns.append(cls._pattern_from_group(group, None))
        return cls(patterns)
    
    @staticmethod
    def _pattern_from_group(group: List[str], line_number: Optional[int]) -> Pattern:
        # 组内允许出现尾随空行
        while len(group) > 4 and not group[-1]:
            group = group[:-1]
        if len(group) != 4 or not group[0]:
            where = f"第 {line_number} 行之前" if line_number else "文件末尾"
            raise PatternLoadError(f"{where}的模式应包含 4 行，实际为 {len(group)} 行")
        name, entry_points, sanitizers, sinks = group
        return Pattern.build(name, entry_points, sanitizers, sinks)
    
    @classmethod
    def from_yaml(cls, content: str) -> 'PatternCatalog':
        """解析 YAML 格式: patterns: [{name, entry_points, sanitizers, sinks}]"""
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise PatternLoadError(f"模式文件不是合法的 YAML: {e}") from e
        if not data:
            return cls()
        if not isinstance(data, dict) or not isinstance(data.get('patterns'), list):
            raise PatternLoadError("YAML 模式文件需要顶层 patterns 列表")
        return cls.from_records(data['patterns'])
    
    @classmethod
    def from_records(cls, records: Iterable[Dict]) -> 'PatternCatalog':
        """从字典记录构建目录（API/YAML 共用）"""
        if not isinstance(records, (list, tuple)):
            raise PatternLoadError(f"模式列表必须是数组，实际为 {type(records).__name__}")
        patterns = []
        for index, record in enumerate(records):
            if not isinstance(record, dict) or not record.get('name'):
                raise PatternLoadError(f"第 {index + 1} 个模式缺少 name")
            for key in NAME_LIST_FIELDS:
                if not cls._is_name_list(record.get(key)):
                    raise PatternLoadError(
                        f"第 {index + 1} 个模式的 {key} 必须是逗号分隔的字符串或字符串列表"
                    )
            patterns.append(Pattern.build(
                str(record['name']),
                record.get('entry_points'),
                record.get('sanitizers'),
                record.get('sinks')
            ))
        return cls(patterns)
    
    @staticmethod
    def _is_name_list(value) -> bool:
        if value is None or isinstance(value, str):
            return True
        return isinstance(value, list) and all(isinstance(item, str) for item in value)
