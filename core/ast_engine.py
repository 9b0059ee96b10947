"""
切片 AST 引擎
把外部解析器（php-parser）输出的 JSON 树转换成带类型标签的不可变节点。
"""

import json
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from utils.helpers import read_file_content
from utils.logger import get_logger
from .errors import ASTLoadError


class NodeKind(Enum):
    """节点类型"""
    ASSIGN = "assign"
    ECHO = "echo"
    IF = "if"
    WHILE = "while"
    BIN = "bin"
    CALL = "call"
    OFFSETLOOKUP = "offsetlookup"
    VARIABLE = "variable"
    STRING = "string"
    ENCAPSED = "encapsed"
    BLOCK = "block"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Node:
    """所有节点的基类"""
    kind = NodeKind.UNKNOWN


@dataclass(frozen=True)
class Unknown(Node):
    """无法识别或格式错误的节点，分析时按无污点处理"""
    raw_kind: Optional[str] = None
    reason: str = "unrecognized"
    kind = NodeKind.UNKNOWN


@dataclass(frozen=True)
class Variable(Node):
    name: Optional[str] = None
    kind = NodeKind.VARIABLE


@dataclass(frozen=True)
class String(Node):
    value: str = ""
    kind = NodeKind.STRING


@dataclass(frozen=True)
class OffsetLookup(Node):
    """数组下标读取，例如 $_GET['id']"""
    name: Optional[str] = None
    offset: Optional[Node] = None
    kind = NodeKind.OFFSETLOOKUP


@dataclass(frozen=True)
class Bin(Node):
    type: str = ""
    left: Node = Unknown(reason="missing")
    right: Node = Unknown(reason="missing")
    kind = NodeKind.BIN


@dataclass(frozen=True)
class Call(Node):
    name: Optional[str] = None
    arguments: Tuple[Node, ...] = ()
    kind = NodeKind.CALL


@dataclass(frozen=True)
class Encapsed(Node):
    """插值字符串 "... $x ..." """
    parts: Tuple[Node, ...] = ()
    kind = NodeKind.ENCAPSED


@dataclass(frozen=True)
class Assign(Node):
    left: Node = Unknown(reason="missing")
    right: Node = Unknown(reason="missing")
    kind = NodeKind.ASSIGN


@dataclass(frozen=True)
class Echo(Node):
    arguments: Tuple[Node, ...] = ()
    kind = NodeKind.ECHO


@dataclass(frozen=True)
class If(Node):
    test: Node = Unknown(reason="missing")
    body: Tuple[Node, ...] = ()
    alternate: Optional[Tuple[Node, ...]] = None
    kind = NodeKind.IF


@dataclass(frozen=True)
class While(Node):
    test: Node = Unknown(reason="missing")
    body: Tuple[Node, ...] = ()
    kind = NodeKind.WHILE


@dataclass(frozen=True)
class Block(Node):
    children: Tuple[Node, ...] = ()
    kind = NodeKind.BLOCK


@dataclass(frozen=True)
class Program:
    """切片根节点"""
    children: Tuple[Node, ...] = ()


class ASTEngine:
    """
    切片 AST 加载引擎。
    
    只做结构转换，不做合法性校验：缺字段或未知类型的节点降级为
    Unknown，并在 diagnostics 中按原因计数。
    """
    
    def __init__(self):
        self.logger = get_logger()
        self.diagnostics: Counter = Counter()
        self._builders = {
            'assign': self._build_assign,
            'echo': self._build_echo,
            'if': self._build_if,
            'while': self._build_while,
            'bin': self._build_bin,
            'call': self._build_call,
            'offsetlookup': self._build_offsetlookup,
            'variable': self._build_variable,
            'string': self._build_string,
            'encapsed': self._build_encapsed,
            'block': self._build_block,
        }
    
    def parse_file(self, file_path: str) -> Program:
        """读取切片文件生成 AST"""
        try:
            content = read_file_content(file_path)
        except OSError as e:
            raise ASTLoadError(f"无法读取切片文件 {file_path}: {e}") from e
        return self.parse_code(content)
    
    def parse_code(self, content: str) -> Program:
        """解析 JSON 字符串"""
        try:
            data = json.loads(content)
        except RecursionError as e:
            raise ASTLoadError("切片嵌套过深，无法解析") from e
        except (TypeError, ValueError) as e:
            raise ASTLoadError(f"切片不是合法的 JSON: {e}") from e
        return self.load(data)
    
    def load(self, data: Union[Dict[str, Any], Program]) -> Program:
        """把已解码的 JSON 树转换为 Program"""
        if isinstance(data, Program):
            return data
        if not isinstance(data, dict):
            raise ASTLoadError(f"切片根节点必须是对象，实际为 {type(data).__name__}")
        children = data.get('children')
        if not isinstance(children, list):
            self._degrade('program_without_children')
            return Program()
        try:
            return Program(children=tuple(self.build(child) for child in children))
        except RecursionError as e:
            raise ASTLoadError("切片嵌套过深，无法构建 AST") from e
    
    def build(self, raw: Any) -> Node:
        """递归构建单个节点"""
        if not isinstance(raw, dict):
            return self._degrade('non_object_node')
        kind = raw.get('kind')
        if not isinstance(kind, str):
            return self._degrade('node_without_kind')
        builder = self._builders.get(kind)
        if builder is None:
            return self._degrade('unrecognized_kind', raw_kind=kind)
        return builder(raw)
    
    # --- 内部工具 ---
    
    def _degrade(self, reason: str, raw_kind: Optional[str] = None) -> Unknown:
        self.diagnostics[reason] += 1
        self.logger.debug(f"AST 节点降级为 unknown: {reason} ({raw_kind})")
        return Unknown(raw_kind=raw_kind, reason=reason)
    
    def _child(self, raw: Dict, field_name: str) -> Node:
        if field_name not in raw or raw[field_name] is None:
            return self._degrade(f"missing_{field_name}", raw_kind=raw.get('kind'))
        return self.build(raw[field_name])
    
    def _children(self, items: Any) -> Tuple[Node, ...]:
        if not isinstance(items, list):
            return ()
        return tuple(self.build(item) for item in items)
    
    def _statements(self, raw: Any) -> Tuple[Node, ...]:
        """把分支/循环体规范化为语句序列"""
        if raw is None:
            return ()
        if isinstance(raw, dict) and raw.get('kind') == 'block':
            return self._children(raw.get('children'))
        return (self.build(raw),)
    
    @staticmethod
    def _name_of(raw: Any) -> Optional[str]:
        if isinstance(raw, dict):
            name = raw.get('name')
            if isinstance(name, str):
                return name
        return None
    
    # --- 各类节点 ---
    
    def _build_assign(self, raw: Dict) -> Node:
        return Assign(left=self._child(raw, 'left'), right=self._child(raw, 'right'))
    
    def _build_echo(self, raw: Dict) -> Node:
        return Echo(arguments=self._children(raw.get('arguments')))
    
    def _build_if(self, raw: Dict) -> Node:
        alternate = raw.get('alternate')
        return If(
            test=self._child(raw, 'test'),
            body=self._statements(raw.get('body')),
            alternate=None if alternate is None else self._statements(alternate)
        )
    
    def _build_while(self, raw: Dict) -> Node:
        return While(test=self._child(raw, 'test'), body=self._statements(raw.get('body')))
    
    def _build_bin(self, raw: Dict) -> Node:
        return Bin(
            type=str(raw.get('type', '')),
            left=self._child(raw, 'left'),
            right=self._child(raw, 'right')
        )
    
    def _build_call(self, raw: Dict) -> Node:
        return Call(name=self._name_of(raw.get('what')), arguments=self._children(raw.get('arguments')))
    
    def _build_offsetlookup(self, raw: Dict) -> Node:
        offset = raw.get('offset')
        return OffsetLookup(
            name=self._name_of(raw.get('what')),
            offset=None if offset is None else self.build(offset)
        )
    
    def _build_variable(self, raw: Dict) -> Node:
        return Variable(name=self._name_of(raw))
    
    def _build_string(self, raw: Dict) -> Node:
        value = raw.get('value')
        return String(value='' if value is None else str(value))
    
    def _build_encapsed(self, raw: Dict) -> Node:
        parts = []
        for item in raw.get('value') or []:
            # 新版解析器把插值包在 encapsedpart.expression 里
            if isinstance(item, dict) and item.get('kind') == 'encapsedpart':
                item = item.get('expression')
            parts.append(self.build(item))
        return Encapsed(parts=tuple(parts))
    
    def _build_block(self, raw: Dict) -> Node:
        return Block(children=self._children(raw.get('children')))
