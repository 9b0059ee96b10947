"""
异常定义模块
"""


class AnalyzerError(Exception):
    """分析器基础异常"""


class ASTLoadError(AnalyzerError):
    """切片 AST 无法读取或不是合法 JSON"""


class PatternLoadError(AnalyzerError):
    """漏洞模式目录格式错误"""
