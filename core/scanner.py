"""
切片扫描器核心模块
对单个切片文件或整个目录执行污点分析并汇总结果
"""

import os
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from utils.helpers import calculate_file_hash, get_slice_files
from utils.logger import get_logger
from .ast_engine import ASTEngine
from .config import Config
from .errors import AnalyzerError
from .patterns import PatternCatalog


class SliceScanner:
    """切片扫描器主类"""
    
    def __init__(self, config: Config, catalog: Optional[PatternCatalog] = None):
        self.config = config
        self.logger = get_logger()
        self.catalog = catalog if catalog is not None else PatternCatalog.load(config.patterns_file)
        
        # 延迟导入，避免循环依赖
        from analyzers.taint import TaintAnalyzer
        self.analyzer = TaintAnalyzer(config, self.catalog)
    
    def scan(self, target: str) -> Dict[str, Any]:
        """
        执行切片扫描
        
        Args:
            target: 切片文件或目录路径
        
        Returns:
            扫描结果字典
        """
        start_time = time.time()
        
        results = {
            'target': target,
            'scan_time': 0,
            'scan_date': datetime.now().isoformat(),
            'files_scanned': 0,
            'patterns': self.catalog.names(),
            'slices': [],
            'findings': [],
            'summary': {}
        }
        
        files = get_slice_files(target)
        results['files_scanned'] = len(files)
        self.logger.info(f"找到 {len(files)} 个切片文件")
        
        if not files:
            self.logger.warning("未找到任何切片文件")
            results['summary'] = self._calculate_summary(results['slices'])
            return results
        
        for file_path in files:
            slice_result = self.scan_file(file_path)
            results['slices'].append(slice_result)
            results['findings'].extend(self._findings_for(slice_result))
        
        results['scan_time'] = time.time() - start_time
        results['summary'] = self._calculate_summary(results['slices'])
        
        self.logger.info(f"扫描完成，耗时 {results['scan_time']:.2f} 秒")
        return results
    
    def scan_file(self, file_path: str) -> Dict[str, Any]:
        """分析单个切片；加载失败只影响该切片"""
        record = {
            'file': file_path,
            'sha256': None,
            'vulnerable': False,
            'violated_patterns': [],
            'sanitizers_applied': [],
            'diagnostics': {},
            'loop_iterations': 0,
            'error': None
        }
        try:
            record['sha256'] = calculate_file_hash(file_path)
            program = ASTEngine().parse_file(file_path)
            verdict = self.analyzer.analyze(program)
        except (AnalyzerError, OSError) as e:
            self.logger.error(f"无法分析切片 {file_path}: {e}")
            record['error'] = str(e)
            return record
        
        record.update(verdict.to_dict())
        return record
    
    def _findings_for(self, slice_result: Dict[str, Any]) -> List[Dict[str, Any]]:
        """每个被违反的模式生成一条发现（重复命中保留）"""
        findings = []
        sanitizers = slice_result.get('sanitizers_applied', [])
        for pattern_name in slice_result.get('violated_patterns', []):
            findings.append({
                'id': 'TAINT-001',
                'title': f'{pattern_name}: 污点数据流向敏感操作',
                'severity': 'high',
                'category': 'taint_analysis',
                'description': f'入口点读入的数据未经净化到达 "{pattern_name}" 模式的敏感汇聚点',
                'recommendation': '在数据进入敏感操作之前调用该模式列出的净化函数。',
                'file': slice_result['file'],
                'pattern': pattern_name,
                'sanitizers_applied': list(sanitizers),
                'analyzer': 'TaintAnalyzer'
            })
        return findings
    
    def _calculate_summary(self, slices: List[Dict]) -> Dict[str, Any]:
        """计算扫描结果摘要"""
        by_pattern: Dict[str, int] = {}
        for record in slices:
            for name in record.get('violated_patterns', []):
                by_pattern[name] = by_pattern.get(name, 0) + 1
        
        return {
            'total_slices': len(slices),
            'vulnerable_slices': sum(1 for r in slices if r.get('vulnerable')),
            'safe_slices': sum(1 for r in slices if not r.get('vulnerable') and not r.get('error')),
            'failed_slices': sum(1 for r in slices if r.get('error')),
            'total_findings': sum(len(r.get('violated_patterns', [])) for r in slices),
            'by_pattern': by_pattern
        }
    
    @staticmethod
    def display_name(file_path: str) -> str:
        return os.path.basename(file_path)
