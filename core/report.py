"""
报告生成模块
支持HTML、JSON、TXT格式的报告输出
"""

import os
import json
from pathlib import Path
from datetime import datetime
from typing import Dict, Any

from jinja2 import Environment

from .config import Config

REPORT_FORMATS = ('html', 'json', 'txt', 'all')


class ReportGenerator:
    """报告生成器"""
    
    def __init__(self, config: Config):
        self.config = config
    
    def generate(self, results: Dict[str, Any], output_dir: str,
                 format: str = 'json') -> str:
        """
        生成扫描报告
        
        Args:
            results: 扫描结果
            output_dir: 输出目录
            format: 报告格式 (html/json/txt/all)
        
        Returns:
            报告文件路径
        """
        Path(output_dir).mkdir(parents=True, exist_ok=True)
        
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        base_name = f"report_{timestamp}"
        
        if format == 'all':
            self._generate_html(results, output_dir, base_name)
            self._generate_txt(results, output_dir, base_name)
            return self._generate_json(results, output_dir, base_name)
        elif format == 'html':
            return self._generate_html(results, output_dir, base_name)
        elif format == 'txt':
            return self._generate_txt(results, output_dir, base_name)
        else:
            return self._generate_json(results, output_dir, base_name)
    
    def _generate_html(self, results: Dict, output_dir: str, base_name: str) -> str:
        """生成HTML报告"""
        # 启用自动转义以防止HTML注入（模式名来自外部文件）
        env = Environment(autoescape=True)
        template = env.from_string(self._get_html_template())
        
        html_content = template.render(
            title=f"{self.config.get('system.name', 'Slice-Analyzer')} 污点分析报告",
            target=results.get('target', 'Unknown'),
            scan_date=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            scan_time=results.get('scan_time', 0),
            files_scanned=results.get('files_scanned', 0),
            patterns=results.get('patterns', []),
            summary=results.get('summary', {}),
            slices=results.get('slices', [])
        )
        
        output_path = os.path.join(output_dir, f"{base_name}.html")
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(html_content)
        
        return output_path
    
    def _get_html_template(self) -> str:
        """获取HTML模板"""
        return '''<!DOCTYPE html>
<html lang="zh-CN">
<head>
    <meta charset="UTF-8">
    <title>{{ title }}</title>
    <style>
        body { font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; background: #0f172a; color: #e2e8f0; margin: 0; }
        .container { max-width: 1100px; margin: 0 auto; padding: 24px; }
        h1 { color: #38bdf8; }
        .meta span { margin-right: 24px; color: #94a3b8; }
        table { width: 100%; border-collapse: collapse; margin-top: 20px; }
        th, td { padding: 10px; border-bottom: 1px solid #1e293b; text-align: left; vertical-align: top; }
        th { color: #94a3b8; }
        .vulnerable { color: #f87171; font-weight: bold; }
        .safe { color: #4ade80; }
        .error { color: #facc15; }
        code { color: #cbd5e1; }
    </style>
</head>
<body>
<div class="container">
    <h1>{{ title }}</h1>
    <div class="meta">
        <span>目标: {{ target }}</span>
        <span>时间: {{ scan_date }}</span>
        <span>耗时: {{ "%.2f"|format(scan_time) }} 秒</span>
        <span>切片数: {{ files_scanned }}</span>
    </div>
    <p>漏洞切片 <span class="vulnerable">{{ summary.vulnerable_slices or 0 }}</span> /
       安全切片 <span class="safe">{{ summary.safe_slices or 0 }}</span> /
       失败 <span class="error">{{ summary.failed_slices or 0 }}</span></p>
    <p>模式: {% for p in patterns %}<code>{{ p }}</code>{% if not loop.last %}, {% endif %}{% endfor %}</p>
    <table>
        <tr><th>切片</th><th>结论</th><th>违反的模式</th><th>已应用的净化函数</th><th>降级</th></tr>
        {% for s in slices %}
        <tr>
            <td><code>{{ s.file }}</code></td>
            {% if s.error %}
            <td class="error">加载失败</td><td colspan="3">{{ s.error }}</td>
            {% else %}
            <td class="{{ 'vulnerable' if s.vulnerable else 'safe' }}">{{ '存在漏洞' if s.vulnerable else '安全' }}</td>
            <td>{{ s.violated_patterns|join(', ') }}</td>
            <td>{{ s.sanitizers_applied|join(', ') }}</td>
            <td>{% for k, v in s.diagnostics.items() %}{{ k }}={{ v }} {% endfor %}</td>
            {% endif %}
        </tr>
        {% endfor %}
    </table>
</div>
</body>
</html>'''
    
    def _generate_json(self, results: Dict, output_dir: str, base_name: str) -> str:
        """生成JSON报告"""
        output_path = os.path.join(output_dir, f"{base_name}.json")
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(results, f, ensure_ascii=False, indent=2)
        return output_path
    
    def _generate_txt(self, results: Dict, output_dir: str, base_name: str) -> str:
        """生成文本报告"""
        lines = []
        lines.append("=" * 70)
        lines.append(f"{self.config.get('system.name', 'Slice-Analyzer')} 污点分析报告")
        lines.append("=" * 70)
        lines.append(f"\n扫描目标: {results.get('target', '')}")
        lines.append(f"扫描时间: {results.get('scan_date', '')}")
        lines.append(f"扫描耗时: {results.get('scan_time', 0):.2f} 秒")
        lines.append(f"切片文件: {results.get('files_scanned', 0)} 个")
        
        summary = results.get('summary', {})
        lines.append(f"\n{'=' * 70}")
        lines.append("扫描结果摘要")
        lines.append("=" * 70)
        lines.append(f"漏洞切片: {summary.get('vulnerable_slices', 0)}")
        lines.append(f"安全切片: {summary.get('safe_slices', 0)}")
        lines.append(f"加载失败: {summary.get('failed_slices', 0)}")
        for name, count in summary.get('by_pattern', {}).items():
            lines.append(f"  {name}: {count}")
        
        slices = results.get('slices', [])
        if slices:
            lines.append(f"\n{'=' * 70}")
            lines.append("切片详情")
            lines.append("=" * 70)
            
            for i, record in enumerate(slices, 1):
                lines.append(f"\n[{i}] {record.get('file', '')}")
                if record.get('error'):
                    lines.append(f"    错误: {record['error']}")
                    continue
                lines.append(f"    结论: {'存在漏洞' if record.get('vulnerable') else '安全'}")
                if record.get('violated_patterns'):
                    lines.append(f"    违反的模式: {', '.join(record['violated_patterns'])}")
                if record.get('sanitizers_applied'):
                    lines.append(f"    净化函数: {', '.join(record['sanitizers_applied'])}")
        
        output_path = os.path.join(output_dir, f"{base_name}.txt")
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write('\n'.join(lines))
        
        return output_path
