"""
Slice-Analyzer Web应用
Flask JSON 接口
"""

import sys
from pathlib import Path

# 添加项目根目录到路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from flask import Flask, render_template_string, request, jsonify
from flask_cors import CORS

from core.config import Config
from core.errors import AnalyzerError
from core.patterns import PatternCatalog
from analyzers.taint import TaintAnalyzer, as_catalog


def create_app(config_path: str = None, config: Config = None, catalog: PatternCatalog = None):
    """创建Flask应用"""
    app = Flask(__name__)
    CORS(app)
    
    config = config or Config(config_path)
    catalog = catalog if catalog is not None else PatternCatalog.load(config.patterns_file)
    analyzer = TaintAnalyzer(config, catalog)
    
    @app.route('/')
    def index():
        """主页"""
        return render_template_string(get_index_html(), patterns=catalog.names())
    
    @app.route('/api/analyze', methods=['POST'])
    def analyze():
        """分析请求体中的切片 AST"""
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not isinstance(data.get('ast'), dict):
            return jsonify({
                'success': False,
                'error': '请求体需要包含 ast 对象'
            }), 400
        
        try:
            patterns = None
            if data.get('patterns') is not None:
                patterns = as_catalog(data['patterns'])
            verdict = analyzer.analyze(data['ast'], patterns)
        except AnalyzerError as e:
            return jsonify({
                'success': False,
                'error': str(e)
            }), 400
        
        return jsonify({
            'success': True,
            'verdict': verdict.to_dict()
        })
    
    @app.route('/api/patterns')
    def get_patterns():
        """获取当前模式目录"""
        return jsonify({
            'success': True,
            'patterns': catalog.to_list()
        })
    
    return app


def get_index_html():
    """获取主页HTML"""
    return '''<!DOCTYPE html>
<html lang="zh-CN">
<head>
    <meta charset="UTF-8">
    <title>Slice-Analyzer - 切片污点分析</title>
    <style>
        body { font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; background: #1a1a2e; color: #fff; }
        .container { max-width: 900px; margin: 0 auto; padding: 20px; }
        textarea { width: 100%; height: 320px; background: #0f172a; color: #e2e8f0; font-family: monospace; }
        button { margin-top: 10px; padding: 8px 20px; }
        pre { background: #0f172a; padding: 12px; }
    </style>
</head>
<body>
<div class="container">
    <h1>Slice-Analyzer</h1>
    <p>已加载模式: {% for p in patterns %}{{ p }}{% if not loop.last %}, {% endif %}{% endfor %}</p>
    <textarea id="ast" placeholder='{"kind": "program", "children": [...]}'></textarea>
    <button onclick="runAnalysis()">分析</button>
    <pre id="result"></pre>
</div>
<script>
    async function runAnalysis() {
        const result = document.getElementById('result');
        let ast;
        try {
            ast = JSON.parse(document.getElementById('ast').value);
        } catch (e) {
            result.textContent = 'AST 不是合法的 JSON: ' + e;
            return;
        }
        const resp = await fetch('/api/analyze', {
            method: 'POST',
            headers: {'Content-Type': 'application/json'},
            body: JSON.stringify({ast: ast})
        });
        result.textContent = JSON.stringify(await resp.json(), null, 2);
    }
</script>
</body>
</html>'''
