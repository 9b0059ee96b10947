"""
配置管理模块
"""

import copy
import os
import yaml
from typing import Dict, Any, Optional

from utils.logger import get_logger


class Config:
    """配置管理类"""
    
    DEFAULT_CONFIG = {
        'system': {
            'name': 'Slice-Analyzer',
            'version': '1.0.0',
            'log_level': 'INFO',
            'output_dir': './reports'
        },
        'patterns': {
            'file': os.path.join(os.path.dirname(__file__), 'rules', 'patterns.txt')
        },
        'analysis': {
            # first: 分支/循环体只处理第一条可识别语句; all: 处理全部
            'block_strategy': 'first',
            # scoped: 入口点查询不影响后续检查; legacy: 在本次运行内收窄模式集
            'pattern_narrowing': 'scoped',
            'guarded_literal_heuristic': True,
            'passthrough_functions': ['substr'],
            'entry_point_prefix': '$',
            'echo_sink': 'echo'
        },
        'report': {
            'format': 'json'
        }
    }
    
    def __init__(self, config_path: Optional[str] = None):
        """初始化配置"""
        self.logger = get_logger()
        self._config = copy.deepcopy(self.DEFAULT_CONFIG)
        
        if config_path and os.path.exists(config_path):
            self._load_from_file(config_path)
        elif config_path is None:
            # 尝试从默认位置加载
            default_paths = [
                'config.yaml',
                'config.yml'
            ]
            for path in default_paths:
                if os.path.exists(path):
                    self._load_from_file(path)
                    break
    
    @classmethod
    def from_dict(cls, overrides: Dict) -> 'Config':
        """以字典覆盖默认配置（不读取任何文件）"""
        config = cls(config_path='')
        config._merge_config(config._config, overrides)
        return config
    
    def _load_from_file(self, path: str):
        """从文件加载配置"""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            self.logger.warning(f"无法加载配置文件 {path}: {e}")
            return
        if isinstance(file_config, dict):
            self._merge_config(self._config, file_config)
    
    def _merge_config(self, base: Dict, override: Dict):
        """递归合并配置"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value
    
    def get(self, key: str, default: Any = None) -> Any:
        """获取配置值，支持点号分隔的键"""
        keys = key.split('.')
        value = self._config
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
            if value is None:
                return default
        return value
    
    def set(self, key: str, value: Any):
        """设置配置值"""
        keys = key.split('.')
        config = self._config
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value
    
    @property
    def patterns_file(self) -> str:
        return self.get('patterns.file')
    
    @property
    def output_dir(self) -> str:
        return self.get('system.output_dir', './reports')
    
    def to_dict(self) -> Dict:
        """导出为字典"""
        return copy.deepcopy(self._config)
