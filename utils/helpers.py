"""
工具函数模块
"""

import os
import hashlib
from pathlib import Path
from typing import List

# 切片文件扩展名
SLICE_EXTENSIONS = ['.json']

# 扫描目录时跳过的目录
SKIPPED_DIRS = ['node_modules', 'venv', 'env', '__pycache__', 'build', 'dist', 'reports']


def get_slice_files(target: str) -> List[str]:
    """获取目标路径下的所有切片文件（按路径排序）"""
    files = []
    target = Path(target)
    
    # 处理单个文件情况
    if target.is_file():
        if target.suffix.lower() in SLICE_EXTENSIONS:
            return [str(target)]
        return []
    
    if not target.is_dir():
        return []
    
    for root, dirs, filenames in os.walk(target):
        # 跳过隐藏目录和常见的非切片目录
        dirs[:] = [d for d in dirs if not d.startswith('.') and d not in SKIPPED_DIRS]
        
        for filename in filenames:
            if Path(filename).suffix.lower() in SLICE_EXTENSIONS:
                files.append(os.path.join(root, filename))
    
    return sorted(files)

def calculate_file_hash(file_path: str) -> str:
    """计算文件的SHA256哈希值"""
    sha256_hash = hashlib.sha256()
    with open(file_path, "rb") as f:
        for byte_block in iter(lambda: f.read(4096), b""):
            sha256_hash.update(byte_block)
    return sha256_hash.hexdigest()

def read_file_content(file_path: str, encoding: str = 'utf-8') -> str:
    """读取文件内容"""
    try:
        with open(file_path, 'r', encoding=encoding) as f:
            return f.read()
    except UnicodeDecodeError:
        # latin-1 能解码任意字节
        with open(file_path, 'r', encoding='latin-1') as f:
            return f.read()

def split_names(value) -> List[str]:
    """把逗号分隔的名称串（或名称列表）拆成去空白的列表，丢弃空项"""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(',')
    else:
        items = [str(v) for v in value]
    return [item.strip() for item in items if item.strip()]
