"""
日志工具模块
"""

import copy
import logging
import sys
from colorama import Fore, Style

LOGGER_NAME = 'Slice-Analyzer'


class ColoredFormatter(logging.Formatter):
    """带颜色的日志格式化器"""
    
    COLORS = {
        'DEBUG': Fore.BLUE,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT
    }
    
    def format(self, record):
        # 只给副本上色，同一记录的其它处理器仍看到原始文本
        colored = copy.copy(record)
        color = self.COLORS.get(record.levelname, '')
        colored.levelname = f"{color}{record.levelname}{Style.RESET_ALL}"
        colored.msg = f"{color}{record.getMessage()}{Style.RESET_ALL}"
        colored.args = None
        return super().format(colored)

def setup_logger(level='INFO'):
    """设置日志器"""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))
    
    # 控制台处理器
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, level.upper()))
    
    formatter = ColoredFormatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    
    # 避免重复添加处理器
    if not logger.handlers:
        logger.addHandler(console_handler)
    
    return logger

def get_logger():
    """获取日志器"""
    return logging.getLogger(LOGGER_NAME)
