"""
程序横幅模块
"""

from colorama import Fore, Style

def get_banner():
    """获取程序横幅"""
    content = rf"""
{Fore.CYAN}
  ____  _ _            _____     _       _   
 / ___|| (_) ___ ___  |_   _|_ _(_)_ __ | |_ 
 \___ \| | |/ __/ _ \   | |/ _` | | '_ \| __|
  ___) | | | (_|  __/   | | (_| | | | | | |_ 
 |____/|_|_|\___\___|   |_|\__,_|_|_| |_|\__|
{Style.RESET_ALL}
{Fore.YELLOW}  Slice-Analyzer 程序切片污点分析工具{Style.RESET_ALL}
{Fore.GREEN}  入口点 -> 净化函数 -> 敏感汇聚点{Style.RESET_ALL}
{Fore.WHITE}  ============================================{Style.RESET_ALL}
"""
    return content
