"""
Slice-Analyzer - 程序切片污点分析工具
主入口文件
"""

import argparse
import sys
from pathlib import Path

# 添加项目根目录到路径
sys.path.insert(0, str(Path(__file__).parent))

from colorama import init, Fore, Style

from core.config import Config
from core.errors import PatternLoadError
from core.patterns import PatternCatalog
from core.report import REPORT_FORMATS, ReportGenerator
from core.scanner import SliceScanner
from utils.banner import get_banner
from utils.logger import setup_logger

# 发现漏洞且指定 --fail-on-vulnerable 时的退出码
EXIT_VULNERABLE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Slice-Analyzer - 程序切片污点分析工具',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    
    parser.add_argument(
        'target',
        nargs='?',
        help='要分析的切片文件（JSON AST）或目录'
    )
    
    parser.add_argument(
        '-p', '--patterns',
        help='漏洞模式文件（.txt 或 .yaml，默认使用 rules/patterns.txt）'
    )
    
    parser.add_argument(
        '-c', '--config',
        default='config.yaml',
        help='配置文件路径（默认: config.yaml）'
    )
    
    parser.add_argument(
        '-o', '--output',
        help='报告输出目录；省略时不写报告'
    )
    
    parser.add_argument(
        '-f', '--format',
        choices=REPORT_FORMATS,
        default='json',
        help='报告格式（默认: json）'
    )
    
    parser.add_argument(
        '--block-strategy',
        choices=['first', 'all'],
        help='分支/循环体处理策略（覆盖配置文件）'
    )
    
    parser.add_argument(
        '--legacy-narrowing',
        action='store_true',
        help='入口点读取后在本次分析内收窄模式集合'
    )
    
    parser.add_argument(
        '--fail-on-vulnerable',
        action='store_true',
        help=f'发现漏洞时以退出码 {EXIT_VULNERABLE} 结束'
    )
    
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='显示详细输出'
    )
    
    parser.add_argument(
        '--web',
        action='store_true',
        help='启动Web接口'
    )
    
    parser.add_argument(
        '--port',
        type=int,
        default=5000,
        help='Web服务端口（默认: 5000）'
    )
    
    return parser


def main(argv=None) -> int:
    """主函数"""
    parser = build_parser()
    args = parser.parse_args(argv)
    
    log_level = 'DEBUG' if args.verbose else 'INFO'
    logger = setup_logger(log_level)
    
    config = Config(args.config)
    if args.patterns:
        config.set('patterns.file', args.patterns)
    if args.block_strategy:
        config.set('analysis.block_strategy', args.block_strategy)
    if args.legacy_narrowing:
        config.set('analysis.pattern_narrowing', 'legacy')
    
    if args.web:
        logger.info("启动Web接口...")
        from web.app import create_app
        app = create_app(config=config)
        app.run(host='127.0.0.1', port=args.port, debug=args.verbose)
        return 0
    
    print(get_banner())
    
    if not args.target:
        parser.print_help()
        print(f"\n{Fore.RED}错误: 请指定要分析的切片路径{Style.RESET_ALL}")
        return 1
    
    target_path = Path(args.target)
    if not target_path.exists():
        print(f"{Fore.RED}错误: 目标路径不存在: {args.target}{Style.RESET_ALL}")
        return 1
    
    try:
        catalog = PatternCatalog.load(config.patterns_file)
    except PatternLoadError as e:
        print(f"{Fore.RED}错误: {e}{Style.RESET_ALL}")
        return 1
    
    scanner = SliceScanner(config, catalog)
    results = scanner.scan(str(target_path))
    
    print_summary(results)
    
    if args.output:
        report_path = ReportGenerator(config).generate(results, args.output, args.format)
        print(f"\n{Fore.GREEN}[+] 报告已保存到: {report_path}{Style.RESET_ALL}")
    
    if args.fail_on_vulnerable and results['summary'].get('vulnerable_slices'):
        return EXIT_VULNERABLE
    return 0


def print_summary(results):
    """打印每个切片的结论"""
    print(f"\n{Fore.WHITE}{'='*60}{Style.RESET_ALL}")
    for record in results.get('slices', []):
        name = SliceScanner.display_name(record['file'])
        if record.get('error'):
            print(f"{Fore.YELLOW}[!] {name}: {record['error']}{Style.RESET_ALL}")
        elif record.get('vulnerable'):
            for pattern_name in record['violated_patterns']:
                print(f"{Fore.RED}[-] {name}: Program is vulnerable to {pattern_name}{Style.RESET_ALL}")
        else:
            print(f"{Fore.GREEN}[+] {name}: Program is safe{Style.RESET_ALL}")
    
    summary = results.get('summary', {})
    print(f"{Fore.WHITE}{'='*60}{Style.RESET_ALL}")
    print(f"  切片数: {summary.get('total_slices', 0)}")
    print(f"  {Fore.RED}存在漏洞: {summary.get('vulnerable_slices', 0)}{Style.RESET_ALL}")
    print(f"  {Fore.GREEN}安全: {summary.get('safe_slices', 0)}{Style.RESET_ALL}")


if __name__ == '__main__':
    # 初始化colorama
    init()
    sys.exit(main())
