"""
Web接口模块
"""
