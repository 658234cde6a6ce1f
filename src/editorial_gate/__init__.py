"""
editorial_gate - 编辑质量把关与 AI 修订完整性校验服务
"""
__version__ = "0.1.0"
