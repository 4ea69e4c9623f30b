"""soso - 基于 Git 的私有包管理器"""

__version__ = "1.0.0"
