"""核心层: 配置、异常、安装 / 升级 / 发布流程与锁文件"""
