"""服务装配"""
