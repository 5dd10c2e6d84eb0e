"""工具函数模块"""
