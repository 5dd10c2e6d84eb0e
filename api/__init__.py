"""
ApertureAgent HTTP / WebSocket 接口
"""
