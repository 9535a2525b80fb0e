"""路由模块"""
from . import api

__all__ = ["api"]
