"""LLM 适配器"""
