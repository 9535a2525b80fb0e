"""HTTP 表现层"""
