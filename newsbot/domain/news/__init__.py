"""新闻抓取相关的领域逻辑"""
