"""页面抓取适配器"""
