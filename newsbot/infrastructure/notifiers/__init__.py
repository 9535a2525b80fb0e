"""消息发布适配器"""
