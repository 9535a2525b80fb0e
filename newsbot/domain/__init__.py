"""领域层：纯逻辑与端口定义，不依赖任何基础设施"""
