"""摘要生成相关的领域逻辑"""
