"""
Lingo 学习进度与游戏化引擎
"""
