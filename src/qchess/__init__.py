"""
qchess: online Q-learning for chess through self-play.
"""
