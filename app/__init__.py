"""Daily check-in engine.

Kept as a regular package so ``app`` resolves to this project rather than to
a namespace package of the same name found elsewhere on ``sys.path``.
"""
