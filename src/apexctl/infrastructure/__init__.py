"""Infrastructure layer: filesystem, content search, subprocesses.

Nothing here knows about routing or recipes.
"""
