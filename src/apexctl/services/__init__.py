"""Service layer: routing, recipe execution, handler loading.

Services may import from domain and infrastructure layers.
They must never import from commands, output, or the CLI.
"""
