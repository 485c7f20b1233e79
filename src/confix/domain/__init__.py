"""Domain layer — option paths, priorities, types, declarations, modules.

This layer depends only on the standard library.
It must never import from engine, services, infrastructure, commands, or config.
"""
