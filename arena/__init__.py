"""
Arena
Game-facing layer over gravity_engine: the live launch environment, arena
YAML files and the performance map renderer.
"""
