"""
domain - Entities, value objects, ports and exceptions.

Pure Python: no framework, vendor or database imports.
"""
