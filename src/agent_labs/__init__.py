"""
agent_labs - Customer-support AI agents built on LangChain chat models.

Layers follow the usual dependency direction:
domain <- application <- agent / infrastructure <- adapters, wired by factory.
"""

__version__ = "0.3.0"
