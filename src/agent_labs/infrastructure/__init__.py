"""
infrastructure - Concrete implementations of domain ports.

Contains all vendor-specific code: LangChain chat models, FAISS, SQLite.
Depends on domain/ only (implements ports). Never imported by agent/.
"""
