"""
application - Request context, DTOs and use-case services.

Depends on domain/ only.
"""
