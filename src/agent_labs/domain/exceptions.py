"""
agent_labs.domain.exceptions - Custom exception hierarchy for the agent backend.

All domain-level errors inherit from DomainError so callers can catch
broad or specific exceptions as needed.
"""


class DomainError(Exception):
    """Base exception for all domain-level errors."""


class ConfigurationError(DomainError):
    """Raised at startup when a configuration section or key is missing."""


class AgentNotFoundError(DomainError):
    """Raised when an agent id has no configuration entry."""


class AgentExecutionError(DomainError):
    """Raised when an agent cannot complete a turn."""


class ApprovalError(DomainError):
    """Raised when an approval decision does not match a pending request."""


class ContextIdError(DomainError):
    """Raised when a client-supplied context id fails signature validation."""


class ThreadNotFoundError(DomainError):
    """Raised when a thread has no stored messages."""


class VectorStoreError(DomainError):
    """Raised when a policy vector store cannot be built or queried."""


class RepositoryError(DomainError):
    """Raised when a database operation fails."""


class WorkflowError(DomainError):
    """Raised when a workflow cannot be built or run."""
