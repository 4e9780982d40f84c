"""
agent - Agent orchestration layer.

Contains the chat agent (LLM + tool loop, approvals, streaming), its
builder and factory, the tools, and the multi-agent workflows.
Depends on domain/ and application/. Never imports from infrastructure/.
"""
