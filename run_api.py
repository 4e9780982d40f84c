"""
Run the Agent Labs REST/SSE + A2A API.

Usage:
    python run_api.py

Environment variables (all optional, see .env.example):
    LLM_PROVIDER                  "azure", "openai", "groq" or "ollama" (default: azure)
    AZURE_OPENAI_ENDPOINT         Required when LLM_PROVIDER=azure
    AZURE_OPENAI_API_KEY          Required when LLM_PROVIDER=azure
    AZURE_OPENAI_CHAT_DEPLOYMENT  Default chat deployment (default: gpt-4o-mini)
    EMBEDDING_PROVIDER            "huggingface", "azure" or "openai" (default: huggingface)
    DB_PATH                       SQLite database file path (default: agents.db)
    CONTEXT_ID_SIGNING_KEY        HMAC key for signed context ids
    REQUIRE_SIGNED_CONTEXT        Reject unsigned client context ids (default: false)
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "agent_labs.adapters.rest.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
