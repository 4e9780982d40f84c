"""
Run the Agent Labs CLI.

Usage:
    python run_cli.py [COMMAND] [OPTIONS]

Commands:
    serve        Run the REST/A2A API
    agents       List the agents of the catalogue
    ask          One-shot question to an agent
    chat         Interactive session with an agent
    thread       Show the stored messages of a thread
    sign         Issue a signed context id
    index        Build/rebuild the policy vector stores
    workflow     Run the sequential or concurrent workflow

Examples:
    python run_cli.py index
    python run_cli.py ask translation "Bonjour, comment allez-vous ?"
    python run_cli.py chat customer-support
    python run_cli.py workflow concurrent "I received my order, but the charger is missing."
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

from agent_labs.adapters.cli.main import app

if __name__ == "__main__":
    app()
