"""
Run the Fitbit Agent CLI.

Usage:
    python run_cli.py [OPTIONS] [COMMAND]

Commands:
    (none)                 Start the interactive chat session
    version                Print version information
    demo                   Show tools, provider readiness and configuration
    create-system-prompt   Write the default system prompt (default: system_prompt.txt)
    logout                 Clear stored Fitbit credentials

Options:
    -p, --provider         LLM provider: "ollama" (default) or "gemini"
    -s, --system-prompt    Path to a system prompt file
    -v, --verbose          Verbose output and DEBUG logging

Environment variables (all optional):
    LLM_PROVIDER           "ollama" or "gemini" ("deepseek" is accepted for ollama)
    OLLAMA_HOST            Ollama server URL (default: http://localhost:11434)
    LLM_MODEL              Ollama model name (default: deepseek-r1:7b)
    GEMINI_API_KEY         Required when LLM_PROVIDER=gemini
    GEMINI_MODEL           Gemini model name (default: gemini-1.5-flash)
    FITBIT_CLIENT_ID       Fitbit OAuth app client id
    FITBIT_CLIENT_SECRET   Fitbit OAuth app client secret
    FITBIT_REDIRECT_URL    OAuth redirect (default: http://localhost:8000/redirect)
    FITBIT_AGENT_HOME      Data directory (default: ~/.fitbit-agent)
    SYSTEM_PROMPT          Inline system prompt, overrides every file
    SYSTEM_PROMPT_FILE     System prompt file
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

from adapters.cli.main import app

if __name__ == "__main__":
    app()
