from __future__ import annotations

# Discord hard limit per message.
DISCORD_MAX_MESSAGE_LEN = 2000

# Recency window size used for prompt assembly.
DEFAULT_RECENT_WINDOW = 5

# Counter increment per exchange: one user turn + one assistant turn.
MESSAGES_PER_EXCHANGE = 2

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_OPENAI_TIMEOUT_SECONDS = 30.0
DEFAULT_DB_PATH = "copilot_memory.db"
DEFAULT_COMMAND_PREFIX = "!"

DEFAULT_AI_CONFIG = {
    "provider": "openai",
    "model": DEFAULT_OPENAI_MODEL,
    "temperature": 0.7,
    "max_output_tokens": 500,
}

DEFAULT_COMPLETION_FAILURE_REPLY = "Sorry, I encountered an error while generating a response."
DEFAULT_GENERIC_ERROR_REPLY = "An error occurred. Please try again later."
