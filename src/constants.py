"""Application-wide constants.

This module centralizes all magic numbers and configuration constants
to ensure a single source of truth and easier maintenance. Most of them
are defaults for values that can be overridden through Settings.
"""

# =============================================================================
# Extraction Configuration
# =============================================================================

# Tags whose text is extracted from the rendered page, in the order they are
# declared in ElementKind. Anything else is ignored.
EXTRACTED_TAGS = ("p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "article")

# Maximum accepted URL length (chars)
MAX_URL_LENGTH_CHARS = 2048

# Timeout for browser page loads (seconds)
BROWSER_PAGE_LOAD_TIMEOUT_SECONDS = 30.0

# Upper bound on waiting for network activity to settle after load (seconds)
BROWSER_SETTLE_TIMEOUT_SECONDS = 15.0

# Resource count must stay unchanged this long to count as idle (milliseconds)
NETWORK_IDLE_MS = 500

# Poll interval while waiting for the page to settle (seconds)
BROWSER_SETTLE_POLL_SECONDS = 0.25

# Maximum number of headless browsers held at the same time
MAX_CONCURRENT_BROWSERS = 2

# =============================================================================
# Context Assembly
# =============================================================================

CONTEXT_PREAMBLE = "Context from the website:"

CONTEXT_INSTRUCTION = "Based on the above context, please answer the following question:"

# Default character budget for the assembled prompt body
DEFAULT_CONTEXT_MAX_CHARS = 12000

# =============================================================================
# Completion Provider
# =============================================================================

SYSTEM_INSTRUCTION = (
    "You are a helpful AI assistant that answers questions based on the "
    "provided website content. Keep your responses concise and relevant."
)

DEFAULT_COMPLETION_BASE_URL = "https://api.deepseek.com/v1"

DEFAULT_COMPLETION_MODEL = "deepseek-chat"

# Generation parameters
COMPLETION_MAX_TOKENS = 500
COMPLETION_TEMPERATURE = 0.7

# Timeout for a single completion request (seconds)
COMPLETION_TIMEOUT_SECONDS = 30.0

# =============================================================================
# Message Constraints
# =============================================================================

# Maximum allowed input message length (chars)
MAX_MESSAGE_LENGTH_CHARS = 1000

# =============================================================================
# Storage
# =============================================================================

SNAPSHOTS_TABLE = "website_snapshots"

CHAT_TURNS_TABLE = "chat_turns"

# =============================================================================
# HTTP layer
# =============================================================================

# How often the chat endpoint checks whether the client went away (seconds)
DISCONNECT_POLL_INTERVAL_SECONDS = 0.5
