"""Generation job and placeholder conventions.

Placeholder pages are written while content is pending and rewritten when
generation fails. Clients tell the two states apart by the first line of the
content.
"""

# =============================================================================
# Placeholder Content
# =============================================================================

GENERATING_CONTENT = (
    "# Generating content...\n\n"
    "Please wait while we create this page for you. This usually takes a few seconds."
)
FAILED_CONTENT = (
    "# Generation failed\n\n"
    "We encountered an error while generating this page. "
    "Please check your API configuration and try again."
)
GENERATING_MARKER = "# Generating content..."
FAILED_MARKER = "# Generation failed"

# =============================================================================
# Polling
# =============================================================================
# Clients poll job status at a fixed interval and give up after a hard
# wall-clock timeout. The job itself is left untouched when a poll times out.

POLL_INTERVAL_SECONDS = 1.0
POLL_TIMEOUT_SECONDS = 300.0
POLL_MAX_RETRIES = 3

# =============================================================================
# Generation
# =============================================================================
# A single generation call is aborted after this many seconds and the job is
# marked failed.

GENERATION_TIMEOUT_SECONDS = 300.0

# Page ids derived from text that normalizes to nothing fall back to this.
FALLBACK_SLUG = "page"

# Message recorded on jobs left in 'processing' when the service restarts.
INTERRUPTED_MESSAGE = "Interrupted by server restart"

# =============================================================================
# Generation Cache
# =============================================================================
# Recent generations are cached briefly under "{kind}:{normalized text}".

CACHE_KEY_DELIMITER = ":"
CACHE_MAX_ENTRIES = 50
CACHE_TTL_SECONDS = 300.0
