"""
Centralized system prompts.

The directive is caller-supplied per request; DEFAULT_SYSTEM_DIRECTIVE is
what the presentation layer pre-fills. CONTEXT_HEADER and SOURCE_TAG fix
how retrieved passages are laid out inside the system message.

Production rule:
NEVER hardcode prompts inside workflow or model client.
Always import from here.
"""


DEFAULT_SYSTEM_DIRECTIVE = (
    "You are a helpful assistant. Answer the user's questions using the "
    "provided context from their documents. If the context does not contain "
    "the answer, say so plainly instead of guessing."
)


CONTEXT_HEADER = "Context:"


# One line per retrieved passage, best match first
SOURCE_TAG = "[Source: {source}] {text}"
