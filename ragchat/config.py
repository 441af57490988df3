# ragchat/config.py
"""
Configuration for the ragchat document chat session.

This file centralizes all tunable parameters for the RAG loop.
Per-session overrides go through SessionSettings in ragchat/models.py;
the values here are the documented defaults.
"""

import os


# ========== DOCUMENT PROCESSING ==========

# Chunk configuration (characters, not words)
CHUNK_SIZE = 500
CHUNK_OVERLAP = 100  # overlap between windows to preserve context

# File upload limits
MAX_FILE_SIZE_MB = 10
ALLOWED_FILE_EXTENSIONS = [".pdf", ".txt", ".md"]
ALLOWED_MEDIA_TYPES = ["application/pdf", "text/plain", "text/markdown"]


# ========== EMBEDDING CONFIGURATION ==========

# "openai" or "local"
EMBEDDING_PROVIDER = os.getenv("RAGCHAT_EMBEDDING_PROVIDER", "openai")

EMBEDDING_MODEL = "text-embedding-3-small"  # 1536 dimensions
LOCAL_EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"  # 384 dimensions

# Embedding requests in flight per document (1 = strictly sequential)
EMBEDDING_CONCURRENCY = 1


# ========== RETRIEVAL CONFIGURATION ==========

TOP_K = 3  # passages injected into the system message


# ========== LLM CONFIGURATION ==========

# "openai", "local" or "fallback" (openai first, local model second)
LLM_PROVIDER = os.getenv("RAGCHAT_LLM_PROVIDER", "openai")

LLM_MODEL = "gpt-4o-mini"
LOCAL_LLM_MODEL = "meta-llama/Llama-3.2-1B-Instruct"

LLM_TEMPERATURE = 0.7
LLM_MAX_TOKENS = 512


# ========== SESSION CONSTRAINTS ==========

# Timeout applied to every extraction, embedding and completion call
COLLABORATOR_TIMEOUT_SECONDS = 60.0

# None keeps the full history in every request
HISTORY_WINDOW = None

# Outgoing history length that triggers a growth warning
HISTORY_WARNING_TURNS = 40

# Progress events buffered for the presentation layer
EVENT_QUEUE_SIZE = 1000

# Latencies kept for percentile metrics
METRICS_LATENCY_WINDOW = 10000

LOG_LEVEL = os.getenv("RAGCHAT_LOG_LEVEL", "INFO")


# ========== DESIGN TRADE-OFFS (DOCUMENTED) ==========

"""
TRADE-OFF DECISIONS:

1. CHUNK_SIZE = 500 characters, CHUNK_OVERLAP = 100:
   - A sentence cut at a window edge still appears whole in the next window
   - Small enough for a 1B local model's context with TOP_K = 3

2. TOP_K = 3:
   - Three passages plus history fit comfortably in small local models
   - More passages dilute the system message for short factual queries

3. Exact cosine scan over numpy (no ANN index):
   - O(N * D) per query, fine for a single user with thousands of chunks
   - Limitation: data lost when the session ends

4. Unbounded chat history (HISTORY_WINDOW = None):
   - Every prior turn is resent, so request size grows with the session
   - Set HISTORY_WINDOW to cap what is sent; stored history is never trimmed
"""
