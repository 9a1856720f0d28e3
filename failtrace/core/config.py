"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    FAILTRACE_PROJECT_ROOT        — Root of the project under test (default: cwd)
    FAILTRACE_SUPPORT_DIR         — Support/helper directory (default: <root>/support)
    FAILTRACE_DEFAULT_TIMEOUT_MS  — Per-command retry budget (default: 4000)
    FAILTRACE_RETRY_INTERVAL_MS   — Backoff between retries (default: 50)
    FAILTRACE_CODE_FRAME_CONTEXT  — Context lines above/below the failing line (default: 1)
    FAILTRACE_STACK_TRACE_LIMIT   — Max frames captured per stack (default: 100)
    FAILTRACE_LOG_DIR             — Directory for the daily log file (default: none)

Timeout Philosophy:
    DEFAULT_TIMEOUT_MS is a per-command budget. A nested command gets a fresh
    budget of its own; it never inherits what is left of its parent's.
    A retryable command is never failed before its budget has elapsed.
"""
import os
from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.getenv("FAILTRACE_PROJECT_ROOT", os.getcwd()))
SUPPORT_DIR = os.path.abspath(
    os.getenv("FAILTRACE_SUPPORT_DIR", os.path.join(PROJECT_ROOT, "support"))
)

# Retry / timeout budget (milliseconds)
DEFAULT_TIMEOUT_MS = int(os.getenv("FAILTRACE_DEFAULT_TIMEOUT_MS", 4000))
RETRY_INTERVAL_MS = int(os.getenv("FAILTRACE_RETRY_INTERVAL_MS", 50))

# Code frame window
CODE_FRAME_CONTEXT = int(os.getenv("FAILTRACE_CODE_FRAME_CONTEXT", 1))

# Stack capture depth
STACK_TRACE_LIMIT = int(os.getenv("FAILTRACE_STACK_TRACE_LIMIT", 100))

# Logging
LOG_DIR = os.getenv("FAILTRACE_LOG_DIR", "")
