"""Global constants for the media orchestrator.

These values serve as defaults for configuration and protocol timing.
Changing these values is discouraged; instead override environment
variables as needed.
"""

import os

# Process supervision
POLL_INTERVAL_S = float(os.environ.get("POLL_INTERVAL_S", 0.1))
INTERRUPTED_EXIT_CODE = int(os.environ.get("INTERRUPTED_EXIT_CODE", 130))
STOP_WAIT_TIMEOUT_S = float(os.environ.get("STOP_WAIT_TIMEOUT_S", 5))

# MCP client
MCP_READ_TIMEOUT_S = float(os.environ.get("MCP_READ_TIMEOUT_S", 5))
MCP_SETTLE_DELAY_S = float(os.environ.get("MCP_SETTLE_DELAY_S", 0.1))
MCP_PROTOCOL_VERSION = os.environ.get("MCP_PROTOCOL_VERSION", "2024-11-05")
MCP_CLIENT_NAME = os.environ.get("MCP_CLIENT_NAME", "media-orchestrator")
MCP_CLIENT_VERSION = os.environ.get("MCP_CLIENT_VERSION", "0.1.0")

# Chat completion
CHAT_TIMEOUT_S = float(os.environ.get("CHAT_TIMEOUT_S", 60))

# External binaries
DEFAULT_WHISPER_CLI = os.environ.get("WHISPER_CLI_PATH", "whisper-cli")
DEFAULT_FFMPEG = os.environ.get("FFMPEG_PATH", "ffmpeg")

# Logging
DEFAULT_LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
