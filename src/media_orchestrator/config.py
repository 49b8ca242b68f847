"""Configuration loading for the media orchestrator.

This module loads environment variables from a `.env` file using
`python-dotenv` and populates a `Config` object.

No variable is required.  Optional variables with defaults:
- DATA_DIR (default: '~/.media-orchestrator')
- MCP_CONFIG_PATH (default: '<DATA_DIR>/mcp_configs.json')
- WHISPER_CLI_PATH (default: 'whisper-cli')
- FFMPEG_PATH (default: 'ffmpeg')
- POLL_INTERVAL_S, STOP_WAIT_TIMEOUT_S, MCP_READ_TIMEOUT_S,
  MCP_SETTLE_DELAY_S, CHAT_TIMEOUT_S (see `constants`)
- LOG_LEVEL (default: 'INFO')
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from . import constants


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Invalid value for {name}: {raw!r} is not a number") from exc
    if value < 0:
        raise RuntimeError(f"Invalid value for {name}: must not be negative")
    return value


@dataclass
class Config:
    """Configuration values loaded from the environment."""

    data_dir: Path
    mcp_config_path: Path
    whisper_cli_path: str
    ffmpeg_path: str
    poll_interval_s: float
    stop_wait_timeout_s: float
    mcp_read_timeout_s: float
    mcp_settle_delay_s: float
    chat_timeout_s: float
    log_level: str

    @property
    def transcription_dir(self) -> Path:
        return self.data_dir / "transcription_results"

    @property
    def extraction_dir(self) -> Path:
        return self.data_dir / "extracted_audio"

    @classmethod
    def load_from_env(cls) -> Config:
        """Load configuration from environment variables.

        The `.env` file is loaded if present.  Raises `RuntimeError` if a
        numeric variable cannot be parsed.
        """
        load_dotenv()

        data_dir = Path(os.getenv("DATA_DIR") or "~/.media-orchestrator").expanduser()

        mcp_config_path_str = os.getenv("MCP_CONFIG_PATH")
        if mcp_config_path_str:
            mcp_config_path = Path(mcp_config_path_str).expanduser()
        else:
            mcp_config_path = data_dir / "mcp_configs.json"

        return cls(
            data_dir=data_dir,
            mcp_config_path=mcp_config_path,
            whisper_cli_path=os.getenv("WHISPER_CLI_PATH") or constants.DEFAULT_WHISPER_CLI,
            ffmpeg_path=os.getenv("FFMPEG_PATH") or constants.DEFAULT_FFMPEG,
            poll_interval_s=_float_env("POLL_INTERVAL_S", constants.POLL_INTERVAL_S),
            stop_wait_timeout_s=_float_env("STOP_WAIT_TIMEOUT_S", constants.STOP_WAIT_TIMEOUT_S),
            mcp_read_timeout_s=_float_env("MCP_READ_TIMEOUT_S", constants.MCP_READ_TIMEOUT_S),
            mcp_settle_delay_s=_float_env("MCP_SETTLE_DELAY_S", constants.MCP_SETTLE_DELAY_S),
            chat_timeout_s=_float_env("CHAT_TIMEOUT_S", constants.CHAT_TIMEOUT_S),
            log_level=os.getenv("LOG_LEVEL", constants.DEFAULT_LOG_LEVEL),
        )
