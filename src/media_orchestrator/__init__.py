"""Top-level package for the media orchestrator.

This package supervises external media tools (whisper-cli, ffmpeg) as child
processes, streams OpenAI-compatible chat completions and speaks the Model
Context Protocol as a client over stdio and HTTP.  See `DESIGN.md` for more
information.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
