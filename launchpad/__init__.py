"""Campaign review and multi-channel launch orchestration."""

__version__ = "0.1.0"
