"""
bootcore - Command Line Interface
"""
from bootcore.cli.main import app, main

__all__ = ["app", "main"]
