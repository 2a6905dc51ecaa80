"""Minimal static-file HTTP/1.1 server."""

from .config import Config, parse_args
from .handler import serve_file
from .server import FileServer, main

__all__ = ['Config', 'FileServer', 'main', 'parse_args', 'serve_file']
