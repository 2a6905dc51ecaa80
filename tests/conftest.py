"""
Shared fixtures: a populated root directory and a live server bound to an
ephemeral port.
"""

import os
import sys
import threading

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from static_server.config import Config, normalize_aliases
from static_server.server import FileServer

INDEX_HTML = b"<h1>hi</h1>\n"
STYLE_CSS = b"body { color: red; }\n"
# every byte value, to check nothing is decoded or re-encoded on the way out
BLOB = bytes(range(256)) * 64


@pytest.fixture
def public_dir(tmp_path):
    """A root directory laid out like a small site."""
    root = tmp_path / 'Public'
    root.mkdir()
    (root / 'index.html').write_bytes(INDEX_HTML)
    (root / 'style.css').write_bytes(STYLE_CSS)
    (root / 'blob.bin').write_bytes(BLOB)
    (root / 'README').write_bytes(b"no extension\n")
    (root / 'about').write_bytes(b"a file literally named about\n")
    (root / 'docs').mkdir()
    (root / 'docs' / 'guide.txt').write_bytes(b"guide\n")
    (root / 'docs' / 'main.JS').write_bytes(b"console.log(1);\n")
    return root


@pytest.fixture
def config(public_dir):
    return Config(
        host='127.0.0.1',
        port=0,
        root_dir=str(public_dir),
        index_file='index.html',
        index_aliases=normalize_aliases(['about', '/home']),
    )


@pytest.fixture
def server(config):
    """A FileServer accepting connections on a background thread."""
    srv = FileServer(config)
    srv.start()
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    yield srv
    srv.stop()
    thread.join(timeout=5)


@pytest.fixture
def base_url(server):
    host, port = server.server_address
    return f"http://{host}:{port}"
