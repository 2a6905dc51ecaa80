"""
Server configuration and command-line parsing.

Usage:
  static-server [--address 127.0.0.1:8080] [--dir Public] [--index index.html]
                [--paths about docs ...] [--timeout SECONDS]
"""

import argparse
import ipaddress
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Tuple

ADDRESS_DEFAULT = "127.0.0.1:8080"
HOST_DEFAULT = "127.0.0.1"
PORT_DEFAULT = 8080
ROOT_DEFAULT = "Public"
INDEX_DEFAULT = "index.html"


def normalize_aliases(paths: Iterable[str]) -> FrozenSet[str]:
    """
    Build the set of request paths that are served the index file.

    Each path is prefixed with '/' if it does not already start with one,
    and '/' itself is always included.
    """
    aliases = {p if p.startswith('/') else '/' + p for p in paths}
    aliases.add('/')
    return frozenset(aliases)


@dataclass(frozen=True)
class Config:
    """
    Immutable server settings, built once at startup and shared read-only by
    every connection thread.

    Config() with no arguments is the no-configuration variant: serve
    'Public' on 127.0.0.1:8080 with '/' as the only index alias.
    """
    host: str = HOST_DEFAULT
    port: int = PORT_DEFAULT
    root_dir: str = ROOT_DEFAULT
    index_file: str = INDEX_DEFAULT
    index_aliases: FrozenSet[str] = field(default_factory=lambda: frozenset({'/'}))
    timeout: Optional[float] = None

    @property
    def bind_address(self) -> str:
        if ':' in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def parse_address(text: str) -> Tuple[str, int]:
    """
    Parse an 'ip:port' or '[ipv6]:port' socket address literal.

    Host names are not accepted.

    :raises argparse.ArgumentTypeError: if the address cannot be parsed
    """
    host, sep, port_text = text.rpartition(':')
    if not sep or not host:
        raise argparse.ArgumentTypeError(f"invalid socket address syntax: {text!r}")

    bracketed = host.startswith('[') and host.endswith(']')
    if bracketed:
        host = host[1:-1]
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid socket address syntax: {text!r}")
    if ip.version == 6 and not bracketed:
        raise argparse.ArgumentTypeError(f"IPv6 addresses must be bracketed: {text!r}")
    if ip.version == 4 and bracketed:
        raise argparse.ArgumentTypeError(f"invalid socket address syntax: {text!r}")

    if not (port_text.isascii() and port_text.isdigit()):
        raise argparse.ArgumentTypeError(f"invalid port in address: {text!r}")
    port = int(port_text)
    if port > 65535:
        raise argparse.ArgumentTypeError(f"port out of range in address: {text!r}")
    return str(ip), port


def positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"timeout must be positive: {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog='static-server', description='Serve static files over HTTP/1.1')
    p.add_argument('-a', '--address', type=parse_address, default=ADDRESS_DEFAULT,
                   help='IP address to bind to (default: %(default)s)')
    p.add_argument('-d', '--dir', default=ROOT_DEFAULT,
                   help='Directory to serve files from (default: %(default)s)')
    p.add_argument('-i', '--index', default=INDEX_DEFAULT,
                   help='Default file to serve (default: %(default)s)')
    p.add_argument('-p', '--paths', nargs='*', default=[], metavar='PATH',
                   help='Paths equivalent to /index.html')
    p.add_argument('-t', '--timeout', type=positive_float, default=None, metavar='SECONDS',
                   help='Close connections idle for this long (default: never)')
    return p


def parse_args(argv=None) -> Config:
    """
    Build a Config from command-line arguments.

    Exits with status 2 and a diagnostic if an argument cannot be parsed.
    """
    args = build_parser().parse_args(argv)
    # argparse applies type= to string defaults too
    host, port = args.address
    return Config(
        host=host,
        port=port,
        root_dir=args.dir,
        index_file=args.index,
        index_aliases=normalize_aliases(args.paths),
        timeout=args.timeout,
    )
