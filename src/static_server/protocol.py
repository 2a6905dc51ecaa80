"""
HTTP/1.1 message reading and writing on a connected socket.

Only what a file server needs: parsing request heads, consuming request
bodies so pipelined requests stay aligned, and serialising responses framed
by Content-Length.
"""

import email.utils
import re
from http import HTTPStatus
from typing import Dict, Optional
from urllib.parse import urlsplit

MAX_LINE = 8192
MAX_HEADERS = 100
READ_CHUNK = 65536

CONTINUE = b"HTTP/1.1 100 Continue\r\n\r\n"

_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_CHUNK_SIZE = re.compile(rb"[0-9A-Fa-f]+")
_BLANK = (b'\r\n', b'\n')


class ProtocolError(Exception):
    """Malformed or unsupported HTTP input; status is the code to answer with."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.status = int(status)


class Request:
    """
    A parsed request head. Header names are lower-cased; repeated headers are
    joined with ', '.
    """

    def __init__(self, method: str, target: str, version: str, headers: Dict[str, str]):
        self.method = method
        self.target = target
        self.version = version
        self.headers = headers

    @property
    def path(self) -> str:
        """Path component of the target, without query or fragment. Not decoded."""
        if self.target.startswith('/'):
            path = self.target.split('?', 1)[0].split('#', 1)[0]
        else:
            # absolute-form, e.g. a request sent to a proxy
            path = urlsplit(self.target).path
        return path or '/'

    @property
    def keep_alive(self) -> bool:
        tokens = {t.strip().lower() for t in self.headers.get('connection', '').split(',')}
        if self.version == 'HTTP/1.1':
            return 'close' not in tokens
        return 'keep-alive' in tokens

    @property
    def expects_continue(self) -> bool:
        return (self.version == 'HTTP/1.1'
                and self.headers.get('expect', '').lower() == '100-continue')

    def __repr__(self) -> str:
        return f"Request({self.method} {self.target} {self.version})"


def _readline(rfile, too_long_status: int) -> bytes:
    line = rfile.readline(MAX_LINE + 1)
    if len(line) > MAX_LINE:
        raise ProtocolError("line too long", too_long_status)
    if line and not line.endswith(b'\n'):
        raise ProtocolError("connection closed mid-request")
    return line


def read_request(rfile) -> Optional[Request]:
    """
    Read one request head from rfile.

    Returns None if the peer closed the connection before sending anything.

    :raises ProtocolError: if the head is malformed, too large or truncated
    """
    line = _readline(rfile, HTTPStatus.REQUEST_URI_TOO_LONG)
    # a client may send stray CRLFs between requests
    while line in _BLANK:
        line = _readline(rfile, HTTPStatus.REQUEST_URI_TOO_LONG)
    if not line:
        return None

    parts = line.decode('latin-1').rstrip('\r\n').split(' ')
    if len(parts) != 3:
        raise ProtocolError(f"malformed request line: {line[:80]!r}")
    method, target, version = parts
    if not _TOKEN.fullmatch(method):
        raise ProtocolError(f"invalid method: {method!r}")
    if not target or not (target.isascii() and target.isprintable()):
        raise ProtocolError(f"invalid request target: {target!r}")
    if not version.startswith('HTTP/'):
        raise ProtocolError(f"invalid HTTP version: {version!r}")
    if version not in ('HTTP/1.0', 'HTTP/1.1'):
        raise ProtocolError(f"unsupported HTTP version: {version!r}",
                            HTTPStatus.HTTP_VERSION_NOT_SUPPORTED)

    headers: Dict[str, str] = {}
    count = 0
    while True:
        line = _readline(rfile, HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE)
        if not line:
            raise ProtocolError("connection closed mid-request")
        if line in _BLANK:
            break
        count += 1
        if count > MAX_HEADERS:
            raise ProtocolError("too many headers", HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE)
        name, sep, value = line.decode('latin-1').partition(':')
        if not sep or not _TOKEN.fullmatch(name):
            raise ProtocolError(f"malformed header line: {line[:80]!r}")
        name = name.lower()
        value = value.strip()
        if name in headers:
            headers[name] = headers[name] + ', ' + value
        else:
            headers[name] = value

    return Request(method, target, version, headers)


def _skip(rfile, length: int) -> None:
    while length > 0:
        chunk = rfile.read(min(length, READ_CHUNK))
        if not chunk:
            raise ProtocolError("connection closed mid-body")
        length -= len(chunk)


def _skip_chunked(rfile) -> None:
    while True:
        line = _readline(rfile, HTTPStatus.BAD_REQUEST)
        if not line:
            raise ProtocolError("connection closed mid-body")
        size_text = line.split(b';', 1)[0].strip()
        if not _CHUNK_SIZE.fullmatch(size_text):
            raise ProtocolError(f"invalid chunk size: {size_text[:20]!r}")
        size = int(size_text, 16)
        if size == 0:
            break
        _skip(rfile, size)
        if _readline(rfile, HTTPStatus.BAD_REQUEST) not in _BLANK:
            raise ProtocolError("missing chunk terminator")
    # trailer section
    while True:
        line = _readline(rfile, HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE)
        if not line:
            raise ProtocolError("connection closed mid-body")
        if line in _BLANK:
            break


def skip_body(rfile, request: Request) -> None:
    """
    Consume and discard the request body so the next request on the
    connection starts at the right offset.

    :raises ProtocolError: if the body framing is invalid or truncated
    """
    te = request.headers.get('transfer-encoding')
    if te is not None:
        codings = [c.strip().lower() for c in te.split(',')]
        if codings[-1] != 'chunked':
            raise ProtocolError(f"unsupported transfer encoding: {te!r}")
        _skip_chunked(rfile)
        return

    length_text = request.headers.get('content-length')
    if length_text is None:
        return
    if not (length_text.isascii() and length_text.isdigit()):
        raise ProtocolError(f"invalid Content-Length: {length_text!r}")
    _skip(rfile, int(length_text))


class Response:
    """An HTTP response; Content-Length is filled in from the body unless set."""

    def __init__(self, status: int = 200, headers: Optional[Dict[str, str]] = None, body: bytes = b""):
        self.status = int(status)
        self.headers = dict(headers) if headers else {}
        self.body = body

    def to_bytes(self, head_only: bool = False, connection: Optional[str] = None) -> bytes:
        """
        Serialise the response.

        :param head_only: drop the body (answering HEAD), keep the headers
        :param connection: value of the Connection header, if one is needed
        """
        try:
            reason = HTTPStatus(self.status).phrase
        except ValueError:
            reason = ''
        base_headers = {
            'Date': email.utils.formatdate(usegmt=True),
            'Content-Length': str(len(self.body)),
        }
        base_headers.update(self.headers)
        if connection:
            base_headers['Connection'] = connection
        header_lines = [f"HTTP/1.1 {self.status} {reason}"]
        for k, v in base_headers.items():
            header_lines.append(f"{k}: {v}")
        head = ("\r\n".join(header_lines) + "\r\n\r\n").encode('latin-1')
        if head_only:
            return head
        return head + self.body

    def __repr__(self) -> str:
        return f"Response({self.status}, {len(self.body)} bytes)"
