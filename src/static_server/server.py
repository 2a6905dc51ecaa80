"""
Multi-threaded static file server.

Features:
 - Serves files from a root directory over HTTP/1.1 with keep-alive.
 - One thread per accepted connection; a slow or broken client never
   blocks the accept loop or other clients.
 - Configurable index file and extra paths that serve it.
 - Rejects any request path containing '..'.

Usage:
  python -m static_server [--address 127.0.0.1:8080] [--dir Public]
                          [--index index.html] [--paths PATH ...]
"""

import logging
import os
import socket
import sys
import threading
from http import HTTPStatus
from typing import Optional, Tuple

from .config import Config, parse_args
from .handler import serve_file
from .protocol import CONTINUE, ProtocolError, Response, read_request, skip_body

logger = logging.getLogger('static_server')

LISTEN_BACKLOG = 128
ACCEPT_POLL = 0.5  # seconds between checks of the stop flag


def handle_connection(conn: socket.socket, addr, config: Config) -> None:
    """
    Answer requests on one connection, in order, until the client closes it,
    asks to close, or sends something unparsable.

    Never raises: every failure is logged and ends only this connection.
    """
    if config.timeout is not None:
        conn.settimeout(config.timeout)
    with conn, conn.makefile('rb') as rfile:
        try:
            while True:
                request = read_request(rfile)
                if request is None:
                    break
                if request.expects_continue:
                    conn.sendall(CONTINUE)
                skip_body(rfile, request)

                response = serve_file(request, config)

                if not request.keep_alive:
                    connection = 'close'
                elif request.version == 'HTTP/1.0':
                    connection = 'keep-alive'
                else:
                    connection = None
                conn.sendall(response.to_bytes(head_only=request.method == 'HEAD',
                                               connection=connection))
                if not request.keep_alive:
                    break
        except ProtocolError as e:
            logger.error(f"Error serving connection {addr}: {e}")
            reply = Response(e.status, body=f"{e.status} {HTTPStatus(e.status).phrase}".encode('latin-1'))
            try:
                conn.sendall(reply.to_bytes(connection='close'))
            except OSError as send_error:
                logger.debug(f"Could not send {e.status} to {addr}: {send_error!r}")
        except socket.timeout:
            logger.info(f"Connection {addr} timed out")
        except OSError as e:
            logger.error(f"Error serving connection {addr}: {e!r}")
        except Exception:
            logger.exception(f"Unexpected error serving connection {addr}")


class FileServer:
    """
    Accepts TCP connections and hands each one to its own thread.

    The configuration is shared read-only by every connection thread.
    """

    def __init__(self, config: Config):
        """
        :param config: server settings; never modified
        """
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = threading.Event()

    @property
    def server_address(self) -> Tuple[str, int]:
        """Address actually bound, which differs from the config when port is 0."""
        return self._socket.getsockname()[:2]

    def start(self) -> None:
        """
        Create the listening socket.

        :raises OSError: if the address is unusable or already in use
        """
        family = socket.AF_INET6 if ':' in self.config.host else socket.AF_INET
        s = socket.socket(family, socket.SOCK_STREAM)
        try:
            # Allow immediate reuse of address after server stops.
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind((self.config.host, self.config.port))
            s.listen(LISTEN_BACKLOG)
        except OSError:
            s.close()
            raise
        s.settimeout(ACCEPT_POLL)
        self._socket = s
        self._running.set()

    def serve_forever(self) -> None:
        """Accept connections until stop() is called. Blocks only on accept()."""
        while self._running.is_set():
            try:
                conn, addr = self._socket.accept()
            except socket.timeout:
                continue
            except ConnectionAbortedError as e:
                logger.warning(f"Connection aborted before accept: {e}")
                continue
            except OSError:
                if not self._running.is_set():
                    break
                raise
            # accepted sockets must block regardless of the listener's poll timeout
            conn.settimeout(None)
            t = threading.Thread(target=handle_connection, args=(conn, addr, self.config),
                                 name=f"conn-{addr[0]}:{addr[1]}", daemon=True)
            t.start()

    def stop(self) -> None:
        """Stop accepting and close the listener. Open connections are left to finish."""
        self._running.clear()
        if self._socket is not None:
            self._socket.close()


def main(argv=None) -> None:
    """
    Start a file server using the command-line arguments.

    Exits with status 2 on unparsable arguments and 1 if the address cannot be bound.
    """
    logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    config = parse_args(argv)

    server = FileServer(config)
    try:
        server.start()
    except OSError as e:
        logger.error(f"Cannot bind {config.bind_address}: {e}")
        sys.exit(1)

    if not os.path.isdir(config.root_dir):
        logger.warning(f"{config.root_dir} is not a directory; every request will get 404")
    logger.info(f"Serving {config.root_dir} on http://{config.bind_address}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down.")
    finally:
        server.stop()


if __name__ == '__main__':
    main()
