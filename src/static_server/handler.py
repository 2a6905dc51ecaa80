"""
Request handling: one parsed request in, one response out.

serve_file never raises. A rejected path becomes a 400 and any failure to read
the file becomes a 404, whatever the reason (missing, permission denied,
directory, ...).
"""

import logging

from .config import Config
from .mime import guess_type
from .protocol import Request, Response
from .resolver import PathRejected, resolve

logger = logging.getLogger('static_server.handler')


def bad_request() -> Response:
    return Response(400, body=b"400 Bad Request")


def not_found() -> Response:
    return Response(404, body=b"404 Not Found")


def serve_file(request: Request, config: Config) -> Response:
    """
    Serve the file named by request.path from config.root_dir.

    :param request: parsed request; only its path is consulted
    :param config: shared server configuration
    :return: 200 with the file, 400 for a traversal attempt, 404 otherwise
    """
    path = request.path
    logger.info(f"Request: {path}")

    try:
        resolved = resolve(path, config)
    except PathRejected:
        logger.error(f"Invalid path: {path}")
        return bad_request()

    try:
        with open(resolved.filesystem_path, 'rb') as f:
            data = f.read()
    except (OSError, ValueError):
        # ValueError: embedded NUL in the path
        logger.error(f"File not found: {resolved.logical_path}")
        return not_found()

    mime = guess_type(resolved.logical_path)
    logger.debug(f"{resolved.logical_path}: {mime}")

    headers = {
        'Content-Length': str(len(data)),
        'Content-Type': mime,
    }
    return Response(200, headers, data)
