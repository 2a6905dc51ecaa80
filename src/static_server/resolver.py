"""
Mapping from request paths to files under the served root.

The traversal guard is a plain substring test: any '..' in the request path
is rejected. Nothing is percent-decoded or normalised, so '%2e%2e', './' and
'//' pass through verbatim and are looked up as literal names.
"""

from typing import NamedTuple

from .config import Config


class PathRejected(ValueError):
    """The request path tries to leave the served root."""


class Resolved(NamedTuple):
    logical_path: str  # after index substitution, used for the content type
    filesystem_path: str


def resolve(request_path: str, config: Config) -> Resolved:
    """
    Map request_path to a file under config.root_dir.

    :raises PathRejected: if request_path contains '..'
    """
    if '..' in request_path:
        raise PathRejected(request_path)
    if request_path in config.index_aliases:
        logical = config.index_file
    else:
        logical = request_path
    return Resolved(logical, f"{config.root_dir}/{logical}")
