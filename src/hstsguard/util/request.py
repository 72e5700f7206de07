"""
Request utilities for hstsguard.
"""

from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional, Tuple, Union

from .._version import __version__
from ..exceptions import UnrewindableBodyError

_FAILEDTELL = object()

DEFAULT_USER_AGENT = f"python-hstsguard/{__version__}"


def make_headers(
    keep_alive: Optional[bool] = None,
    accept_encoding: Optional[Union[str, List[str]]] = None,
    user_agent: Optional[str] = None,
    basic_auth: Optional[Union[str, Tuple[str, str]]] = None,
    disable_cache: Optional[bool] = None,
) -> Dict[str, str]:
    """
    Shortcuts for generating request headers.

    :param keep_alive:
        If True, adds 'connection: keep-alive' header.

    :param accept_encoding:
        Can be a string, like "gzip,deflate", or a list of strings.

    :param user_agent:
        String representing the user-agent you want, such as
        "python-hstsguard/0.1"

    :param basic_auth:
        Colon-separated username:password string for 'authorization: basic ...'
        auth, or a (username, password) tuple for basic auth.

    :param disable_cache:
        If True, adds 'cache-control: no-cache' header.

    Example:

    .. code-block:: python

        from hstsguard.util.request import make_headers

        headers = make_headers(keep_alive=True, user_agent="hstsguard/1.0")
        # {'connection': 'keep-alive', 'user-agent': 'hstsguard/1.0'}
    """
    headers: Dict[str, str] = {}
    if accept_encoding:
        if not isinstance(accept_encoding, str):
            accept_encoding = ",".join(accept_encoding)
        headers["accept-encoding"] = accept_encoding

    if user_agent:
        headers["user-agent"] = user_agent

    if keep_alive:
        headers["connection"] = "keep-alive"

    if basic_auth:
        if isinstance(basic_auth, str):
            credentials = basic_auth.encode("utf-8")
        else:
            credentials = f"{basic_auth[0]}:{basic_auth[1]}".encode("utf-8")
        headers["authorization"] = f"Basic {base64.b64encode(credentials).decode('utf-8')}"

    if disable_cache:
        headers["cache-control"] = "no-cache"

    return headers


def set_file_position(body: Any, pos: Any = None) -> Any:
    """
    Record the position of a file-like body so it can be rewound for a redirect.

    :param body: The request body
    :param pos: A position already recorded by the caller, if any
    :return: The position, ``None`` for bodies that need no rewinding, or
        a sentinel when ``tell()`` failed
    """
    if pos is not None:
        return pos
    if hasattr(body, "tell"):
        try:
            return body.tell()
        except OSError:
            # This differentiates from None, allowing us to catch
            # a failed `tell()` later when rewinding the body.
            return _FAILEDTELL
    return None


def rewind_body(body: Any, body_pos: Any) -> None:
    """
    Rewind a file-like body to the position recorded by :func:`set_file_position`.

    :param body: The body to rewind.
    :param body_pos: The position to rewind to.
    :raises UnrewindableBodyError: If the body cannot be rewound.
    """
    if body_pos is _FAILEDTELL:
        raise UnrewindableBodyError(
            "Unable to record file position for rewinding request body during a redirect."
        )

    body_seek = getattr(body, "seek", None)
    if body_seek is None or not isinstance(body_pos, int):
        raise UnrewindableBodyError(
            f"body_pos must be of type integer, instead it was {type(body_pos)}."
        )

    try:
        body_seek(body_pos)
    except OSError as e:
        raise UnrewindableBodyError(
            "An error occurred when rewinding request body for redirect."
        ) from e
