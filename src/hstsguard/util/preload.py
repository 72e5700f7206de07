"""
HSTS preload list loading for hstsguard.

Chromium publishes the hosts it ships with built-in HSTS policies in
``net/http/transport_security_state_static.json``. The file is JSON with
``//`` line comments, and gitiles serves it base64-encoded when asked for
``?format=TEXT``. Fetching it is left to the caller; this module turns the
document into the ``{host: include_subdomains}`` mapping that
:class:`~hstsguard.util.hsts.HSTSCache` is seeded with.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
import typing

from ..exceptions import PreloadError

log = logging.getLogger(__name__)

#: Only entries in this mode force HTTPS; others carry pins or expect-CT.
FORCE_HTTPS = "force-https"


def _remove_comments(text: str) -> str:
    return "\n".join(
        line for line in text.splitlines() if not line.lstrip().startswith("//")
    )


def parse_preload_list(data: str | bytes, encoded: bool = False) -> dict[str, bool]:
    """
    Parse a Chromium transport security state document.

    :param data: The document, as text or bytes
    :param encoded: Whether ``data`` is base64-encoded
    :return: Mapping of host name to ``include_subdomains``
    :raises PreloadError: If the document cannot be decoded or holds no
        ``force-https`` entry
    """
    if encoded:
        try:
            data = base64.b64decode(data, validate=False)
        except (binascii.Error, ValueError) as e:
            raise PreloadError(f"Preload list is not valid base64: {e}") from e

    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PreloadError(f"Preload list is not valid UTF-8: {e}") from e

    try:
        document = json.loads(_remove_comments(data))
    except ValueError as e:
        raise PreloadError(f"Preload list is not valid JSON: {e}") from e

    entries = document.get("entries") if isinstance(document, dict) else None
    if not isinstance(entries, list):
        raise PreloadError("Preload list has no 'entries' array")

    hosts: dict[str, bool] = {}
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("mode") != FORCE_HTTPS:
            continue
        name = entry.get("name")
        if not isinstance(name, str) or not name:
            continue
        hosts[name] = bool(entry.get("include_subdomains", False))

    if not hosts:
        raise PreloadError("preload list empty")

    log.debug("Parsed HSTS preload list with %d hosts", len(hosts))
    return hosts


def load_preload_list(
    path: typing.Union[str, os.PathLike], encoded: bool = False
) -> dict[str, bool]:
    """
    Load a Chromium transport security state document from a file.

    :param path: Path to the file
    :param encoded: Whether the file content is base64-encoded
    :return: Mapping of host name to ``include_subdomains``
    :raises PreloadError: If the file cannot be read or parsed
    """
    try:
        with open(path, "rb") as fp:
            data = fp.read()
    except OSError as e:
        raise PreloadError(f"Cannot read preload list {os.fspath(path)!r}: {e}") from e
    return parse_preload_list(data, encoded=encoded)
