"""
HTTP connection handling for hstsguard.

This module provides classes for handling HTTP connections.
"""

from __future__ import annotations

import http.client
import logging
import socket
import ssl

import certifi
import idna

from .exceptions import LocationParseError

log = logging.getLogger(__name__)


def _idna_encode(name: str) -> str:
    """
    Encode an international host name for the wire.

    ASCII names, including IP literals, are returned unchanged.

    :raises LocationParseError: If the name is not a valid IDNA host name.
    """
    if name.isascii():
        return name
    try:
        return idna.encode(name, uts46=True).decode("ascii")
    except idna.IDNAError as e:
        raise LocationParseError(f"{name!r}, label empty or too long") from e


def create_ssl_context(ca_certs: str | None = None) -> ssl.SSLContext:
    """
    Create a verifying SSL context.

    :param ca_certs: Path to a CA bundle, defaults to the ``certifi`` bundle
    :return: An SSL context that requires a valid certificate and host name
    """
    return ssl.create_default_context(cafile=ca_certs or certifi.where())


class HTTPConnection(http.client.HTTPConnection):
    """
    HTTP connection that supports additional features.

    This class extends the standard library's HTTPConnection with
    IDNA encoding of the host name.
    """

    default_port = http.client.HTTP_PORT

    def __init__(
        self,
        host,
        port=None,
        timeout=socket._GLOBAL_DEFAULT_TIMEOUT,
        source_address=None,
        blocksize=8192,
    ):
        """
        Initialize a new HTTPConnection.

        :param host: Host to connect to
        :param port: Port to connect to
        :param timeout: Socket timeout
        :param source_address: Source address to bind to
        :param blocksize: Block size for reading
        """
        super().__init__(
            host=_idna_encode(host),
            port=port,
            timeout=timeout,
            source_address=source_address,
            blocksize=blocksize,
        )

    @property
    def is_connected(self) -> bool:
        return self.sock is not None


class HTTPSConnection(http.client.HTTPSConnection):
    """
    HTTPS connection that supports additional features.

    Certificates are verified against the ``certifi`` CA bundle unless a
    context or bundle is given.
    """

    default_port = http.client.HTTPS_PORT

    def __init__(
        self,
        host,
        port=None,
        timeout=socket._GLOBAL_DEFAULT_TIMEOUT,
        source_address=None,
        context=None,
        ca_certs=None,
        blocksize=8192,
    ):
        """
        Initialize a new HTTPSConnection.

        :param host: Host to connect to
        :param port: Port to connect to
        :param timeout: Socket timeout
        :param source_address: Source address to bind to
        :param context: SSL context
        :param ca_certs: Path to a CA bundle used when no context is given
        :param blocksize: Block size for reading
        """
        if context is None:
            context = create_ssl_context(ca_certs)

        super().__init__(
            host=_idna_encode(host),
            port=port,
            timeout=timeout,
            source_address=source_address,
            context=context,
            blocksize=blocksize,
        )

    @property
    def is_connected(self) -> bool:
        return self.sock is not None
