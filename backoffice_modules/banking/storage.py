"""
backoffice_modules.banking.storage
==================================

Responsibility:
    Object storage for bank statement files.  ``ObjectStorage`` is the
    boundary the reconciliation service talks to; ``LocalObjectStorage``
    keeps objects under a directory and issues HMAC-SHA256 signed,
    expiring URLs for them.

Key layout:
    ``<company id>/<bank account id>/<uuid>-<file name>``

Failure modes:
    - ``StatementNotFoundError`` when reading a key that does not exist.
    - ``InvalidSignatureError`` when a signed URL is tampered with or expired.
"""

from __future__ import annotations

import hashlib
import hmac
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from urllib.parse import parse_qs, quote, unquote, urlsplit
from uuid import UUID, uuid4

from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.exceptions import InvalidSignatureError, StatementNotFoundError
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.banking.storage")


def statement_key(company_id: UUID, bank_account_id: UUID, file_name: str) -> str:
    """Storage key for a newly uploaded statement file."""
    # Only the final path component of a client-supplied name is kept.
    safe_name = PurePosixPath(file_name.replace("\\", "/")).name or "statement"
    return f"{company_id}/{bank_account_id}/{uuid4()}-{safe_name}"


class ObjectStorage(ABC):
    """Write-once object store for statement files."""

    @abstractmethod
    def upload(self, key: str, content: bytes) -> None:
        """Store ``content`` under ``key``, replacing any existing object."""

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Return the object stored under ``key``."""

    @abstractmethod
    def signed_url(self, key: str, expires_in: int) -> str:
        """A URL granting read access to ``key`` for ``expires_in`` seconds."""


class LocalObjectStorage(ObjectStorage):
    """
    Filesystem-backed storage.

    URLs have the form ``<url_base>/<key>?expires=<unix ts>&signature=<hex>``
    where the signature is HMAC-SHA256 over ``"<key>:<expires>"``.
    """

    def __init__(
        self,
        root: Path | str,
        signing_key: str,
        url_base: str = "/statements",
        clock: Clock | None = None,
    ):
        self._root = Path(root)
        self._signing_key = signing_key.encode("utf-8")
        self._url_base = url_base.rstrip("/")
        self._clock = clock or SystemClock()

    @classmethod
    def from_config(cls, config, clock: Clock | None = None) -> LocalObjectStorage:
        """Build from ``backoffice_config.StorageConfig``."""
        return cls(
            root=config.root,
            signing_key=config.signing_key,
            url_base=config.url_base,
            clock=clock,
        )

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root.resolve()):
            raise StatementNotFoundError(key)
        return path

    def _sign(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode("utf-8")
        return hmac.new(self._signing_key, message, hashlib.sha256).hexdigest()

    def upload(self, key: str, content: bytes) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        logger.info(
            "statement_object_stored",
            extra={"storage_key": key, "size_bytes": len(content)},
        )

    def read(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise StatementNotFoundError(key)
        return path.read_bytes()

    def signed_url(self, key: str, expires_in: int) -> str:
        expires = int(self._clock.now().timestamp()) + expires_in
        signature = self._sign(key, expires)
        return f"{self._url_base}/{quote(key)}?expires={expires}&signature={signature}"

    def verify_url(self, url: str) -> str:
        """
        Check a URL issued by ``signed_url`` and return its key.

        Raises:
            InvalidSignatureError: signature mismatch, missing parameters,
                or the URL has expired.
        """
        parts = urlsplit(url)
        prefix = self._url_base + "/"
        if not parts.path.startswith(prefix):
            raise InvalidSignatureError(parts.path, "unknown url base")
        key = unquote(parts.path[len(prefix):])

        params = parse_qs(parts.query)
        try:
            expires = int(params["expires"][0])
            signature = params["signature"][0]
        except (KeyError, IndexError, ValueError) as exc:
            raise InvalidSignatureError(key, "missing or malformed parameters") from exc

        if not hmac.compare_digest(signature, self._sign(key, expires)):
            raise InvalidSignatureError(key, "signature mismatch")
        if int(self._clock.now().timestamp()) >= expires:
            raise InvalidSignatureError(key, "expired")
        return key
