"""
Owner directory -- display-name lookup for account owners.

Responsibility:
    Resolves an owner id to the owner's display name.  Used only to decorate
    movement listings and statements; the ledger never validates owners
    otherwise.

Architecture position:
    Kernel > Clients.  Injected into LedgerEngine and StatementBuilder at
    construction; never instantiated as a hidden global.

Failure modes:
    - LedgerError(NOT_FOUND): the directory answered 4xx for the owner.
    - LedgerError(UNAVAILABLE): timeout, transport failure, 5xx, or a reply
      without a usable name.  No retries are attempted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from ledger_kernel.exceptions import LedgerError
from ledger_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from ledger_config.schema import OwnerDirectorySettings

logger = get_logger("clients.owner_directory")

SERVICE_NAME = "owner directory"


class OwnerDirectory(ABC):
    """
    Owner name lookup interface.

    Contract:
        ``get_owner_name`` blocks until an answer, a timeout or an error.
        It returns a non-empty display name or raises LedgerError with kind
        NOT_FOUND or UNAVAILABLE.
    """

    @abstractmethod
    def get_owner_name(self, owner_id: str) -> str:
        """Return the display name of ``owner_id``."""
        ...


class HttpOwnerDirectory(OwnerDirectory):
    """
    Owner directory backed by an HTTP service.

    Issues ``GET {base_url}{path_template}`` with the owner id substituted
    and reads ``name_field`` from the JSON body.

    Args:
        base_url: Directory service root, e.g. ``http://owners:8080``.
        timeout: Seconds before the request is abandoned.
        path_template: Path containing an ``{owner_id}`` placeholder.
        name_field: JSON field holding the display name.
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        path_template: str = "/owners/{owner_id}",
        name_field: str = "name",
        transport: httpx.BaseTransport | None = None,
    ):
        if "{owner_id}" not in path_template:
            raise ValueError("path_template must contain '{owner_id}'")
        self.base_url = base_url
        self.timeout = timeout
        self.path_template = path_template
        self.name_field = name_field
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: OwnerDirectorySettings,
        transport: httpx.BaseTransport | None = None,
    ) -> HttpOwnerDirectory:
        return cls(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            path_template=settings.path_template,
            name_field=settings.name_field,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpOwnerDirectory:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def get_owner_name(self, owner_id: str) -> str:
        # Owner ids are opaque: one path segment, never a sub-path
        path = self.path_template.format(owner_id=quote(owner_id, safe=""))
        try:
            response = self._client.get(path)
        except httpx.TimeoutException:
            logger.warning(
                "owner_lookup_timeout",
                extra={"owner_id": owner_id, "timeout": self.timeout},
            )
            raise LedgerError.unavailable(
                SERVICE_NAME, f"timed out after {self.timeout}s"
            ) from None
        except httpx.HTTPError as exc:
            logger.warning(
                "owner_lookup_transport_error",
                extra={"owner_id": owner_id, "error": str(exc)},
            )
            raise LedgerError.unavailable(SERVICE_NAME, str(exc)) from None

        if response.status_code >= 500:
            logger.warning(
                "owner_lookup_server_error",
                extra={"owner_id": owner_id, "status_code": response.status_code},
            )
            raise LedgerError.unavailable(
                SERVICE_NAME, f"server error {response.status_code}"
            )
        if response.status_code >= 400:
            raise LedgerError.not_found("Owner", owner_id)

        try:
            body = response.json()
        except ValueError:
            raise LedgerError.unavailable(SERVICE_NAME, "reply is not JSON") from None

        name = body.get(self.name_field) if isinstance(body, dict) else None
        if not isinstance(name, str) or not name:
            raise LedgerError.unavailable(
                SERVICE_NAME, f"reply has no '{self.name_field}' field"
            )

        logger.debug("owner_resolved", extra={"owner_id": owner_id})
        return name


class StaticOwnerDirectory(OwnerDirectory):
    """
    In-memory owner directory.

    Used in tests and local runs.  Unknown owners raise NOT_FOUND.
    Every lookup is recorded in ``lookups`` in call order.
    """

    def __init__(self, names: Mapping[str, str] | None = None):
        self._names = dict(names or {})
        self.lookups: list[str] = []

    def get_owner_name(self, owner_id: str) -> str:
        self.lookups.append(owner_id)
        try:
            return self._names[owner_id]
        except KeyError:
            raise LedgerError.not_found("Owner", owner_id) from None
