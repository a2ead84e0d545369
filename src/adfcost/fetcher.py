import time
from typing import Any, Callable, Mapping, TypeVar

import httpx
import structlog

from adfcost.credential import CredentialManager
from adfcost.errors import PaginationError
from adfcost.http import RetryingSender, json_object
from adfcost.models import Credential

logger = structlog.get_logger()

T = TypeVar("T")

CONTINUATION_TOKEN = "continuationToken"


class PagedCollectionFetcher:
    """
    PagedCollectionFetcher drains a POST endpoint that pages with a
    continuation token. The token of each response is merged into the
    next request body until a response arrives without one. Every page
    is sent with a freshly validated credential.
    """

    def __init__(
        self,
        sender: "RetryingSender",
        credentials: "CredentialManager",
    ) -> "None":
        self._sender = sender
        self._credentials = credentials

    async def fetch_all(
        self,
        url: "str",
        body: "Mapping[str, Any]",
        credential: "Credential | None",
        parse: "Callable[[Mapping[str, Any]], T]",
        endpoint: "str" = "collection",
    ) -> "tuple[list[T], Credential]":
        """
        returns every record of the collection, in arrival order, and the
        credential used for the last page. Any failed page aborts the
        whole fetch with PaginationError.
        """
        records: "list[T]" = []
        request_body: "dict[str, Any]" = dict(body)
        page = 0

        while True:
            page += 1
            credential = await self._credentials.acquire(credential)

            started = time.monotonic()
            try:
                resp = await self._sender.send(
                    "POST",
                    url,
                    endpoint,
                    json=request_body,
                    headers={"Authorization": credential.auth_header_value},
                )
            except httpx.HTTPError as exc:
                raise PaginationError(
                    f"page {page} of {endpoint} failed: {exc!r}",
                    url=url,
                    page=page,
                ) from exc
            self._sender.metrics.observe_page_duration(
                endpoint, time.monotonic() - started
            )

            if not resp.is_success:
                raise PaginationError(
                    f"page {page} of {endpoint} returned HTTP {resp.status_code}",
                    url=url,
                    page=page,
                    status_code=resp.status_code,
                )

            try:
                data = json_object(resp)
                items = data.get("value") or []
                records.extend(parse(item) for item in items)
            except (KeyError, TypeError, ValueError) as exc:
                raise PaginationError(
                    f"page {page} of {endpoint} has an unreadable body: {exc!r}",
                    url=url,
                    page=page,
                    status_code=resp.status_code,
                ) from exc

            logger.debug(
                "page_fetched",
                endpoint=endpoint,
                page=page,
                page_size=len(items),
                total=len(records),
            )

            token = data.get(CONTINUATION_TOKEN)
            # break once the service stops handing out continuation tokens
            if not token:
                break

            request_body[CONTINUATION_TOKEN] = token

        self._sender.metrics.add_records(endpoint, len(records))
        return records, credential
