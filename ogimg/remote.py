"""Resolver — fetch avatar, logo and background sources into raw bytes.

``http://`` and ``https://`` sources are downloaded, anything else is read
as a local file path. A batch is all-or-nothing.
"""

from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from pathlib import Path

import httpx

from ogimg.errors import FetchError
from ogimg.logging import audit, get_logger, trace

log = get_logger("remote")

_REMOTE_SCHEMES = ("http://", "https://")


class Resolver:
    """Fetches sources concurrently on a thread pool.

    Args:
        timeout: Per-request HTTP timeout in seconds.
        max_workers: Upper bound on parallel fetches.
        client: Optional pre-configured httpx client (used as-is, not closed).
    """

    def __init__(self, timeout: float = 10.0, max_workers: int = 4, client: httpx.Client | None = None):
        self.timeout = timeout
        self.max_workers = max_workers
        self._client = client

    def _client_context(self):
        if self._client is not None:
            return nullcontext(self._client)
        return httpx.Client(timeout=self.timeout, follow_redirects=True)

    def _fetch(self, client: httpx.Client, source: str) -> bytes:
        if not source:
            raise FetchError("empty source")

        if source.startswith(_REMOTE_SCHEMES):
            try:
                response = client.get(source)
                response.raise_for_status()
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                raise FetchError(f"could not fetch {source}: {e}") from e
            return response.content

        try:
            return Path(source).read_bytes()
        except (OSError, ValueError) as e:
            raise FetchError(f"could not read {source}: {e}") from e

    @trace
    def get_all(self, sources: list[str]) -> list[bytes]:
        """Return the bytes of every source, in order.

        Raises:
            FetchError: any single source failed; no partial results.
        """
        if not sources:
            return []

        workers = max(1, min(self.max_workers, len(sources)))
        with self._client_context() as client, ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self._fetch, client, s) for s in sources]
            try:
                results = [f.result() for f in futures]
            except FetchError:
                for f in futures:
                    f.cancel()
                raise

        audit("fetch.done", logger=log, count=len(results), bytes=sum(len(r) for r in results))
        return results
