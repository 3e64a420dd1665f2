"""HTTPX-based implementation of LeaseStorePort on top of Consul KV.

Reads use the ?consistent mode, so they go through the Consul leader.
Conditional writes go through the transaction endpoint with the 'cas' verb:
Index=0 creates the key only if absent, any other Index replaces it only if
ModifyIndex still matches. ModifyIndex is the version.
"""

from __future__ import annotations

import base64
import logging
import threading
from typing import TYPE_CHECKING, Any

import httpx

from leasekeeper.domain.exceptions import (
    LeaseStoreError,
    TransientStoreError,
    VersionConflictError,
)
from leasekeeper.domain.lease import StoredValue
from leasekeeper.domain.retry import RetryPolicy
from leasekeeper.domain.settings import ConsulStoreSettings

if TYPE_CHECKING:
    from leasekeeper.adapters.ports import WatchCallback

logger = logging.getLogger(__name__)

# Extra seconds on top of the blocking wait, so the HTTP timeout never fires
# before Consul answers an idle blocking query
_WATCH_TIMEOUT_MARGIN = 5.0


class ConsulWatchHandle:
    """Handle for one blocking-query watch loop."""

    def __init__(self, key: str) -> None:
        self.key = key
        self._stopped = threading.Event()
        self.thread: threading.Thread | None = None

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()

    def cancel(self) -> None:
        """Stop the loop. An in-flight blocking query is abandoned, not awaited."""
        self._stopped.set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to seconds; True if cancelled meanwhile."""
        return self._stopped.wait(seconds)


class ConsulLeaseStore:
    """Consul KV adapter for lease records.

    Uses httpx for every HTTP call. A single client is reused for the
    request/response operations; each watch loop runs on its own daemon
    thread.

    Example:
        >>> store = ConsulLeaseStore(ConsulStoreSettings(url="http://consul:8500"))
        >>> store.read("orders", timeout=2.0)  # doctest: +SKIP
    """

    def __init__(
        self,
        settings: ConsulStoreSettings | None = None,
        client: httpx.Client | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """Initialize the Consul lease store.

        Args:
            settings: Consul connection settings. Defaults to a local agent.
            client: Optional httpx.Client for dependency injection (testing).
                   If not provided, one is created and owned by the store.
            retry_policy: Reconnect backoff for watch loops.
        """
        self._settings = settings or ConsulStoreSettings()
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client()
        self._retry_policy = retry_policy or RetryPolicy()
        self._base_url = self._settings.url.rstrip("/")

    @property
    def settings(self) -> ConsulStoreSettings:
        return self._settings

    def close(self) -> None:
        """Close the HTTP client if this store created it."""
        if self._owns_client:
            self._client.close()

    def read(self, key: str, timeout: float) -> StoredValue | None:
        """Consistent read of key.

        Raises:
            TransientStoreError: On timeout, connectivity loss or 5xx.
            LeaseStoreError: On any other unexpected response.
        """
        params = self._params(consistent="")
        response = self._request("GET", self._kv_url(key), key, timeout, params=params)
        if response.status_code == 404:
            return None
        self._raise_for_status(response, key)
        return self._decode_entry(response, key)

    def create_if_absent(self, key: str, value: bytes, timeout: float) -> int:
        """Create key through a cas transaction with Index=0."""
        return self._cas(key, value, index=0, timeout=timeout, expected_version=None)

    def update_if_version(
        self, key: str, value: bytes, expected_version: int, timeout: float
    ) -> int:
        """Replace key through a cas transaction keyed on ModifyIndex."""
        if expected_version <= 0:
            # Index=0 would turn the update into a create
            raise VersionConflictError(
                f"Invalid expected version {expected_version} for {key!r}",
                key=key,
                expected_version=expected_version,
            )
        return self._cas(
            key,
            value,
            index=expected_version,
            timeout=timeout,
            expected_version=expected_version,
        )

    def watch(self, key: str, callback: WatchCallback) -> ConsulWatchHandle:
        """Start a blocking-query loop delivering changes of key to callback."""
        handle = ConsulWatchHandle(key)
        handle.thread = threading.Thread(
            target=self._watch_loop,
            args=(handle, callback),
            name=f"consul-lease-watch-{key}",
            daemon=True,
        )
        handle.thread.start()
        return handle

    def _kv_url(self, key: str) -> str:
        return f"{self._base_url}/v1/kv/{self._settings.key_prefix}{key}"

    def _params(self, **extra: str) -> dict[str, str]:
        params = dict(extra)
        if self._settings.datacenter:
            params["dc"] = self._settings.datacenter
        return params

    def _headers(self) -> dict[str, str]:
        if self._settings.token:
            return {"X-Consul-Token": self._settings.token}
        return {}

    def _request(
        self,
        method: str,
        url: str,
        key: str,
        timeout: float,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        """Send one request, translating transport failures."""
        try:
            return self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
                timeout=timeout,
            )
        except httpx.TransportError as e:
            raise TransientStoreError(
                f"Consul request for {key!r} failed: {e}", key=key, original_error=e
            ) from e

    def _raise_for_status(self, response: httpx.Response, key: str) -> None:
        status = response.status_code
        if status < 400:
            return
        message = f"Consul returned {status} for {key!r}: {response.text}"
        if status >= 500 or status == 429:
            raise TransientStoreError(message, key=key)
        raise LeaseStoreError(message, key=key)

    def _decode_entry(self, response: httpx.Response, key: str) -> StoredValue:
        try:
            entry = response.json()[0]
            encoded = entry.get("Value")
            raw = base64.b64decode(encoded) if encoded else b""
            return StoredValue(value=raw, version=int(entry["ModifyIndex"]))
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LeaseStoreError(
                f"Unexpected Consul KV response for {key!r}: {e}",
                key=key,
                original_error=e,
            ) from e

    def _cas(
        self,
        key: str,
        value: bytes,
        index: int,
        timeout: float,
        expected_version: int | None,
    ) -> int:
        operation = {
            "KV": {
                "Verb": "cas",
                "Key": f"{self._settings.key_prefix}{key}",
                "Value": base64.b64encode(value).decode("ascii"),
                "Index": index,
            }
        }
        response = self._request(
            "PUT",
            f"{self._base_url}/v1/txn",
            key,
            timeout,
            params=self._params(),
            json=[operation],
        )
        if response.status_code == 409:
            raise VersionConflictError(
                f"Conditional write on {key!r} rejected (index {index})",
                key=key,
                expected_version=expected_version,
            )
        self._raise_for_status(response, key)
        try:
            return int(response.json()["Results"][0]["KV"]["ModifyIndex"])
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LeaseStoreError(
                f"Unexpected Consul txn response for {key!r}: {e}",
                key=key,
                original_error=e,
            ) from e

    def _watch_loop(self, handle: ConsulWatchHandle, callback: WatchCallback) -> None:
        """Run blocking queries until the handle is cancelled."""
        key = handle.key
        index = 0
        last_seen: StoredValue | None = None
        attempt = 0
        wait = f"{int(self._settings.watch_wait)}s"
        timeout = self._settings.watch_wait + _WATCH_TIMEOUT_MARGIN

        while not handle.cancelled:
            try:
                params = self._params(index=str(index), wait=wait)
                response = self._request(
                    "GET", self._kv_url(key), key, timeout, params=params
                )
                if response.status_code == 404:
                    current = None
                else:
                    self._raise_for_status(response, key)
                    current = self._decode_entry(response, key)
            except LeaseStoreError as e:
                if not self._retry_policy.is_retryable(e):
                    logger.error("Watch on %r stopped: %s", key, e)
                    return
                if not self._retry_policy.should_retry(attempt):
                    logger.error("Giving up watch on %r after %d attempts", key, attempt)
                    return
                delay = self._retry_policy.calculate_backoff(attempt)
                attempt += 1
                logger.warning(
                    "Watch on %r failed (%s), reconnecting in %.1fs", key, e, delay
                )
                if handle.wait(delay):
                    return
                continue

            attempt = 0
            new_index = int(response.headers.get("X-Consul-Index", "0") or 0)
            if new_index < index:
                # Index going backwards means the Consul state was reset
                index = 0
            elif new_index > index:
                index = new_index
            elif new_index == 0:
                # No blocking index to wait on; pace the loop ourselves
                if handle.wait(self._retry_policy.backoff_base):
                    return

            if handle.cancelled:
                return
            if current == last_seen:
                continue
            last_seen = current
            try:
                callback(current)
            except Exception:
                logger.exception("Watch callback for %r raised", key)
