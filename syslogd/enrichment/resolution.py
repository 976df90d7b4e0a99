"""Hostname -> address resolution for messages received at a non-default location.

Successful lookups are cached per (hostname, location) forever; failures are
never cached so the next message for the same host tries again.
"""

from __future__ import annotations

import logging
import socket
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Dict, NamedTuple, Optional, Protocol

logger = logging.getLogger("syslogd.resolution")


class HostnameWithLocation(NamedTuple):
    hostname: str
    location: str


class DnsLookupClient(Protocol):
    """Asynchronous, location-aware hostname lookup."""

    def lookup(self, hostname: str, location: str, system_id: str) -> "Future[Optional[str]]":
        ...

    def close(self) -> None:
        ...


class ThreadedDnsLookupClient:
    """Resolve with the local resolver on a small thread pool. ``location`` is not used."""

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dns-lookup")

    def lookup(self, hostname: str, location: str, system_id: str) -> "Future[Optional[str]]":
        return self._executor.submit(socket.gethostbyname, hostname)

    def close(self) -> None:
        self._executor.shutdown(wait=False)


class ResolutionCache:
    def __init__(self, client: DnsLookupClient, timeout: Optional[float] = None) -> None:
        self.client = client
        self.timeout = timeout
        self._addresses: Dict[HostnameWithLocation, str] = {}
        self._pending: Dict[HostnameWithLocation, "Future[Optional[str]]"] = {}
        self._lock = threading.Lock()

    def get_if_present(self, hostname: str, location: str) -> Optional[str]:
        return self._addresses.get(HostnameWithLocation(hostname, location))

    def resolve(self, hostname: str, location: str, system_id: str) -> Optional[str]:
        """Return the cached address or look it up, blocking for at most ``timeout`` seconds."""
        key = HostnameWithLocation(hostname, location)
        address = self._addresses.get(key)
        if address is not None:
            return address

        owner = False
        with self._lock:
            address = self._addresses.get(key)
            if address is not None:
                return address
            future = self._pending.get(key)
            if future is None:
                try:
                    future = self.client.lookup(hostname, location, system_id)
                except Exception as exc:  # noqa: BLE001
                    logger.warning(
                        "Exception while resolving hostname %s at location %s: %s", hostname, location, exc
                    )
                    return None
                self._pending[key] = future
                owner = True

        try:
            address = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            logger.warning(
                "Timed out after %ss resolving hostname %s at location %s", self.timeout, hostname, location
            )
            address = None
        except CancelledError:
            logger.warning("Lookup of hostname %s at location %s was cancelled", hostname, location)
            address = None
        except Exception as exc:  # noqa: BLE001
            logger.warning("Exception while resolving hostname %s at location %s: %s", hostname, location, exc)
            address = None

        if owner:
            with self._lock:
                if address is not None:
                    self._addresses[key] = address
                # Failures are never cached.
                if self._pending.get(key) is future:
                    del self._pending[key]
        return address

    def __len__(self) -> int:
        return len(self._addresses)

    def close(self) -> None:
        self.client.close()
