"""
Rate Limiting Utilities for Contact Form

Prevents spam and abuse of the contact form.

An AdmissionController decides, per identifier (client IP or normalized
email), whether one more submission fits in the trailing window. Two
interchangeable backing stores are provided:

- LocalWindowStore: exact sliding window held in process memory. Lost on
  restart and only correct within one process.
- CacheCounterStore: fixed-window counter in the Django cache (Redis in
  production), shared across processes. A key is created with a TTL equal
  to the window and incremented on every attempt, denied ones included.
  This is looser than the sliding window: a sender can get up to twice the
  limit across a window boundary.
"""
import hashlib
import logging
import threading
import time

from django.conf import settings
from django.core.cache import caches
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 5
DEFAULT_WINDOW_MINUTES = 15


class AdmissionStoreUnavailable(Exception):
    """Raised when the backing store cannot be reached."""
    pass


def get_client_ip(request):
    """Get client IP address from request."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


class LocalWindowStore:
    """
    In-memory sliding window keyed by identifier.

    Each identifier maps to the list of its admission timestamps. Stale
    timestamps are filtered out on lookup rather than actively deleted.
    Identifiers hash onto a fixed set of lock stripes so that the
    read-filter-compare-append sequence is atomic per identifier without
    one global lock.
    """

    def __init__(self, stripes=64):
        self._windows = {}
        self._locks = [threading.Lock() for _ in range(stripes)]

    def _lock_for(self, identifier):
        return self._locks[hash(identifier) % len(self._locks)]

    def admit(self, identifier, max_requests, window_seconds, now):
        """
        Record an admission at ``now`` if the window has room.

        Returns:
            True if admitted; a denied attempt records nothing
        """
        with self._lock_for(identifier):
            recent = [
                timestamp for timestamp in self._windows.get(identifier, ())
                if now - timestamp < window_seconds
            ]
            if len(recent) >= max_requests:
                self._windows[identifier] = recent
                return False

            recent.append(now)
            self._windows[identifier] = recent
            return True

    def sweep(self, window_seconds, now):
        """
        Drop identifiers with no timestamps left in the window.

        Returns:
            Number of identifiers removed
        """
        removed = 0
        for identifier in list(self._windows):
            with self._lock_for(identifier):
                timestamps = self._windows.get(identifier)
                if timestamps is None:
                    continue
                if all(now - timestamp >= window_seconds for timestamp in timestamps):
                    del self._windows[identifier]
                    removed += 1
        return removed

    def __len__(self):
        return len(self._windows)


class CacheCounterStore:
    """
    Shared fixed-window counter in a Django cache.

    ``add`` creates the key with the window as its TTL only if it does not
    exist; ``incr`` is atomic on Redis and on the local-memory backend.
    Identifiers are hashed so raw addresses never reach the cache.
    """

    key_prefix = 'contact:admission'

    def __init__(self, cache_alias='default'):
        self.cache_alias = cache_alias

    @property
    def cache(self):
        return caches[self.cache_alias]

    def make_key(self, identifier):
        digest = hashlib.sha256(identifier.encode('utf-8')).hexdigest()
        return f'{self.key_prefix}:{digest}'

    def admit(self, identifier, max_requests, window_seconds, now):
        key = self.make_key(identifier)
        timeout = max(int(window_seconds), 1)

        try:
            self.cache.add(key, 0, timeout=timeout)
            try:
                count = self.cache.incr(key)
            except ValueError:
                # Expired between add() and incr(): this attempt opens a new window
                if self.cache.add(key, 1, timeout=timeout):
                    count = 1
                else:
                    # Another instance opened it first
                    count = self.cache.incr(key)
        except Exception as e:
            logger.error(f"Admission store unavailable: {e}")
            raise AdmissionStoreUnavailable(str(e)) from e

        return count <= max_requests


class AdmissionController:
    """
    Sliding-window admission policy over a pluggable store.

    Usage:
        controller = AdmissionController(LocalWindowStore(), max_requests=5, window_seconds=900)
        if controller.admit('203.0.113.7'):
            ...

    ``clock`` returns seconds as a float and is injectable for tests.
    """

    def __init__(self, store, max_requests=DEFAULT_MAX_REQUESTS,
                 window_seconds=DEFAULT_WINDOW_MINUTES * 60, clock=time.monotonic):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock

    @property
    def retry_after(self):
        """Upper bound, in whole seconds, before a denied sender may retry."""
        return int(self.window_seconds)

    def admit(self, identifier):
        """
        Check-then-record one attempt for ``identifier``.

        Raises:
            AdmissionStoreUnavailable: if the store cannot be reached
        """
        return self.store.admit(identifier, self.max_requests, self.window_seconds, self.clock())

    def sweep(self):
        """Release memory held for idle identifiers (local store only)."""
        sweep = getattr(self.store, 'sweep', None)
        if sweep is None:
            return 0
        return sweep(self.window_seconds, self.clock())


RATE_LIMIT_STORES = {
    'local': LocalWindowStore,
    'cache': CacheCounterStore,
}


def build_admission_controller():
    """Construct the configured controller from Django settings."""
    backend = getattr(settings, 'CONTACT_RATE_LIMIT_BACKEND', 'local')
    try:
        store_class = RATE_LIMIT_STORES[backend]
    except KeyError:
        raise ImproperlyConfigured(f"Unknown CONTACT_RATE_LIMIT_BACKEND: {backend!r}")

    window_minutes = getattr(settings, 'CONTACT_RATE_LIMIT_WINDOW_MINUTES', DEFAULT_WINDOW_MINUTES)
    return AdmissionController(
        store_class(),
        max_requests=getattr(settings, 'CONTACT_RATE_LIMIT_MAX', DEFAULT_MAX_REQUESTS),
        window_seconds=window_minutes * 60,
    )
