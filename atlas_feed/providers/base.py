"""
Abstract base class for content providers.

A provider wraps one upstream API. Concrete implementations supply the
native requests and the record transforms; this base class owns the shared
contract:

- configuration problems become ``ConfigurationError`` results
- transport and HTTP failures are classified into an ``ErrorKind``
- topic fan-out runs one native request at a time, separated by the
  provider's rate-limit delay, and tolerates partial failure
- records a transform cannot handle are dropped, not raised
- every call is timed and returns a ``ProviderResult`` value; nothing is raised
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
import hashlib
import logging
import math
import time
from typing import Any, Awaitable, Callable, ClassVar, Union

import httpx

from ..config import AppConfig
from ..core.taxonomy import Provider, Topic
from ..core.types import CanonicalContent, ErrorKind, FetchOptions, ProviderResult
from ..utils.logging import get_logger, log_event


class ProviderCallError(Exception):
    """Internal signal for a failed native request, converted to a result value."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


CallOutcome = Union[list[CanonicalContent], ProviderResult]


def classify_status(status_code: int) -> ErrorKind:
    """Map a non-2xx HTTP status code to an error kind."""
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code in (401, 403):
        return ErrorKind.FORBIDDEN
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    return ErrorKind.UPSTREAM_ERROR


def stable_hash(value: str, length: int = 16) -> str:
    """Return a short, deterministic hex digest used for content-addressed ids."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:length]


def as_str(value: Any) -> str:
    """Return ``value`` if it is a string, otherwise an empty string."""
    return value if isinstance(value, str) else ""


def as_float(value: Any, default: float = 0.0) -> float:
    """Coerce a numeric upstream field, falling back to ``default`` for anything non-finite."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def as_int(value: Any, default: int = 0) -> int:
    return int(as_float(value, default))


class ContentProvider(ABC):
    """Abstract base class for upstream content providers.

    Subclasses set ``name`` and implement the native request hooks. Callers
    use the three public ``fetch_*`` coroutines, which always return a
    ``ProviderResult``.
    """

    name: ClassVar[Provider]

    def __init__(
        self,
        cfg: AppConfig,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ):
        self._app_cfg = cfg
        self._client = client
        self._logger = logger or get_logger(f"providers.{self.name.value}")
        self.rate_limit_delay = 0.0

    # -- public contract -------------------------------------------------

    async def fetch_by_native_query(self, query: str, options: FetchOptions | None = None) -> ProviderResult:
        """Search the upstream with a provider-native query string."""
        options = options or FetchOptions()
        if not query or not query.strip():
            return ProviderResult.failure(self.name, ErrorKind.CONFIGURATION_ERROR, "Empty search query")
        return await self._run("search", lambda: self._search(query.strip(), options))

    async def fetch_trending(self, options: FetchOptions | None = None) -> ProviderResult:
        """Fetch the upstream's trending/popular listing."""
        options = options or FetchOptions()
        return await self._run("trending", lambda: self._trending(options))

    async def fetch_by_topics(self, topics: list[Topic], options: FetchOptions | None = None) -> ProviderResult:
        """Fetch content for a set of topics via the provider's native identifiers."""
        options = options or FetchOptions()
        if not topics:
            return ProviderResult.failure(self.name, ErrorKind.CONFIGURATION_ERROR, "No topics requested")
        subjects = self.native_subjects(list(topics))
        return await self._run("topics", lambda: self._fan_out(subjects, options))

    # -- hooks for subclasses --------------------------------------------

    def check_configuration(self) -> str | None:
        """Return a message describing missing configuration, or None when usable."""
        return None

    @abstractmethod
    def native_subjects(self, topics: list[Topic]) -> list[str]:
        """Return the distinct native identifiers to query for ``topics``."""
        raise NotImplementedError

    @abstractmethod
    async def _fetch_subject(self, subject: str, options: FetchOptions) -> list[CanonicalContent]:
        """Fetch and transform one native identifier. Raises ProviderCallError on failure."""
        raise NotImplementedError

    @abstractmethod
    async def _trending(self, options: FetchOptions) -> list[CanonicalContent]:
        raise NotImplementedError

    @abstractmethod
    async def _search(self, query: str, options: FetchOptions) -> list[CanonicalContent]:
        raise NotImplementedError

    def classify_failure(self, status_code: int, payload: Any) -> tuple[ErrorKind, str]:
        """Classify a non-2xx response. Providers override this for API-specific bodies."""
        return classify_status(status_code), f"HTTP {status_code}"

    # -- shared machinery ------------------------------------------------

    async def _run(self, operation: str, call: Callable[[], Awaitable[CallOutcome]]) -> ProviderResult:
        started = time.perf_counter()
        problem = self.check_configuration()
        if problem:
            result = ProviderResult.failure(self.name, ErrorKind.CONFIGURATION_ERROR, problem)
        else:
            try:
                outcome = await call()
            except ProviderCallError as exc:
                result = ProviderResult.failure(self.name, exc.kind, exc.message)
            else:
                if isinstance(outcome, ProviderResult):
                    result = outcome
                else:
                    result = ProviderResult.success(self.name, outcome)

        result = result.with_duration((time.perf_counter() - started) * 1000)
        if result.ok:
            log_event(
                self._logger,
                "Provider fetch complete",
                level=logging.DEBUG,
                event="provider_fetch",
                provider=self.name.value,
                operation=operation,
                count=len(result.items),
                duration_ms=round(result.duration_ms, 1),
            )
        else:
            log_event(
                self._logger,
                f"{self.name.value} {operation} failed: {result.message}",
                level=logging.WARNING,
                event="provider_failed",
                provider=self.name.value,
                operation=operation,
                error=result.error.value if result.error else None,
            )
        return result

    async def _fan_out(self, subjects: list[str], options: FetchOptions) -> ProviderResult:
        # Sequential on purpose: the upstream rate limit applies per provider.
        items: list[CanonicalContent] = []
        failures: list[tuple[str, ProviderCallError]] = []
        succeeded = 0

        for index, subject in enumerate(subjects):
            if index > 0 and self.rate_limit_delay > 0:
                await asyncio.sleep(self.rate_limit_delay)
            try:
                items.extend(await self._fetch_subject(subject, options))
                succeeded += 1
            except ProviderCallError as exc:
                failures.append((subject, exc))

        diagnostic = "; ".join(f"{subject}: {exc.message}" for subject, exc in failures) or None
        if succeeded == 0 and failures:
            return ProviderResult.failure(self.name, failures[0][1].kind, diagnostic)
        return ProviderResult.success(self.name, items, message=diagnostic)

    def _transform_records(
        self,
        records: list[Any],
        keep: Callable[[Any], bool],
        transform: Callable[[Any], CanonicalContent],
    ) -> list[CanonicalContent]:
        """Transform the records ``keep`` accepts, dropping any the transform cannot handle."""
        items: list[CanonicalContent] = []
        for raw in records:
            if not keep(raw):
                continue
            try:
                items.append(transform(raw))
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                log_event(
                    self._logger,
                    f"Skipping malformed {self.name.value} record: {type(exc).__name__}: {exc}",
                    level=logging.DEBUG,
                    event="record_skipped",
                    provider=self.name.value,
                )
        return items

    async def _get_json(
self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``url`` and decode a JSON body, raising ProviderCallError on any failure."""
        fetch_cfg = self._app_cfg.fetch
        headers = {"User-Agent": fetch_cfg.user_agent, "Accept": "application/json"}
        try:
            if self._client is not None:
                resp = await self._client.get(url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(
                    timeout=fetch_cfg.timeout_seconds,
                    follow_redirects=True,
                    trust_env=fetch_cfg.trust_env,
                ) as client:
                    resp = await client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise ProviderCallError(ErrorKind.TIMEOUT, f"TimeoutError: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ProviderCallError(ErrorKind.UPSTREAM_ERROR, f"{type(exc).__name__}: {exc}") from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if not resp.is_success:
            kind, message = self.classify_failure(resp.status_code, payload)
            raise ProviderCallError(kind, message)
        if payload is None:
            content_type = resp.headers.get("content-type", "unknown")
            raise ProviderCallError(
                ErrorKind.MALFORMED_RESPONSE, f"Expected JSON, got {content_type}"
            )
        return payload


def expect_list(payload: Any, *path: str) -> list[Any]:
    """Walk ``path`` through nested dicts and return the list found there.

    Raises:
        ProviderCallError: MalformedResponse when the shape does not match
    """
    node = payload
    for key in path:
        if not isinstance(node, dict) or key not in node:
            raise ProviderCallError(ErrorKind.MALFORMED_RESPONSE, f"Missing '{'.'.join(path)}' in response")
        node = node[key]
    if not isinstance(node, list):
        raise ProviderCallError(ErrorKind.MALFORMED_RESPONSE, f"'{'.'.join(path)}' is not a list")
    return node
