"""HTTP client for the NuGet v3 flat-container API."""

from __future__ import annotations

import logging
import tempfile
import time
from typing import Any, BinaryIO, Sequence

import requests
from requests import RequestException, Response

from .errors import PackageNotFoundError, PackageRetrievalError
from .types import PackageReference, SourceConfig
from .versions import latest_version, version_key

logger = logging.getLogger(__name__)

_SPOOL_MAX_BYTES = 16 * 1024 * 1024
_RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


class NuGetPackageSource:
    """Resolve versions and download ``.nupkg`` archives from a NuGet feed."""

    def __init__(
        self,
        config: SourceConfig | None = None,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config or SourceConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = self.config.user_agent

    def list_versions(self, package_id: str) -> list[str]:
        lowered = _lower_id(package_id)
        resp = self._request("GET", f"/{lowered}/index.json", not_found=(package_id, None))
        try:
            payload = resp.json()
        except ValueError as exc:
            raise PackageRetrievalError(f"invalid version index for '{package_id}': {exc}") from exc
        versions = payload.get("versions") if isinstance(payload, dict) else None
        if not isinstance(versions, list):
            raise PackageRetrievalError(f"version index for '{package_id}' has no 'versions' list")
        return sorted((str(v) for v in versions), key=version_key)

    def resolve_latest_version(self, package_id: str) -> str:
        versions = self.list_versions(package_id)
        latest = latest_version(versions, include_prerelease=self.config.include_prerelease)
        if latest is None:
            raise PackageNotFoundError(package_id)
        logger.debug("resolved %s latest=%s (of %s versions)", package_id, latest, len(versions))
        return latest

    def fetch_archive(self, package_id: str, version: str) -> BinaryIO:
        ref = PackageReference(package_id=package_id, version=version)
        path = f"/{_lower_id(package_id)}/{version.strip().lower()}/{ref.file_name}"
        logger.info("Downloading %s", ref)
        resp = self._request("GET", path, not_found=(package_id, version), stream=True)
        buffer = tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX_BYTES)
        try:
            with resp:
                for chunk in resp.iter_content(chunk_size=1024 * 1024):
                    if chunk:
                        buffer.write(chunk)
        except RequestException as exc:
            buffer.close()
            raise PackageRetrievalError(f"download of {ref} failed: {exc}") from exc
        buffer.seek(0)
        return buffer  # type: ignore[return-value]

    def _request(
        self,
        method: str,
        path: str,
        *,
        not_found: tuple[str, str | None],
        ok_statuses: Sequence[int] = tuple(range(200, 300)),
        **kwargs: Any,
    ) -> Response:
        url = f"{self.base_url}{path}"
        timeout = max(float(self.config.timeout_seconds), 1.0)
        retries = max(int(self.config.max_retries), 1)
        backoff = max(float(self.config.backoff_seconds), 0.0)

        for attempt in range(1, retries + 1):
            logger.debug("%s %s attempt=%s/%s", method, url, attempt, retries)
            try:
                resp = self.session.request(method, url, timeout=timeout, **kwargs)
            except RequestException as exc:
                if attempt >= retries:
                    raise PackageRetrievalError(f"{method} {url} failed: {exc}") from exc
            else:
                if resp.status_code == 404:
                    resp.close()
                    raise PackageNotFoundError(*not_found)
                if resp.status_code in ok_statuses:
                    return resp
                if resp.status_code not in _RETRY_STATUSES or attempt >= retries:
                    detail = "" if kwargs.get("stream") else resp.text.strip()
                    resp.close()
                    raise PackageRetrievalError(_format_failure(method, url, resp.status_code, detail))
                resp.close()
            time.sleep(min(backoff * attempt, 2.0))
        raise PackageRetrievalError(f"{method} {url} failed after retries")


def _lower_id(package_id: str) -> str:
    value = (package_id or "").strip()
    if not value:
        raise ValueError("package id must not be empty")
    return value.lower()


def _format_failure(method: str, url: str, code: int, detail: str) -> str:
    if detail:
        return f"{method} {url} returned {code}: {detail}"
    return f"{method} {url} returned {code}"
