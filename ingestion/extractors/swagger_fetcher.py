"""
Fetch the Swagger v2 API document for one Kubernetes release
"""

from pathlib import Path
from typing import Any, Dict, Optional
import asyncio
import json
import logging

import httpx

from core.config import settings
from core.exceptions import SwaggerFetchError, MalformedDocumentError
from ingestion.base import HTTPSource

logger = logging.getLogger(__name__)

SWAGGER_PATH = "api/openapi-spec/swagger.json"
CACHE_FILENAME = "swagger.json"


class SwaggerFetcher(HTTPSource):
    """
    Download {SWAGGER_BASE_URL}/{release}/api/openapi-spec/swagger.json.

    A document without a "definitions" mapping is rejected, never treated as
    an empty catalog. When cache_dir is set, fetched documents are kept on disk
    under {cache_dir}/{release}/swagger.json and reused on later runs.
    """

    error_class = SwaggerFetchError
    fetch_name = "swagger_document"

    def __init__(
        self,
        base_url: Optional[str] = None,
        cache_dir: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(source_name="kubernetes_swagger", **kwargs)
        self.base_url = (base_url or settings.SWAGGER_BASE_URL).rstrip("/")
        cache_dir = cache_dir if cache_dir is not None else settings.SCHEMA_CACHE_DIR
        self.cache_dir = Path(cache_dir) if cache_dir else None

    def document_url(self, release: str) -> str:
        return f"{self.base_url}/{release}/{SWAGGER_PATH}"

    def _cache_path(self, release: str) -> Optional[Path]:
        if self.cache_dir is None:
            return None
        return self.cache_dir / release / CACHE_FILENAME

    @staticmethod
    def validate_document(document: Any, release: str) -> Dict[str, Any]:
        """
        Check that a decoded document carries a definitions mapping.

        Raises:
            MalformedDocumentError: If it does not
        """
        if not isinstance(document, dict):
            raise MalformedDocumentError(
                f"swagger.json for {release} is not a JSON object",
                context={"release": release, "reason": "not_an_object"}
            )

        definitions = document.get("definitions")
        if definitions is None:
            raise MalformedDocumentError(
                f"swagger.json for {release} has no definitions",
                context={"release": release, "reason": "missing_definitions"}
            )
        if not isinstance(definitions, dict):
            raise MalformedDocumentError(
                f"swagger.json for {release} has non-object definitions",
                context={"release": release, "reason": "invalid_definitions"}
            )

        return document

    def _read_cache(self, release: str) -> Optional[Dict[str, Any]]:
        path = self._cache_path(release)
        if path is None or not path.is_file():
            return None
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
            return self.validate_document(document, release)
        except (OSError, ValueError, MalformedDocumentError) as e:
            logger.warning(f"Ignoring unusable cached document {path}: {e}")
            return None

    def _write_cache(self, release: str, body: str):
        path = self._cache_path(release)
        if path is None:
            return
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(body, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not cache swagger.json for {release} at {path}: {e}")

    async def fetch(self, release: str) -> Dict[str, Any]:
        """
        Fetch the raw API document for one release.

        Returns:
            Decoded swagger.json with a definitions mapping

        Raises:
            SwaggerFetchError: Non-success response (or a transport subclass)
            MalformedDocumentError: Body is not JSON or lacks definitions
        """
        cached = await asyncio.to_thread(self._read_cache, release)
        if cached is not None:
            logger.info(
                f"Using cached swagger.json for {release} "
                f"({len(cached['definitions'])} definitions)"
            )
            return cached

        url = self.document_url(release)
        logger.info(f"Fetching swagger.json from {url}")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await self._make_request_with_retry(
                client, url, context={"release": release}
            )

        try:
            document = response.json()
        except ValueError as e:
            raise MalformedDocumentError(
                f"swagger.json for {release} is not valid JSON",
                context={"release": release, "reason": "invalid_json", "url": url},
                original_exception=e
            )

        document = self.validate_document(document, release)
        logger.info(f"Fetched {len(document['definitions'])} definitions for {release}")

        if self.cache_dir is not None:
            await asyncio.to_thread(self._write_cache, release, response.text)

        return document
