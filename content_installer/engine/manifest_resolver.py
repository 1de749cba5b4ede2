# Path: content_installer/engine/manifest_resolver.py
"""
Manifest Resolver

Finds the download URL inside a package manifest.

Manifests come in many shapes, so each known shape is a small pure rule
returning the URL candidates it can see. Rules run in a fixed order:
the first candidate that looks like an archive wins, otherwise the first
candidate of any kind. Relative URLs are resolved against the manifest URL.

Rule order:
1. top-level download / url
2. manifest.download / manifest.url
3. releases[].download / url / archive
4. packages[].download / url / archive
5. compatibility.download / compatibility.url
6. file.download / file.url / file.href
"""

import json
from typing import Any, Callable, Iterable
from urllib.parse import urljoin, urlparse

from content_installer.core.logger import get_logger
from content_installer.core.exceptions import ManifestResolutionError
from content_installer.engine.extraction.archive_handler import is_archive_name
from content_installer.constants import LOG_PROCESS, LOG_OUTPUT

logger = get_logger(__name__, 'engine')

ManifestRule = Callable[[dict], list]


def _strings(mapping: Any, *keys: str) -> list[str]:
    if not isinstance(mapping, dict):
        return []
    values = (mapping.get(key) for key in keys)
    return [value.strip() for value in values if isinstance(value, str) and value.strip()]


def _mappings(value: Any) -> Iterable[dict]:
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    return []


def top_level_rule(manifest: dict) -> list[str]:
    return _strings(manifest, 'download', 'url')


def nested_manifest_rule(manifest: dict) -> list[str]:
    return _strings(manifest.get('manifest'), 'download', 'url')


def releases_rule(manifest: dict) -> list[str]:
    return [url for item in _mappings(manifest.get('releases'))
            for url in _strings(item, 'download', 'url', 'archive')]


def packages_rule(manifest: dict) -> list[str]:
    return [url for item in _mappings(manifest.get('packages'))
            for url in _strings(item, 'download', 'url', 'archive')]


def compatibility_rule(manifest: dict) -> list[str]:
    return [url for item in _mappings(manifest.get('compatibility'))
            for url in _strings(item, 'download', 'url')]


def file_rule(manifest: dict) -> list[str]:
    return _strings(manifest.get('file'), 'download', 'url', 'href')


MANIFEST_RULES: tuple = (
    top_level_rule,
    nested_manifest_rule,
    releases_rule,
    packages_rule,
    compatibility_rule,
    file_rule,
)


def looks_like_archive(url: str) -> bool:
    """Archive suffix on the URL path (query and fragment ignored)."""
    return is_archive_name(urlparse(url).path)


class ManifestResolver:
    """
    Ordered-rule manifest probe.

    Example:
        resolver = ManifestResolver()
        manifest = resolver.parse(body_bytes)
        url = resolver.resolve(manifest, base_url='https://example.com/pkg/manifest.json')
    """

    def __init__(self, rules: Iterable[ManifestRule] = MANIFEST_RULES):
        self.rules = tuple(rules)

    def parse(self, body: bytes) -> dict:
        """
        Decode a manifest document.

        Raises:
            ManifestResolutionError: Not JSON, or not a JSON object
        """
        try:
            manifest = json.loads(body.decode('utf-8-sig'))
        except (UnicodeDecodeError, ValueError) as e:
            raise ManifestResolutionError(f"Manifest is not valid JSON: {e}")

        if not isinstance(manifest, dict):
            raise ManifestResolutionError("Manifest is not a JSON object")

        return manifest

    def candidates(self, manifest: dict) -> list[str]:
        """All URL candidates in rule order."""
        found = []
        for rule in self.rules:
            found.extend(rule(manifest))
        return found

    def resolve(self, manifest: dict, base_url: str = '') -> str:
        """
        Pick the download URL.

        Args:
            manifest: Parsed manifest
            base_url: Manifest URL used to resolve relative candidates

        Returns:
            Absolute download URL

        Raises:
            ManifestResolutionError: No candidate in any known shape
        """
        candidates = self.candidates(manifest)
        logger.debug(f"{LOG_PROCESS} Manifest candidates: {candidates}")

        if not candidates:
            raise ManifestResolutionError(
                "No download URL found in manifest (looked at download/url, manifest, "
                "releases[], packages[], compatibility, file)"
            )

        chosen = next((url for url in candidates if looks_like_archive(url)), candidates[0])
        resolved = urljoin(base_url, chosen) if base_url else chosen

        logger.info(f"{LOG_OUTPUT} Manifest download URL: {resolved}")
        return resolved


__all__ = [
    'ManifestResolver',
    'MANIFEST_RULES',
    'looks_like_archive',
    'top_level_rule',
    'nested_manifest_rule',
    'releases_rule',
    'packages_rule',
    'compatibility_rule',
    'file_rule',
]
