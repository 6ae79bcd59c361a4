"""
Release Value Object

Architectural Intent:
- Immutable description of one published artifact release
- Typed decode of the registry's release document (tag, prerelease flag, assets)
- Falls back to a raw-file URL built from the tag when no matching asset exists
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping

from fleetwright.domain.errors import ParseError
from fleetwright.domain.value_objects.version import Version

RAW_URL_TEMPLATE = "{raw_url}/{repo}/{tag}/{artifact}"


@dataclass(frozen=True)
class Release:
    """
    Value Object for a published release of the artifact.
    """
    version: str
    download_url: str
    is_prerelease: bool = False
    tag: str = ""

    def __post_init__(self) -> None:
        # Raises ParseError for malformed version tags
        Version.parse(self.version)
        if not self.download_url:
            raise ParseError(f"Release {self.version} has no download URL")
        if not self.tag:
            object.__setattr__(self, "tag", f"v{self.version}")

    @property
    def parsed_version(self) -> Version:
        return Version.parse(self.version)

    @staticmethod
    def from_document(
        document: Mapping[str, Any],
        *,
        repo: str,
        artifact_name: str,
        raw_url: str = "https://raw.githubusercontent.com",
    ) -> "Release":
        """
        Decodes a release document of the shape
        {"tag_name": str, "prerelease": bool, "assets": [{"name", "browser_download_url"}]}.
        """
        if not isinstance(document, Mapping):
            raise ParseError("Release document must be an object")

        tag = document.get("tag_name")
        if not isinstance(tag, str) or not tag.strip():
            raise ParseError("Release document has no tag_name")
        tag = tag.strip()

        prerelease = document.get("prerelease", False)
        if not isinstance(prerelease, bool):
            raise ParseError(f"Release {tag}: prerelease must be a boolean")

        assets = document.get("assets") or []
        if not isinstance(assets, list):
            raise ParseError(f"Release {tag}: assets must be a list")

        download_url = ""
        for asset in assets:
            if not isinstance(asset, Mapping):
                continue
            if asset.get("name") == artifact_name:
                url = asset.get("browser_download_url")
                if isinstance(url, str) and url:
                    download_url = url
                    break

        if not download_url:
            download_url = RAW_URL_TEMPLATE.format(
                raw_url=raw_url.rstrip("/"),
                repo=repo,
                tag=tag,
                artifact=artifact_name,
            )

        version = tag[1:] if tag[:1] in ("v", "V") else tag
        return Release(
            version=version,
            download_url=download_url,
            is_prerelease=prerelease,
            tag=tag,
        )
