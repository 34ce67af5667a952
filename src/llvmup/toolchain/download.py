from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

import httpx
import structlog

from llvmup.directories import Directories
from llvmup.errors import AssetUrlMissingFileSegmentError, ChecksumMismatchError, DownloadError
from llvmup.toolchain.toolchain import AssetBundle, ComponentAsset, ToolchainInstallOptions
from llvmup.utils import human_bytes
from llvmup.verification import Checksums, parse_sha512_checksums, verify_digest, verify_file

log = structlog.get_logger("llvmup.download")

DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True, slots=True)
class DownloadedAsset:
    asset: ComponentAsset
    path: Path


def asset_file_name(url: str) -> str:
    name = urlsplit(url).path.rsplit("/", 1)[-1]
    if not name:
        raise AssetUrlMissingFileSegmentError(url)
    return name


def new_client() -> httpx.Client:
    return httpx.Client(timeout=DEFAULT_TIMEOUT, follow_redirects=True)


def fetch_to_path(client: httpx.Client, url: str, path: Path, expected: str | None = None) -> int:
    """Stream ``url`` into ``path``, hashing on the fly when a digest is expected."""
    path.parent.mkdir(parents=True, exist_ok=True)
    partial = path.with_name(path.name + ".part")
    hasher = hashlib.sha512()
    total = 0
    try:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            content_length = response.headers.get("content-length")
            if content_length is not None:
                log.debug("asset.content_length", asset=path.name, size=human_bytes(int(content_length)))
            with partial.open("wb") as handle:
                for chunk in response.iter_bytes():
                    if expected is not None:
                        hasher.update(chunk)
                    handle.write(chunk)
                    total += len(chunk)
    except (httpx.HTTPError, OSError) as exc:
        if partial.is_file():
            partial.unlink()
        raise DownloadError(url, str(exc)) from exc

    log.info("asset.download", asset=path.name, size=human_bytes(total))
    if expected is not None:
        try:
            verify_digest(path.name, expected, hasher.hexdigest())
        except ChecksumMismatchError:
            partial.unlink(missing_ok=True)
            raise
        log.info("asset.verified", asset=path.name)
    partial.replace(path)
    return total


def download_checksums(client: httpx.Client, directories: Directories, url: str) -> Path:
    path = directories.downloads / asset_file_name(url)
    if path.exists():
        log.warning("asset.skipping", asset=path.name, size=human_bytes(path.stat().st_size))
        return path
    fetch_to_path(client, url, path)
    return path


def download_asset(
    client: httpx.Client,
    directories: Directories,
    asset: ComponentAsset,
    checksums: Checksums,
    options: ToolchainInstallOptions,
) -> DownloadedAsset:
    filename = asset_file_name(asset.url)
    path = directories.downloads / filename
    verify = options.checksum is not False

    if options.download is False or (options.download is None and path.exists()):
        # the file is kept but still verified
        if path.exists():
            log.warning("asset.skipping", asset=filename, size=human_bytes(path.stat().st_size))
        if verify and path.exists() and verify_file(checksums, path):
            log.info("asset.verified", asset=filename)
        return DownloadedAsset(asset, path)

    expected = checksums.get(filename) if verify else None
    fetch_to_path(client, asset.url, path, expected)
    return DownloadedAsset(asset, path)


def download_bundle(
    bundle: AssetBundle,
    directories: Directories,
    options: ToolchainInstallOptions,
    client: httpx.Client | None = None,
) -> list[DownloadedAsset]:
    directories.ensure()
    owns_client = client is None
    active = client if client is not None else new_client()
    try:
        checksums: Checksums = {}
        if options.checksum is not False:
            checksums_path = download_checksums(active, directories, bundle.checksums_url)
            checksums = parse_sha512_checksums(checksums_path.read_text(encoding="utf-8"))
        return [download_asset(active, directories, asset, checksums, options) for asset in bundle.assets]
    finally:
        if owns_client:
            active.close()
