"""
Blueprint Loader — Populate the local provider from a directory or URL.

Directory sources hold one JSON blueprint per file. URL sources return a
single blueprint object or an array of them.

INVARIANT: Invalid entries are skipped, never partially loaded.
INVARIANT: A source that had entries but yields zero valid blueprints fails.
"""

import json
import logging
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx
from pydantic import ValidationError as PydanticValidationError

from hapkit.models.failure import BlueprintLoadError
from hapkit.models.protocol import InquiryBlueprint

logger = logging.getLogger(__name__)

DEFAULT_URL_TIMEOUT_SECONDS = 30.0


def is_url(source: str) -> bool:
    """Return True if source is an http(s) URL rather than a path."""
    parsed = urlparse(source)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def load_blueprint_file(path: Path) -> InquiryBlueprint:
    """
    Load and validate one blueprint file.

    Raises:
        BlueprintLoadError: If the file can't be read, parsed or validated
    """
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise BlueprintLoadError(f"Failed to read blueprint {path}: {exc}", cause=exc) from exc

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise BlueprintLoadError(
            f"Failed to parse blueprint JSON from {path}: {exc}", cause=exc
        ) from exc

    try:
        return InquiryBlueprint.model_validate(data)
    except PydanticValidationError as exc:
        raise BlueprintLoadError(
            f"Blueprint validation failed for {path}: {exc.error_count()} issue(s)",
            cause=exc,
        ) from exc


def load_blueprints_from_directory(directory: Path) -> list[InquiryBlueprint]:
    """
    Load every *.json blueprint in a directory, in file-name order.

    Non-JSON files are ignored; invalid JSON files are skipped with a warning.

    Raises:
        BlueprintLoadError: If the directory is missing, or no JSON file is valid
    """
    if not directory.exists():
        raise BlueprintLoadError(f"Blueprint directory does not exist: {directory}")
    if not directory.is_dir():
        raise BlueprintLoadError(f"Path is not a directory: {directory}")

    json_files = sorted(p for p in directory.iterdir() if p.suffix == ".json" and p.is_file())
    if not json_files:
        logger.warning("No .json files found in blueprint directory %s", directory)
        return []

    blueprints: list[InquiryBlueprint] = []
    errors: list[str] = []
    for path in json_files:
        try:
            blueprints.append(load_blueprint_file(path))
        except BlueprintLoadError as exc:
            errors.append(f"{path.name}: {exc.message}")
            logger.warning("Skipping invalid blueprint file %s: %s", path.name, exc.message)

    if not blueprints:
        raise BlueprintLoadError(
            f"Failed to load any blueprints from {directory}. Errors:\n" + "\n".join(errors)
        )

    logger.info(
        "Loaded %d blueprints from %s (skipped %d invalid files)",
        len(blueprints),
        directory,
        len(errors),
    )
    return blueprints


async def load_blueprints_from_url(
    url: str,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = DEFAULT_URL_TIMEOUT_SECONDS,
) -> list[InquiryBlueprint]:
    """
    Fetch blueprints with a single GET.

    Raises:
        BlueprintLoadError: On HTTP failure, bad JSON, or zero valid blueprints
    """
    try:
        async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
            response = await client.get(url)
        response.raise_for_status()
        data: Any = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise BlueprintLoadError(f"Failed to load blueprints from {url}: {exc}", cause=exc) from exc

    entries = data if isinstance(data, list) else [data]

    blueprints: list[InquiryBlueprint] = []
    errors: list[str] = []
    for index, entry in enumerate(entries):
        try:
            blueprints.append(InquiryBlueprint.model_validate(entry))
        except PydanticValidationError as exc:
            errors.append(f"Blueprint {index}: {exc.error_count()} issue(s)")

    if not blueprints:
        raise BlueprintLoadError(
            f"Failed to validate any blueprints from {url}. Errors:\n" + "\n".join(errors)
        )

    if errors:
        logger.warning(
            "Loaded %d blueprints from %s (skipped %d invalid)", len(blueprints), url, len(errors)
        )
    else:
        logger.info("Loaded %d blueprints from %s", len(blueprints), url)
    return blueprints


async def load_blueprints(
    source: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[InquiryBlueprint]:
    """Load from a URL or a local directory, depending on the source string."""
    if is_url(source):
        return await load_blueprints_from_url(source, transport=transport)
    return load_blueprints_from_directory(Path(source).resolve())
