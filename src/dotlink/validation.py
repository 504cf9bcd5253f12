"""Path validation for link manifests."""

from pathlib import Path


class ValidationError(Exception):
    """Raised when path validation fails."""
    pass


def validate_source(src: str) -> None:
    """Validate a source path from the manifest.

    Args:
        src: Source path, relative to the repository root

    Raises:
        ValidationError: If path is invalid
    """
    if not src:
        raise ValidationError("Source cannot be empty")

    if src.startswith("/") or src.startswith("~"):
        raise ValidationError(f"Source must be relative to the repository: {src}")

    # Check for .. segments
    parts = src.replace("\\", "/").split("/")
    if ".." in parts:
        raise ValidationError(f"Path cannot contain '..': {src}")


def validate_destination(dst: str) -> None:
    """Validate a destination path from the manifest.

    Args:
        dst: Destination path, absolute or starting with '~'

    Raises:
        ValidationError: If path is invalid
    """
    if not dst:
        raise ValidationError("Destination cannot be empty")

    if not (dst.startswith("/") or dst == "~" or dst.startswith("~/")):
        raise ValidationError(f"Destination must be absolute or start with '~/': {dst}")

    parts = dst.replace("\\", "/").split("/")
    if ".." in parts:
        raise ValidationError(f"Path cannot contain '..': {dst}")


def validate_links(links: list[tuple[Path, Path]], root: Path) -> None:
    """Validate resolved links for existence and conflicts.

    Args:
        links: List of (source, destination) absolute path pairs
        root: Repository root

    Raises:
        ValidationError: If any validation fails
    """
    destinations = set()

    for source, destination in links:
        if not source.exists() and not source.is_symlink():
            raise ValidationError(f"Source not found in repository: {source}")

        if destination == root or root in destination.parents:
            raise ValidationError(f"Destination cannot be inside the repository: {destination}")

        # Check for duplicate destinations
        if destination in destinations:
            raise ValidationError(f"Duplicate destination: {destination}")
        destinations.add(destination)
