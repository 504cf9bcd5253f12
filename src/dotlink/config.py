"""Run settings and link manifest loading."""

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from .validation import ValidationError, validate_destination, validate_links, validate_source

APP_NAME = "dotfiles"
MANIFEST_NAME = ".dotfiles.yaml"
LEDGER_NAME = ".links"

TRUE_VALUES = ("1", "true", "yes", "on")


class ConfigError(Exception):
    """Raised when config is invalid or not found."""
    pass


@dataclass(frozen=True)
class Settings:
    """Immutable configuration for one run.

    Every component receives this explicitly; nothing reads mode flags
    from the process environment after it has been built.
    """

    root: Path
    home: Path
    tmp_dir: Path
    dry_run: bool = False
    verbose: bool = False
    log_path: Path | None = None
    app_name: str = APP_NAME

    @property
    def lock_path(self) -> Path:
        """Directory used as the session mutex."""
        return self.tmp_dir / f"{self.app_name}-bootstrap.lock"

    @property
    def ledger_path(self) -> Path:
        """Ledger of links created from this repository."""
        return self.root / LEDGER_NAME

    @property
    def manifest_path(self) -> Path:
        """Manifest listing the links to deploy."""
        return self.root / MANIFEST_NAME

    def replace(self, **changes: Any) -> "Settings":
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Environment mapping. Defaults to os.environ.

        Returns:
            Settings instance.
        """
        if environ is None:
            environ = os.environ

        home = Path(environ["HOME"]) if environ.get("HOME") else Path.home()
        root = Path(environ.get("DOTFILES_ROOT") or home / ".dotfiles")
        tmp_dir = Path(environ.get("TMPDIR") or "/tmp")

        state_home = Path(environ.get("XDG_STATE_HOME") or home / ".local" / "state")
        log_value = environ.get("DOTFILES_LOG") or str(state_home / "dotfiles" / "dotfiles.log")
        log_path = None if log_value == "none" else Path(log_value)

        return cls(
            root=Path(os.path.normpath(root.expanduser().absolute())),
            home=Path(os.path.normpath(home.absolute())),
            tmp_dir=tmp_dir,
            dry_run=_env_flag(environ, "DRY_RUN"),
            verbose=_env_flag(environ, "VERBOSE"),
            log_path=log_path,
        )


def _env_flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "false").strip().lower() in TRUE_VALUES


def expand_home(path: str, home: Path) -> Path:
    """Expand a leading '~' against the configured home directory.

    Args:
        path: Path that may start with '~'
        home: Home directory to substitute

    Returns:
        Absolute path
    """
    if path == "~":
        return home
    if path.startswith("~/"):
        return home / path[2:]
    return Path(path)


def _read_manifest(settings: Settings) -> dict[str, Any]:
    manifest_path = settings.manifest_path

    if not manifest_path.exists():
        raise ConfigError(f"No {MANIFEST_NAME} found in {settings.root}")

    try:
        with open(manifest_path, encoding="utf-8") as f:
            manifest = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid manifest: {e}")

    if manifest is None:
        raise ConfigError("Invalid manifest: empty file")

    return manifest


def load_manifest(settings: Settings) -> list[tuple[Path, Path]]:
    """Load and validate the link manifest from the repository.

    Args:
        settings: Run settings.

    Returns:
        List of (source, destination) absolute path pairs.

    Raises:
        ConfigError: If the manifest is missing or invalid.
    """
    entries = validate_manifest(_read_manifest(settings))

    links = []
    for entry in entries:
        source = settings.root / str(entry["src"])
        destination = expand_home(str(entry["dst"]), settings.home)
        links.append((source, destination))

    try:
        validate_links(links, settings.root)
    except ValidationError as e:
        raise ConfigError(str(e))

    return links


def load_installers(settings: Settings) -> list[Path]:
    """Load the topic installer scripts listed in the manifest.

    Args:
        settings: Run settings.

    Returns:
        Absolute script paths, in manifest order.

    Raises:
        ConfigError: If the manifest is invalid or a script is missing.
    """
    manifest = _read_manifest(settings)
    validate_manifest(manifest)

    scripts = []
    for entry in manifest.get("installers") or []:
        script = settings.root / entry
        if not script.is_file():
            raise ConfigError(f"Installer not found: {entry}")
        if not os.access(script, os.X_OK):
            raise ConfigError(f"Installer is not executable: {entry}")
        scripts.append(script)
    return scripts


def validate_manifest(manifest: dict[str, Any]) -> list[dict[str, str]]:
    """Validate manifest structure and values.

    Args:
        manifest: Raw manifest dict.

    Returns:
        List of link entries with src/dst keys.

    Raises:
        ConfigError: If manifest is invalid.
    """
    if not isinstance(manifest, dict):
        raise ConfigError("Invalid manifest: expected mapping")

    # Check version
    if "version" not in manifest:
        raise ConfigError("Missing required field: version")

    if manifest["version"] != 1:
        raise ConfigError(f"Unsupported manifest version: {manifest['version']}")

    links = manifest.get("links") or []
    if not isinstance(links, list):
        raise ConfigError("Invalid manifest: links must be a list")

    for i, link in enumerate(links):
        if not isinstance(link, dict):
            raise ConfigError(f"Invalid link at index {i}: expected mapping")

        if "src" not in link:
            raise ConfigError(f"Missing required field: links[{i}].src")

        if "dst" not in link:
            raise ConfigError(f"Missing required field: links[{i}].dst")

        try:
            validate_source(str(link["src"]))
            validate_destination(str(link["dst"]))
        except ValidationError as e:
            raise ConfigError(str(e))

    installers = manifest.get("installers") or []
    if not isinstance(installers, list):
        raise ConfigError("Invalid manifest: installers must be a list")

    for i, script in enumerate(installers):
        if not isinstance(script, str):
            raise ConfigError(f"Invalid installer at index {i}: expected path")
        try:
            validate_source(script)
        except ValidationError as e:
            raise ConfigError(f"installers[{i}]: {e}")

    return links
