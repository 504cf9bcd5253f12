"""Tests for config module."""

from pathlib import Path

import pytest
import yaml

from dotlink.config import ConfigError, Settings, expand_home, load_installers, load_manifest, validate_manifest


class TestSettingsFromEnv:
    """Tests for building settings from the environment."""

    def test_defaults(self, tmp_path):
        """Defaults derive from HOME."""
        settings = Settings.from_env({"HOME": str(tmp_path)})

        assert settings.home == tmp_path
        assert settings.root == tmp_path / ".dotfiles"
        assert settings.tmp_dir == Path("/tmp")
        assert settings.dry_run is False
        assert settings.verbose is False
        assert settings.log_path == tmp_path / ".local" / "state" / "dotfiles" / "dotfiles.log"

    def test_flags(self, tmp_path):
        """DRY_RUN and VERBOSE enable their modes."""
        settings = Settings.from_env({"HOME": str(tmp_path), "DRY_RUN": "true", "VERBOSE": "1"})

        assert settings.dry_run is True
        assert settings.verbose is True

    def test_flag_false_values(self, tmp_path):
        """Anything but a true value leaves the mode off."""
        settings = Settings.from_env({"HOME": str(tmp_path), "DRY_RUN": "false", "VERBOSE": "no"})

        assert settings.dry_run is False
        assert settings.verbose is False

    def test_log_none_disables_logging(self, tmp_path):
        """DOTFILES_LOG=none disables the log file."""
        settings = Settings.from_env({"HOME": str(tmp_path), "DOTFILES_LOG": "none"})
        assert settings.log_path is None

    def test_xdg_state_home(self, tmp_path):
        """Log defaults under XDG_STATE_HOME when set."""
        settings = Settings.from_env({"HOME": str(tmp_path), "XDG_STATE_HOME": str(tmp_path / "state")})
        assert settings.log_path == tmp_path / "state" / "dotfiles" / "dotfiles.log"

    def test_explicit_paths(self, tmp_path):
        """DOTFILES_ROOT and TMPDIR override defaults."""
        settings = Settings.from_env({
            "HOME": str(tmp_path),
            "DOTFILES_ROOT": str(tmp_path / "repo"),
            "TMPDIR": str(tmp_path / "tmp"),
        })

        assert settings.root == tmp_path / "repo"
        assert settings.lock_path == tmp_path / "tmp" / "dotfiles-bootstrap.lock"
        assert settings.ledger_path == tmp_path / "repo" / ".links"

    def test_root_is_normalized(self, tmp_path):
        """Parent segments are collapsed so ledger entries match discovered targets."""
        settings = Settings.from_env({
            "HOME": f"{tmp_path}/home/.",
            "DOTFILES_ROOT": str(tmp_path / "x" / ".." / "repo"),
        })

        assert settings.root == tmp_path / "repo"
        assert str(settings.root) == str(tmp_path / "repo")
        assert str(settings.home) == str(tmp_path / "home")

    def test_settings_are_immutable(self, settings):
        """Settings cannot be mutated; replace returns a copy."""
        with pytest.raises(AttributeError):
            settings.dry_run = True

        preview = settings.replace(dry_run=True)
        assert preview.dry_run is True
        assert settings.dry_run is False


class TestExpandHome:
    """Tests for expand_home."""

    def test_tilde_prefix(self, tmp_path):
        assert expand_home("~/.gitconfig", tmp_path) == tmp_path / ".gitconfig"

    def test_bare_tilde(self, tmp_path):
        assert expand_home("~", tmp_path) == tmp_path

    def test_absolute(self, tmp_path):
        assert expand_home("/etc/hosts", tmp_path) == Path("/etc/hosts")


class TestValidateManifest:
    """Tests for manifest structure validation."""

    def test_valid_manifest(self):
        """Valid manifest returns its links."""
        manifest = {"version": 1, "links": [{"src": "git/gitconfig", "dst": "~/.gitconfig"}]}
        assert validate_manifest(manifest) == manifest["links"]

    def test_missing_version(self):
        """Missing version raises error."""
        with pytest.raises(ConfigError, match="Missing required field: version"):
            validate_manifest({"links": []})

    def test_unsupported_version(self):
        """Unknown version raises error."""
        with pytest.raises(ConfigError, match="Unsupported manifest version"):
            validate_manifest({"version": 2})

    def test_links_not_list(self):
        """Links must be a list."""
        with pytest.raises(ConfigError, match="links must be a list"):
            validate_manifest({"version": 1, "links": {"src": "a"}})

    def test_empty_links(self):
        """Missing or null links means nothing to deploy."""
        assert validate_manifest({"version": 1}) == []
        assert validate_manifest({"version": 1, "links": None}) == []

    def test_missing_dst(self):
        """Each link needs a destination."""
        with pytest.raises(ConfigError, match=r"links\[0\].dst"):
            validate_manifest({"version": 1, "links": [{"src": "a"}]})

    def test_relative_destination_rejected(self):
        """Destinations must be absolute or home-relative."""
        with pytest.raises(ConfigError, match="must be absolute"):
            validate_manifest({"version": 1, "links": [{"src": "a", "dst": ".gitconfig"}]})

    def test_parent_segment_rejected(self):
        """Sources cannot escape the repository."""
        with pytest.raises(ConfigError, match=r"cannot contain '\.\.'"):
            validate_manifest({"version": 1, "links": [{"src": "../a", "dst": "~/.a"}]})


class TestLoadManifest:
    """Tests for loading the manifest file."""

    def _write(self, settings, manifest):
        settings.manifest_path.write_text(yaml.dump(manifest))

    def test_load_resolves_paths(self, settings, home, dotfiles_root):
        """Sources resolve against the repo, destinations against home."""
        self._write(settings, {
            "version": 1,
            "links": [
                {"src": "git/gitconfig", "dst": "~/.gitconfig"},
                {"src": "fish/config.fish", "dst": "~/.config/fish/config.fish"},
            ],
        })

        links = load_manifest(settings)

        assert links == [
            (dotfiles_root / "git" / "gitconfig", home / ".gitconfig"),
            (dotfiles_root / "fish" / "config.fish", home / ".config" / "fish" / "config.fish"),
        ]

    def test_missing_manifest(self, settings):
        """Missing manifest raises error."""
        with pytest.raises(ConfigError, match="No .dotfiles.yaml found"):
            load_manifest(settings)

    def test_empty_manifest(self, settings):
        """Empty file raises error."""
        settings.manifest_path.write_text("")
        with pytest.raises(ConfigError, match="empty file"):
            load_manifest(settings)

    def test_invalid_yaml(self, settings):
        """Malformed YAML raises error."""
        settings.manifest_path.write_text("version: [1\n")
        with pytest.raises(ConfigError, match="Invalid manifest"):
            load_manifest(settings)

    def test_missing_source(self, settings):
        """Sources must exist in the repository."""
        self._write(settings, {"version": 1, "links": [{"src": "nope", "dst": "~/.nope"}]})
        with pytest.raises(ConfigError, match="Source not found"):
            load_manifest(settings)

    def test_duplicate_destination(self, settings):
        """Two links cannot share a destination."""
        self._write(settings, {
            "version": 1,
            "links": [
                {"src": "git/gitconfig", "dst": "~/.gitconfig"},
                {"src": "tmux/tmux.conf", "dst": "~/.gitconfig"},
            ],
        })
        with pytest.raises(ConfigError, match="Duplicate destination"):
            load_manifest(settings)

    def test_destination_inside_repo(self, settings, dotfiles_root):
        """Links cannot point back into the repository."""
        self._write(settings, {
            "version": 1,
            "links": [{"src": "git/gitconfig", "dst": str(dotfiles_root / "gitconfig")}],
        })
        with pytest.raises(ConfigError, match="inside the repository"):
            load_manifest(settings)


class TestLoadInstallers:
    """Tests for installer scripts listed in the manifest."""

    def _script(self, dotfiles_root, name, mode=0o755):
        script = dotfiles_root / name
        script.parent.mkdir(parents=True, exist_ok=True)
        script.write_text("#!/bin/sh\n")
        script.chmod(mode)
        return script

    def test_load_in_order(self, settings, dotfiles_root):
        tmux = self._script(dotfiles_root, "tmux/install.sh")
        fish = self._script(dotfiles_root, "fish/install.sh")
        settings.manifest_path.write_text(yaml.dump({
            "version": 1,
            "installers": ["tmux/install.sh", "fish/install.sh"],
        }))

        assert load_installers(settings) == [tmux, fish]

    def test_none_listed(self, settings):
        settings.manifest_path.write_text(yaml.dump({"version": 1, "links": []}))
        assert load_installers(settings) == []

    def test_missing_script(self, settings):
        settings.manifest_path.write_text(yaml.dump({"version": 1, "installers": ["nope/install.sh"]}))
        with pytest.raises(ConfigError, match="Installer not found"):
            load_installers(settings)

    def test_not_executable(self, settings, dotfiles_root):
        self._script(dotfiles_root, "tmux/install.sh", mode=0o644)
        settings.manifest_path.write_text(yaml.dump({"version": 1, "installers": ["tmux/install.sh"]}))
        with pytest.raises(ConfigError, match="not executable"):
            load_installers(settings)

    def test_installers_not_list(self):
        with pytest.raises(ConfigError, match="installers must be a list"):
            validate_manifest({"version": 1, "installers": "tmux/install.sh"})

    def test_installer_outside_repo(self):
        with pytest.raises(ConfigError, match=r"installers\[0\]"):
            validate_manifest({"version": 1, "installers": ["../evil.sh"]})
