"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from devstrap.core.context import UnitContext
from devstrap.core.privilege import Privilege
from devstrap.models.platform import OSFamily, PackageManagerKind, PlatformProfile
from devstrap.models.resolved import ResolvedConfig, SshKeyAction

SAMPLE_PUBLIC_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIBx1Q2example alice@laptop"


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated home directory with XDG variables pointing into it."""
    home_dir = tmp_path / "home" / "alice"
    home_dir.mkdir(parents=True)
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("USER", "alice")
    for var in ("XDG_CONFIG_HOME", "XDG_DATA_HOME", "XDG_STATE_HOME", "XDG_CACHE_HOME"):
        monkeypatch.delenv(var, raising=False)
    return home_dir


@pytest.fixture
def ubuntu_profile() -> PlatformProfile:
    """Ubuntu host with apt."""
    return PlatformProfile(
        family=OSFamily.UBUNTU,
        package_manager=PackageManagerKind.APT,
        architecture="x86_64",
        version_id="24.04",
    )


@pytest.fixture
def alpine_profile() -> PlatformProfile:
    """Alpine host with apk."""
    return PlatformProfile(
        family=OSFamily.ALPINE,
        package_manager=PackageManagerKind.APK,
        architecture="aarch64",
        version_id="3.20.1",
    )


@pytest.fixture
def bare_profile() -> PlatformProfile:
    """Linux host without any supported package manager."""
    return PlatformProfile(
        family=OSFamily.UNKNOWN,
        package_manager=PackageManagerKind.NONE,
        architecture="x86_64",
    )


@pytest.fixture
def resolved_config() -> ResolvedConfig:
    """Non-interactive configuration registering one public key."""
    return ResolvedConfig(
        prompt_for_confirmation=False,
        ssh_user="alice",
        server_name="devbox",
        ssh_key_action=SshKeyAction.ADD,
        ssh_public_keys=(SAMPLE_PUBLIC_KEY,),
    )


@pytest.fixture
def make_context(
    home: Path, ubuntu_profile: PlatformProfile, resolved_config: ResolvedConfig
) -> Callable[..., UnitContext]:
    """Factory for unit contexts rooted at the isolated home directory."""

    def factory(**overrides: Any) -> UnitContext:
        values: dict[str, Any] = {
            "config": resolved_config,
            "profile": ubuntu_profile,
            "home": home,
            "privilege": Privilege(prefix=("sudo", "-n")),
            "user": "alice",
        }
        values.update(overrides)
        return UnitContext(**values)

    return factory
