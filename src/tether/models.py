"""
Pydantic models for everything a snapshot carries between machines.

Every list that leaves an adapter is value-typed: sorted by name,
deduplicated, and never shared with the adapter that produced it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SCHEMA_VERSION = 1


class ManagerKey(str, Enum):
    """Canonical tag for one package manager inventory."""

    BREW_FORMULAE = "brew_formulae"
    BREW_CASKS = "brew_casks"
    BREW_TAPS = "brew_taps"
    NPM = "npm"
    PNPM = "pnpm"
    BUN = "bun"
    GEM = "gem"
    UV = "uv"
    WINGET = "winget"

    @property
    def label(self) -> str:
        """Human label shown in tables and logs."""
        return _MANAGER_LABELS[self]


_MANAGER_LABELS = {
    ManagerKey.BREW_FORMULAE: "Homebrew formulae",
    ManagerKey.BREW_CASKS: "Homebrew casks",
    ManagerKey.BREW_TAPS: "Homebrew taps",
    ManagerKey.NPM: "npm",
    ManagerKey.PNPM: "pnpm",
    ManagerKey.BUN: "bun",
    ManagerKey.GEM: "RubyGems",
    ManagerKey.UV: "uv tools",
    ManagerKey.WINGET: "winget",
}


class PackageInfo(BaseModel):
    """One installed package. Reconciliation compares by name only."""

    name: str
    version: Optional[str] = None

    def spec(self, separator: str = "@") -> str:
        """Render as an install spec, e.g. ``ts-node@10.9.2``."""
        if self.version:
            return f"{self.name}{separator}{self.version}"
        return self.name


def normalize_packages(packages: list[PackageInfo]) -> list[PackageInfo]:
    """Drop duplicate names (first wins) and sort ascending by name."""
    seen: dict[str, PackageInfo] = {}
    for pkg in packages:
        if pkg.name not in seen:
            seen[pkg.name] = pkg
    return [seen[name] for name in sorted(seen)]


class SecretType(str, Enum):
    """Kinds of secret the scanner recognises."""

    AWS_ACCESS_KEY = "AwsAccessKey"
    AWS_SECRET_KEY = "AwsSecretKey"
    GITHUB_TOKEN = "GitHubToken"
    GITHUB_PAT = "GitHubPat"
    API_KEY = "ApiKey"
    PRIVATE_KEY = "PrivateKey"
    PASSWORD = "Password"
    DATABASE_URL = "DatabaseUrl"
    BEARER_TOKEN = "BearerToken"
    HIGH_ENTROPY = "HighEntropy"

    @property
    def description(self) -> str:
        return _SECRET_DESCRIPTIONS[self]


_SECRET_DESCRIPTIONS = {
    SecretType.AWS_ACCESS_KEY: "AWS Access Key",
    SecretType.AWS_SECRET_KEY: "AWS Secret Key",
    SecretType.GITHUB_TOKEN: "GitHub Token",
    SecretType.GITHUB_PAT: "GitHub Personal Access Token",
    SecretType.API_KEY: "API Key",
    SecretType.PRIVATE_KEY: "Private Key",
    SecretType.PASSWORD: "Password",
    SecretType.DATABASE_URL: "Database URL with credentials",
    SecretType.BEARER_TOKEN: "Bearer Token",
    SecretType.HIGH_ENTROPY: "High-entropy string (possible secret)",
}


class SecretFinding(BaseModel):
    """A single scanner hit. ``context`` is already redacted."""

    line_number: int = Field(ge=1)
    secret_type: SecretType
    context: str


class DotfileEntry(BaseModel):
    """A file captured relative to the user's home directory."""

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    relative_path: str
    content: bytes
    mode: Optional[int] = None

    @field_validator("relative_path")
    @classmethod
    def _relative_only(cls, value: str) -> str:
        if not value or value.startswith("/"):
            raise ValueError(f"relative_path must be home-relative: {value!r}")
        if any(part == ".." for part in value.split("/")):
            raise ValueError(f"relative_path may not contain '..': {value!r}")
        return value


class SkippedRef(BaseModel):
    """Placeholder for a file left out of the snapshot."""

    relative_path: str
    reason: str = "secrets"
    findings: list[SecretFinding] = Field(default_factory=list)


class MachineSnapshot(BaseModel):
    """Complete capture of one machine's environment.

    Unknown top-level fields are ignored on decode and missing ones fall
    back to their defaults, so older and newer writers interoperate.
    """

    model_config = ConfigDict(extra="ignore")

    schema_version: int = SCHEMA_VERSION
    machine_id: str = Field(min_length=1)
    hostname: str = ""
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    dotfiles: list[DotfileEntry] = Field(default_factory=list)
    discovered_dirs: list[str] = Field(default_factory=list)
    packages: dict[ManagerKey, list[PackageInfo]] = Field(default_factory=dict)
    skipped: list[SkippedRef] = Field(default_factory=list)
    failed_managers: dict[ManagerKey, str] = Field(default_factory=dict)

    @field_validator("packages")
    @classmethod
    def _normalize_inventory(
        cls, value: dict[ManagerKey, list[PackageInfo]]
    ) -> dict[ManagerKey, list[PackageInfo]]:
        return {key: normalize_packages(pkgs) for key, pkgs in value.items()}

    @field_validator("dotfiles")
    @classmethod
    def _unique_paths(cls, value: list[DotfileEntry]) -> list[DotfileEntry]:
        seen = set()
        for entry in value:
            if entry.relative_path in seen:
                raise ValueError(f"duplicate dotfile path: {entry.relative_path}")
            seen.add(entry.relative_path)
        return value

    def dotfile(self, relative_path: str) -> Optional[DotfileEntry]:
        """Look up a captured file by its home-relative path."""
        for entry in self.dotfiles:
            if entry.relative_path == relative_path:
                return entry
        return None
