"""Tests for the package manager adapters."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from tether.errors import ParseFailed, ProcessFailed, UnsupportedOperation
from tether.models import ManagerKey, PackageInfo
from tether.packages import ADAPTERS, create_manager, is_safe_package_name, parse_manifest
from tether.packages.brew import BrewFormulaeManager, BrewTapsManager, normalize_formula_name
from tether.packages.bun import BunManager, parse_bun_list, parse_package_version
from tether.packages.gem import GemManager, parse_gem_dependents, parse_gem_list
from tether.packages.npm import NpmManager, PnpmManager
from tether.packages.uv import parse_uv_tool_list
from tether.packages.winget import WingetManager, parse_winget_list, slice_by_display_col
from tether.process import ProcessResult


def _fake_run(outputs: dict[tuple[str, ...], ProcessResult], calls: list | None = None):
    """Build a stand-in for process.run keyed on argv."""

    async def _run(program, args=(), timeout=60.0, **kwargs):
        argv = tuple(args)
        if calls is not None:
            calls.append((program, argv))
        if argv in outputs:
            return outputs[argv]
        return ProcessResult(program=program, args=list(argv))

    return AsyncMock(side_effect=_run)


def _ok(stdout: str = "") -> ProcessResult:
    return ProcessResult(program="x", args=[], stdout=stdout.encode())


def _err(stderr: str, stdout: str = "") -> ProcessResult:
    return ProcessResult(
        program="x", args=[], stdout=stdout.encode(), stderr=stderr.encode(), exit_code=1
    )


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


class TestBunParsing:
    """Tests for the bun tree parser."""

    def test_tree_output(self) -> None:
        """Scoped and plain packages come out sorted with versions."""
        output = (
            "/home/u/.bun/install/global node_modules (2)\n"
            "├── @google/gemini-cli@0.18.4\n"
            "└── ts-node@10.9.2\n"
        )
        assert parse_bun_list(output) == [
            PackageInfo(name="@google/gemini-cli", version="0.18.4"),
            PackageInfo(name="ts-node", version="10.9.2"),
        ]

    def test_scoped_name_without_version(self) -> None:
        """A bare scoped name is not split at its leading @."""
        assert parse_package_version("@org/tool") == ("@org/tool", None)

    def test_trailing_at_is_flagged(self, caplog: pytest.LogCaptureFixture) -> None:
        """A trailing @ keeps the name and logs a warning."""
        with caplog.at_level("WARNING", logger="tether.packages.bun"):
            result = parse_bun_list("└── weird@\n")
        assert result == [PackageInfo(name="weird", version=None)]
        assert "Ambiguous" in caplog.text

    def test_empty_output(self) -> None:
        """No lines, no packages."""
        assert parse_bun_list("") == []


class TestGemParsing:
    """Tests for gem list and dependency parsing."""

    def test_local_gems_header_skipped(self) -> None:
        """The LOCAL GEMS banner is not a package."""
        assert parse_gem_list("*** LOCAL GEMS ***\nbundler\nrake\n") == [
            PackageInfo(name="bundler"),
            PackageInfo(name="rake"),
        ]

    def test_dependents_from_used_by_block(self) -> None:
        """Only names under 'Used by' are reported, versions stripped."""
        output = (
            "Gem rake-13.0.6\n"
            "  Used by\n"
            "    rails-7.1.0 (rake >= 12.2)\n"
            "    rspec-core-3.12.0 (rake >= 0)\n"
            "\n"
            "Gem other-1.0\n"
        )
        assert parse_gem_dependents(output) == ["rails", "rspec-core"]


class TestUvParsing:
    """Tests for uv tool list parsing."""

    def test_tools_and_executables(self) -> None:
        """Executable lines under a tool are ignored."""
        output = "black v24.4.2\n- black\n- blackd\nruff v0.6.0\n- ruff\n"
        assert parse_uv_tool_list(output) == [
            PackageInfo(name="black", version="24.4.2"),
            PackageInfo(name="ruff", version="0.6.0"),
        ]


class TestWingetParsing:
    """Tests for the fixed-width winget table."""

    TABLE = (
        "Name                 Id                         Version\n"
        "-------------------------------------------------------\n"
        "Git                  Git.Git                    2.45.1\n"
        "微信                 Tencent.WeChat             3.9.10\n"
    )

    def test_ids_and_versions(self) -> None:
        """Ids come from the Id column, versions from the next one."""
        assert parse_winget_list(self.TABLE) == [
            PackageInfo(name="Git.Git", version="2.45.1"),
            PackageInfo(name="Tencent.WeChat", version="3.9.10"),
        ]

    def test_wide_characters_count_double(self) -> None:
        """East Asian wide characters occupy two display columns."""
        assert slice_by_display_col("微信ab", 4) == "ab"
        assert slice_by_display_col("微信ab", 0, 2) == "微"

    def test_no_header(self) -> None:
        """Output without a header yields nothing."""
        assert parse_winget_list("No installed package found.\n") == []


class TestJsonParsing:
    """Tests for npm and pnpm JSON listings."""

    def test_npm_skips_itself(self) -> None:
        """npm's own entry is not part of the inventory."""
        output = json.dumps(
            {"dependencies": {"npm": {"version": "10.0.0"}, "typescript": {"version": "5.4.5"}}}
        )
        assert NpmManager().parse_list(output) == [PackageInfo(name="typescript", version="5.4.5")]

    def test_npm_garbage(self) -> None:
        """Invalid JSON raises ParseFailed."""
        with pytest.raises(ParseFailed):
            NpmManager().parse_list("{not json")

    def test_pnpm_project_shape(self) -> None:
        """pnpm's [{dependencies: {...}}] output is flattened."""
        output = json.dumps([{"dependencies": {"pnpm": {"version": "9"}, "tsx": {"version": "4.7.0"}}}])
        assert PnpmManager().parse_list(output) == [PackageInfo(name="tsx", version="4.7.0")]

    def test_pnpm_flat_shape(self) -> None:
        """pnpm's [{name, version}] output is accepted too."""
        output = json.dumps([{"name": "tsx", "version": "4.7.0"}])
        assert PnpmManager().parse_list(output) == [PackageInfo(name="tsx", version="4.7.0")]


class TestBrewNames:
    """Tests for Homebrew name handling."""

    def test_tap_prefix_stripped(self) -> None:
        """Tap-qualified formulae compare by their short name."""
        assert normalize_formula_name("oven-sh/bun/bun") == "bun"
        assert BrewFormulaeManager().name_key("oven-sh/bun/bun") == "bun"


class TestManifestHelpers:
    """Tests for manifest parsing and name validation."""

    def test_comments_and_blanks_dropped(self) -> None:
        """Only real names survive."""
        assert parse_manifest("# tools\ngit\n\n  ripgrep  \n") == ["git", "ripgrep"]

    @pytest.mark.parametrize("name", ["git", "@org/pkg", "python@3.12", "Git.Git"])
    def test_safe_names(self, name: str) -> None:
        """Ordinary package names are accepted."""
        assert is_safe_package_name(name)

    @pytest.mark.parametrize("name", ["", "rm -rf /", "a;b", "$(id)", "x" * 215, "-flag"])
    def test_unsafe_names(self, name: str) -> None:
        """Whitespace, metacharacters and overlong names are rejected."""
        assert not is_safe_package_name(name)


# ---------------------------------------------------------------------------
# Shared adapter flow
# ---------------------------------------------------------------------------


class TestAdapterFlow:
    """Tests for the PackageManager capability set over a mocked runner."""

    @pytest.mark.asyncio
    async def test_list_installed_sorted_and_unique(self) -> None:
        """Listing output is deduplicated and sorted by name."""
        runner = _fake_run({("list", "--local", "--no-versions"): _ok("rake\nbundler\nrake\n")})
        with patch("tether.packages.manager.run", runner):
            packages = await GemManager().list_installed()
        assert [p.name for p in packages] == ["bundler", "rake"]

    @pytest.mark.asyncio
    async def test_install_is_idempotent(self) -> None:
        """Installing an already-installed package runs nothing."""
        calls: list = []
        runner = _fake_run({("tool", "list"): _ok("ruff v0.6.0\n")}, calls)
        with patch("tether.packages.manager.run", runner):
            ran = await create_manager(ManagerKey.UV).install(PackageInfo(name="ruff"))
        assert ran is False
        assert calls == [("uv", ("tool", "list"))]

    @pytest.mark.asyncio
    async def test_install_failure_raises(self) -> None:
        """A failing install surfaces ProcessFailed."""
        runner = _fake_run({
            ("tool", "list"): _ok(""),
            ("tool", "install", "nope"): _err("not found"),
        })
        with patch("tether.packages.manager.run", runner):
            with pytest.raises(ProcessFailed):
                await create_manager(ManagerKey.UV).install(PackageInfo(name="nope"))

    @pytest.mark.asyncio
    async def test_uninstall_absent_is_not_error(self) -> None:
        """Removing something that is not installed returns False."""
        runner = _fake_run({("list", "--local", "--no-versions"): _ok("rake\n")})
        with patch("tether.packages.manager.run", runner):
            assert await GemManager().uninstall("bundler") is False

    @pytest.mark.asyncio
    async def test_unsupported_capability(self) -> None:
        """Taps have no upgrade command."""
        with pytest.raises(UnsupportedOperation):
            await BrewTapsManager().update_all()

    @pytest.mark.asyncio
    async def test_import_manifest_continues_past_failures(self) -> None:
        """One failing package does not stop the others."""
        calls: list = []
        runner = _fake_run(
            {
                ("list", "--formula"): _ok("git\n"),
                ("install", "broken"): _err("No available formula"),
            },
            calls,
        )
        with patch("tether.packages.manager.run", runner):
            result = await BrewFormulaeManager().import_manifest("git\nbroken\nripgrep\nbad name\n")
        assert result.present == ["git"]
        assert result.installed == ["ripgrep"]
        assert list(result.failed) == ["broken"]
        assert result.invalid == ["bad name"]
        assert ("brew", ("install", "ripgrep")) in calls

    @pytest.mark.asyncio
    async def test_export_and_hash(self) -> None:
        """The manifest is newline-joined names; the hash tracks it."""
        runner = _fake_run({("tool", "list"): _ok("ruff v0.6.0\nblack v24.4.2\n")})
        with patch("tether.packages.manager.run", runner):
            manager = create_manager(ManagerKey.UV)
            assert await manager.export_manifest() == "black\nruff"
            digest = await manager.manifest_hash()
        assert len(digest) == 64

    @pytest.mark.asyncio
    async def test_dependents_empty_on_failure(self) -> None:
        """A failing dependents query yields an empty list."""
        runner = _fake_run({("dependency", "-R", "rake"): _err("boom")})
        with patch("tether.packages.manager.run", runner):
            assert await GemManager().get_dependents("rake") == []

    @pytest.mark.asyncio
    async def test_bun_without_global_manifest(self) -> None:
        """bun with no global installs yet lists nothing."""
        runner = _fake_run({("pm", "ls", "-g"): _err("error: No package.json was found")})
        with patch("tether.packages.manager.run", runner):
            assert await BunManager().list_installed() == []

    @pytest.mark.asyncio
    async def test_npm_tolerates_nonzero_with_json(self) -> None:
        """npm's exit 1 with valid JSON still lists packages."""
        body = json.dumps({"dependencies": {"typescript": {"version": "5.4.5"}}})
        runner = _fake_run({("ls", "-g", "--depth=0", "--json"): _err("extraneous", stdout=body)})
        with patch("tether.packages.manager.run", runner):
            packages = await NpmManager().list_installed()
        assert [p.name for p in packages] == ["typescript"]

    def test_winget_install_args(self) -> None:
        """winget installs by exact id and accepts agreements."""
        args = WingetManager().install_args(PackageInfo(name="Git.Git", version="2.45.1"))
        assert args[:3] == ["install", "--id", "Git.Git"]
        assert "--accept-package-agreements" in args
        assert args[-2:] == ["--version", "2.45.1"]

    def test_is_available_uses_path(self) -> None:
        """Availability is a PATH lookup."""
        with patch("tether.packages.manager.resolve_program", return_value=None):
            assert GemManager().is_available() is False
        with patch("tether.packages.manager.resolve_program", return_value="/usr/bin/gem"):
            assert GemManager().is_available() is True


class TestCreateManager:
    """Tests for the adapter factory."""

    def test_every_key_has_an_adapter(self) -> None:
        """The factory covers the whole ManagerKey set."""
        assert set(ADAPTERS) == set(ManagerKey)
        for key in ManagerKey:
            assert create_manager(key).key == key

    def test_timeout_is_passed_through(self) -> None:
        """The per-invocation timeout reaches the adapter."""
        assert create_manager(ManagerKey.NPM, timeout=5).timeout == 5
