"""
End-to-end runs through ``provision()`` against a fake host.

Every run here uses a ``FakeRunner`` and a system root under
``tmp_path``: commands are recorded, file operations really happen.
"""

from pathlib import Path

import pytest

from xsetup.core.errors import CommandError, ConfigError, HostEnvironmentError
from xsetup.core.models.config import SetupConfig
from xsetup.core.persistence.run_log import RunLog, history_path
from xsetup.core.services.provision import ProvisionOptions, provision
from xsetup.core.services.provision.execution.lock import host_lock

from conftest import ORIGINAL_SOURCES_LIST, ORIGINAL_UBUNTU_SOURCES, FakeRunner

MINI_ORDER = ["python", "chezmoi", "rust", "eza", "neovim", "uv", "zellij", "fzf", "llvm"]


@pytest.fixture
def run(runner, paths, fetcher, identity):
    """Call provision() against the fake host; keywords override."""

    def _run(config: SetupConfig | None = None, **options):
        overrides = {
            key: options.pop(key)
            for key in ("runner", "machine", "progress", "current_shell")
            if key in options
        }
        return provision(
            ProvisionOptions(**options),
            config,
            runner=overrides.get("runner", runner),
            paths=paths,
            fetcher=fetcher,
            identity=identity,
            machine=overrides.get("machine", "x86_64"),
            progress=overrides.get("progress"),
            current_shell=overrides.get("current_shell", lambda name: "/bin/bash"),
        )

    return _run


def _installed_order(runner: FakeRunner) -> list[str]:
    tools = [argv[2] for argv in runner.commands() if argv[:2] == ["asdf", "install"]]
    return list(dict.fromkeys(tools))


def _backups(paths) -> list[Path]:
    return sorted(paths.root.rglob("*.bak"))


class TestMiniRun:
    def test_end_to_end(self, run, runner, identity, home, paths):
        report = run(profile="mini")

        assert report.stages == ["base-system", "version-manager", "profile", "post-install", "cleanup"]
        assert report.tools == MINI_ORDER
        assert report.post_install == []
        assert report.user == "alice"
        assert report.architecture == "x86_64"
        assert report.codename == "noble"
        assert _installed_order(runner) == MINI_ORDER

        # privileged work went through sudo, tool work ran as the user
        apt = [c for c in runner.calls if c.argv[0] == "apt-get"]
        assert apt and {c.actor for c in apt} == {"root"}
        assert {c.actor for c in runner.calls if c.argv[0] == "asdf"} == {"alice"}

        assert runner.commands("root")[-1] == ["find", str(paths.apt_lists), "-mindepth", "1", "-delete"]
        assert not runner.ran("git", "clone")
        assert not runner.ran("chsh")

    def test_history_record(self, run, identity):
        report = run(profile="mini")
        records = RunLog(history_path(identity)).read_all()
        assert len(records) == 1
        assert records[0].status == "ok"
        assert records[0].run_id == report.run_id
        assert records[0].tools == MINI_ORDER
        assert records[0].stages[-1] == "cleanup"

    def test_history_disabled(self, run, identity):
        run(SetupConfig(history=False), profile="mini")
        assert not history_path(identity).exists()

    def test_progress_lines(self, run):
        lines = []
        run(profile="mini", progress=lambda kind, msg: lines.append((kind, msg)))
        assert ("step", "Installing llvm") in lines
        assert lines[-1] == ("ok", "Package caches cleaned")


class TestRerun:
    def test_second_run_changes_nothing(self, run, runner, fetcher, home, paths):
        run(profile="full")
        runner.calls.clear()
        runner.file_ops.clear()

        report = run(profile="full")

        assert [op for op, _ in runner.file_ops if op != "append"] == []
        assert not runner.ran("git", "clone")
        assert not runner.ran("asdf", "plugin", "add")
        assert len(fetcher.assets) == 1
        assert report.post_install == []
        assert report.skipped_steps

        rc = (home / ".zshrc").read_text()
        assert rc.count("# >>> xsetup: asdf >>>") == 1
        assert paths.sources_list.with_name("sources.list.bak").read_text() == ORIGINAL_SOURCES_LIST
        assert paths.default_sources.with_name("ubuntu.sources.bak").read_text() == ORIGINAL_UBUNTU_SOURCES

    def test_switching_manager_removes_the_other(self, run, runner, home):
        run(profile="mini", manager="asdf")
        (home / ".asdf" / "asdf.sh").write_text("# legacy layout\n")

        run(profile="mini", manager="mise")

        assert not (home / ".asdf").exists()
        assert (home / ".local" / "bin" / "mise").is_file()
        rc = (home / ".zshrc").read_text()
        assert "xsetup: asdf" not in rc
        assert rc.count("# >>> xsetup: mise >>>") == 1


class TestFullRun:
    def test_editor_template_and_login_shell(self, run, runner, home):
        report = run(profile="full", set_zsh_default=True)
        assert report.post_install == ["editor-template", "login-shell"]
        assert (home / ".config" / "nvim" / "init.lua").exists()
        assert ["chsh", "-s", "/usr/bin/zsh", "alice"] in runner.commands("root")
        # llvm waits for the python shims, after every direct tool
        assert _installed_order(runner)[-4:] == ["zoxide", "lazygit", "ctop", "llvm"]


class TestFailures:
    def test_unknown_profile_changes_nothing(self, run, runner, paths, identity):
        with pytest.raises(ConfigError, match="nightly"):
            run(profile="nightly")
        assert runner.calls == []
        assert runner.file_ops == []
        assert _backups(paths) == []
        assert not history_path(identity).exists()

    def test_non_ubuntu_rejected(self, run, runner, paths):
        paths.os_release.write_text('ID=debian\nVERSION_CODENAME=bookworm\n')
        with pytest.raises(ConfigError, match="Ubuntu systems only"):
            run(profile="mini")
        assert runner.calls == []
        assert _backups(paths) == []

    def test_unsupported_architecture_rejected(self, run, runner, paths):
        with pytest.raises(ConfigError, match="Unsupported architecture: mips"):
            run(profile="mini", machine="mips")
        assert runner.calls == []
        assert _backups(paths) == []

    def test_architecture_without_manager_release(self, run, runner):
        with pytest.raises(ConfigError, match="asdf publishes no Linux release"):
            run(profile="mini", machine="ppc64le")
        assert runner.calls == []

    def test_missing_sudo(self, run, paths):
        no_sudo = FakeRunner(which={"zsh": "/usr/bin/zsh"})
        with pytest.raises(HostEnvironmentError, match="sudo is required"):
            run(profile="mini", runner=no_sudo)
        assert no_sudo.calls == []
        assert _backups(paths) == []

    def test_failed_step_stops_the_run(self, run, runner, identity):
        runner.fail_on.append(["asdf", "install", "rust"])
        with pytest.raises(CommandError, match="asdf install rust"):
            run(profile="mini")

        assert _installed_order(runner) == ["python", "chezmoi", "rust"]
        assert not runner.ran("apt-get", "autoremove")

        records = RunLog(history_path(identity)).read_all()
        assert [r.status for r in records] == ["failed"]
        assert records[0].stages == ["base-system", "version-manager"]
        assert "rust" in records[0].error

    def test_concurrent_run_rejected(self, run, runner, paths):
        with host_lock(paths.lock_file):
            with pytest.raises(HostEnvironmentError, match="Another xsetup run is active"):
                run(profile="mini")
        assert not runner.ran("apt-get")


class TestRootRun:
    def test_bootstrap_then_user_work(self, run, root_runner, paths):
        report = run(profile="mini", runner=root_runner)

        assert report.stages[0] == "bootstrap"
        assert root_runner.commands("root")[:2] == [
            ["apt-get", "update", "-qq"],
            ["apt-get", "install", "-y", "-qq", "sudo", "curl", "git", "liblzma-dev"],
        ]
        assert {c.actor for c in root_runner.calls if c.argv[0] == "asdf"} == {"alice"}
        # bootstrap wrote the official archive first, then the mirror replaced it
        assert paths.sources_list.read_text().startswith("deb https://mirrors.tuna.tsinghua.edu.cn/ubuntu/")
        assert paths.sources_list.with_name("sources.list.bak").read_text() == ORIGINAL_SOURCES_LIST

    def test_root_does_not_need_sudo(self, run, paths):
        bare_root = FakeRunner(root=True, which={"zsh": "/usr/bin/zsh"})
        report = run(profile="mini", runner=bare_root)
        assert report.stages[-1] == "cleanup"
