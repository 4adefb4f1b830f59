"""
Tests for the command-line interface.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from crossrelease.cli.commands import doctor
from crossrelease.cli.parser import CLI
from crossrelease.core.exceptions import PackageFetchError
from crossrelease.cross.targets import resolve
from crossrelease.pipeline.packager import Artifact, Packager
from tests.fixtures.packages import FakeRepository


@pytest.fixture
def cli(clean_env):
    return CLI()


class TestArgumentParsing:
    """Tests for argument parsing."""

    def test_build_arguments(self, cli):
        """Test build command options."""
        args = cli.parse_args(
            ["build", "--target", "aarch64-unknown-linux-gnu", "--tag", "v0.4.0", "--output", "dist"]
        )

        assert args.command == "build"
        assert args.target == "aarch64-unknown-linux-gnu"
        assert args.tag == "v0.4.0"
        assert args.output == Path("dist")
        assert args.mirror is None

    def test_test_passthrough(self, cli):
        """Test that extra arguments are passed to cargo test."""
        args = cli.parse_args(["test", "--", "--nocapture"])

        assert args.cargo_args[-1] == "--nocapture"

    def test_global_options(self, cli, temp_dir):
        """Test global options."""
        args = cli.parse_args(["-v", "--project-root", str(temp_dir), "targets"])

        assert args.verbose
        assert args.project_root == temp_dir

    def test_no_command(self, cli, capsys):
        """Test that running without a command prints help and fails."""
        assert cli.run([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_stage_requires_dest(self, cli):
        """Test that stage needs a destination."""
        with pytest.raises(SystemExit):
            cli.parse_args(["stage", "--target", "aarch64-unknown-linux-gnu"])


class TestInformationalCommands:
    """Tests for commands that only print."""

    def test_targets(self, cli, capsys):
        """Test listing supported triples."""
        assert cli.run(["targets"]) == 0

        out = capsys.readouterr().out.splitlines()
        assert out[0].startswith("x86_64-unknown-linux-gnu")
        assert any("aarch64-linux-gnu-gcc" in line for line in out)

    def test_resolve(self, cli, capsys, temp_dir):
        """Test printing a profile and its environment."""
        code = cli.run(
            [
                "--project-root",
                str(temp_dir),
                "resolve",
                "--target",
                "aarch64-unknown-linux-gnu",
                "--sysroot",
                "/build/sysroot",
            ]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert "linker: aarch64-linux-gnu-gcc" in out
        assert "C_INCLUDE_PATH=/build/sysroot/usr/include" in out
        assert "PKG_CONFIG_ALLOW_CROSS=1" in out

    def test_resolve_from_environment(self, cli, capsys, temp_dir, clean_env):
        """Test that $TARGET selects the profile."""
        clean_env.setenv("TARGET", "armv7-unknown-linux-gnueabihf")

        cli.run(["--project-root", str(temp_dir), "resolve", "--packages"])

        out = capsys.readouterr().out
        assert "TARGET=armv7-unknown-linux-gnueabihf" in out
        assert "package: libzstd-dev:armhf" in out

    def test_resolve_unknown_target(self, cli, capsys, temp_dir):
        """Test that unknown triples are reported and resolve natively."""
        code = cli.run(["--project-root", str(temp_dir), "resolve", "--target", "mips-unknown-linux-gnu"])

        out = capsys.readouterr().out
        assert code == 0
        assert "using native" in out
        assert "triple: x86_64-unknown-linux-gnu" in out


class TestBuildCommand:
    """Tests for the build command."""

    def test_build(self, cli, capsys, temp_dir):
        """Test that options reach the pipeline and artifacts are printed."""
        artifact = Artifact(
            binary_path=temp_dir / "tunein",
            archive_path=temp_dir / "tunein_v1_aarch64-unknown-linux-gnu.tar.gz",
            checksum_path=temp_dir / "tunein_v1_aarch64-unknown-linux-gnu.tar.gz.sha256",
        )

        with patch("crossrelease.cli.commands.build.run_release", return_value=artifact) as mock_run:
            code = cli.run(
                [
                    "--project-root",
                    str(temp_dir),
                    "build",
                    "--target",
                    "aarch64-unknown-linux-gnu",
                    "--tag",
                    "v1",
                    "--name",
                    "tunein",
                ]
            )

        assert code == 0
        config = mock_run.call_args[0][0]
        assert config.target == "aarch64-unknown-linux-gnu"
        assert config.tag == "v1"
        assert config.name == "tunein"
        assert str(artifact.archive_path) in capsys.readouterr().out

    def test_build_failure_exit_code(self, cli, temp_dir):
        """Test that pipeline errors give a failure exit."""
        error = PackageFetchError("libzstd1:arm64", "404 Not Found")

        with patch("crossrelease.cli.commands.build.run_release", side_effect=error):
            code = cli.run(["--project-root", str(temp_dir), "build"])

        assert code == 1

    def test_invalid_tag(self, cli, temp_dir):
        """Test that configuration errors give a failure exit."""
        with patch("crossrelease.cli.commands.build.run_release") as mock_run:
            code = cli.run(["--project-root", str(temp_dir), "build", "--tag", "a/b"])

        assert code == 1
        mock_run.assert_not_called()


class TestVerifyCommand:
    """Tests for the verify command."""

    @pytest.fixture
    def artifact(self, temp_dir):
        binary = temp_dir / "tunein"
        binary.write_bytes(b"\x7fELF")
        return Packager("tunein", temp_dir / "dist").package(
            binary, "latest", "x86_64-unknown-linux-gnu"
        )

    def test_valid(self, cli, capsys, artifact):
        """Test verifying an intact artifact."""
        assert cli.run(["verify", str(artifact.archive_path)]) == 0
        assert "OK" in capsys.readouterr().out

    def test_tampered(self, cli, artifact):
        """Test verifying a modified artifact."""
        artifact.archive_path.write_bytes(b"tampered")

        assert cli.run(["verify", str(artifact.archive_path)]) == 1


class TestDoctorCommand:
    """Tests for the doctor command."""

    def test_native_checks(self):
        """Test that native builds only need cargo and rustup."""
        with patch("crossrelease.cli.commands.doctor.shutil.which", return_value="/usr/bin/x"):
            results = doctor.run_checks(resolve("x86_64-unknown-linux-gnu"))

        assert [r.name for r in results] == ["cargo", "rustup"]
        assert all(r.passed for r in results)

    def test_missing_cross_linker(self, cli, capsys, temp_dir):
        """Test that a missing cross linker fails with an install hint."""

        def which(name):
            return None if name == "aarch64-linux-gnu-gcc" else f"/usr/bin/{name}"

        with patch("crossrelease.cli.commands.doctor.shutil.which", side_effect=which):
            code = cli.run(
                ["--project-root", str(temp_dir), "doctor", "--target", "aarch64-unknown-linux-gnu"]
            )

        out = capsys.readouterr().out
        assert code == 1
        assert "[FAIL] aarch64-linux-gnu-gcc" in out
        assert "apt-get install -y gcc-aarch64-linux-gnu" in out


class TestStageCommand:
    """Tests for the stage command."""

    def test_stage(self, cli, capsys, temp_dir, cache_dir, fake_repository):
        """Test staging a sysroot into a directory."""
        dest = temp_dir / "sysroot"

        with patch(
            "crossrelease.cli.commands.stage.DebianPackageFetcher",
            return_value=fake_repository,
        ):
            code = cli.run(
                [
                    "--project-root",
                    str(temp_dir),
                    "stage",
                    "--target",
                    "aarch64-unknown-linux-gnu",
                    "--dest",
                    str(dest),
                ]
            )

        assert code == 0
        assert "Staged 20 package(s)" in capsys.readouterr().out
        assert (dest / "usr/include/libzstd.h").exists()

    def test_stage_fetch_failure(self, cli, temp_dir, cache_dir):
        """Test that a failing package download fails the command."""
        with patch(
            "crossrelease.cli.commands.stage.DebianPackageFetcher",
            return_value=FakeRepository(failing={"libasound2"}),
        ):
            code = cli.run(
                [
                    "--project-root",
                    str(temp_dir),
                    "stage",
                    "--target",
                    "aarch64-unknown-linux-gnu",
                    "--dest",
                    str(temp_dir / "sysroot"),
                ]
            )

        assert code == 1


class TestTestCommand:
    """Tests for the test command."""

    def test_passes_cargo_args(self, cli, capsys, temp_dir):
        """Test that arguments after -- reach cargo test."""
        with patch(
            "crossrelease.cli.commands.test.run_tests", return_value="test result: ok."
        ) as mock_run:
            code = cli.run(["--project-root", str(temp_dir), "test", "--", "--nocapture"])

        assert code == 0
        assert mock_run.call_args[0][1] == ["--nocapture"]
        assert "test result: ok." in capsys.readouterr().out
