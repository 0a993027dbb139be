"""
Integration tests for vdsource CLI behavior and settings resolution.

Tests:
  - .vdsource discovery: searching parent directories upward
  - settings layers: CLI > environment > .vdsource > global config > defaults
  - .env loading never overrides the real environment
  - apply_settings correctly mutates module variables
  - vdsource status / download: exit codes and output without network access
"""
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock


# ── Helpers ───────────────────────────────────────────────────────────────────

REPO_ROOT = Path(__file__).parent.parent


def run_vdsource(*args, cwd, config_home, extra_env=None):
    """Run the vdsource CLI and return (returncode, stdout, stderr)."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("VERCEL_")}
    env.update({
        "PYTHONPATH": str(REPO_ROOT),
        "XDG_CONFIG_HOME": str(config_home),
        "PYTHONIOENCODING": "utf-8",
    })
    env.update(extra_env or {})
    result = subprocess.run(
        [sys.executable, "-m", "vdsource", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        encoding="utf-8",
        input="",
        env=env,
    )
    return result.returncode, result.stdout, result.stderr


# ── Tests: .vdsource discovery ────────────────────────────────────────────────

class TestFindProjectConfig(unittest.TestCase):
    """Tests for find_project_config() — upward search through parent directories."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name).resolve()

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_find_in_same_directory(self):
        from vdsource.config import find_project_config
        (self.root / ".vdsource").write_text("team: acme\n", encoding="utf-8")
        self.assertEqual(find_project_config(self.root), self.root / ".vdsource")

    def test_find_in_parent_directory(self):
        """find_project_config searches upward and finds .vdsource in a parent."""
        from vdsource.config import find_project_config
        (self.root / ".vdsource").write_text("team: acme\n", encoding="utf-8")
        subdir = self.root / "a" / "b" / "c"
        subdir.mkdir(parents=True)
        self.assertEqual(find_project_config(subdir), self.root / ".vdsource")

    def test_finds_nearest(self):
        from vdsource.config import find_project_config
        (self.root / ".vdsource").write_text("team: outer\n", encoding="utf-8")
        inner = self.root / "inner"
        inner.mkdir()
        (inner / ".vdsource").write_text("team: inner\n", encoding="utf-8")
        self.assertEqual(find_project_config(inner), inner / ".vdsource")

    def test_directory_named_vdsource_is_ignored(self):
        from vdsource.config import find_project_config
        sub = self.root / "x"
        (sub / ".vdsource").mkdir(parents=True)
        result = find_project_config(sub)
        self.assertNotEqual(result, sub / ".vdsource")


# ── Tests: settings layers ────────────────────────────────────────────────────

class TestResolveSettings(unittest.TestCase):

    def test_defaults(self):
        from vdsource.config import resolve_settings
        settings = resolve_settings({})
        self.assertEqual(settings["deployment"], "latest")
        self.assertEqual(settings["output"], "out")
        self.assertFalse(settings["deployment_explicit"])

    def test_precedence(self):
        from vdsource.config import resolve_settings
        settings = resolve_settings(
            {"team": "from-cli", "token": None},
            env={"team": "from-env", "token": "env-token"},
            project_file={"team": "from-project", "project": "shop"},
            global_file={"team": "from-global", "project": "blog", "output": "/data"},
        )
        self.assertEqual(settings["team"], "from-cli")
        self.assertEqual(settings["token"], "env-token")
        self.assertEqual(settings["project"], "shop")
        self.assertEqual(settings["output"], "/data")

    def test_empty_values_do_not_shadow(self):
        from vdsource.config import resolve_settings
        settings = resolve_settings({"deployment": ""}, env={"deployment": "dpl_env"})
        self.assertEqual(settings["deployment"], "dpl_env")
        self.assertTrue(settings["deployment_explicit"])

    def test_env_settings_reads_vercel_vars(self):
        from vdsource.config import env_settings
        env = {"VERCEL_TOKEN": "t", "VERCEL_TEAM": "  ", "VERCEL_OUTPUT": "/o"}
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertEqual(env_settings(), {"token": "t", "output": "/o"})


class TestConfigFiles(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_yaml_mapping_is_loaded(self):
        from vdsource.config import load_config_file
        path = self.root / ".vdsource"
        path.write_text("team: acme\nproject: shop\ntimeout: 10\n", encoding="utf-8")
        self.assertEqual(load_config_file(path), {"team": "acme", "project": "shop", "timeout": 10})

    def test_empty_file_is_empty_mapping(self):
        from vdsource.config import load_config_file
        path = self.root / ".vdsource"
        path.write_text("", encoding="utf-8")
        self.assertEqual(load_config_file(path), {})

    def test_non_mapping_is_rejected(self):
        from vdsource.config import load_config_file
        path = self.root / ".vdsource"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with self.assertRaises(ValueError):
            load_config_file(path)

    def test_global_config_under_xdg(self):
        from vdsource.config import load_global_config
        (self.root / "vdsource").mkdir()
        (self.root / "vdsource" / "config.yaml").write_text("token: g\n", encoding="utf-8")
        with mock.patch.dict(os.environ, {"XDG_CONFIG_HOME": str(self.root)}):
            self.assertEqual(load_global_config(), {"token": "g"})

    def test_env_file_does_not_override_environment(self):
        from vdsource.config import load_env_file
        env_file = self.root / ".env"
        env_file.write_text("VERCEL_TOKEN=from-file\nVERCEL_TEAM=file-team\n", encoding="utf-8")
        with mock.patch.dict(os.environ, {"VERCEL_TOKEN": "from-env"}, clear=True):
            self.assertTrue(load_env_file(env_file))
            self.assertEqual(os.environ["VERCEL_TOKEN"], "from-env")
            self.assertEqual(os.environ["VERCEL_TEAM"], "file-team")

    def test_missing_env_file(self):
        from vdsource.config import load_env_file
        self.assertFalse(load_env_file(self.root / ".env"))


# ── Tests: apply_settings ─────────────────────────────────────────────────────

class TestApplySettings(unittest.TestCase):

    NAMES = ("OUTPUT_ROOT", "API_BASE", "DASHBOARD_BASE",
             "REQUEST_TIMEOUT", "RETRY_MAX", "RETRY_BASE_DELAY")

    def setUp(self):
        import vdsource.config as cfg
        self._orig = {name: getattr(cfg, name) for name in self.NAMES}

    def tearDown(self):
        import vdsource.config as cfg
        for name, value in self._orig.items():
            setattr(cfg, name, value)

    def test_apply_settings_mutates_module(self):
        import vdsource.config as cfg
        cfg.apply_settings({
            "output": "/srv/mirror",
            "dashboard_base": "http://localhost:8080/",
            "timeout": "5",
            "retry_max": 1,
        })
        self.assertEqual(cfg.OUTPUT_ROOT, Path("/srv/mirror").resolve())
        self.assertEqual(cfg.DASHBOARD_BASE, "http://localhost:8080")
        self.assertEqual(cfg.REQUEST_TIMEOUT, 5.0)
        self.assertEqual(cfg.RETRY_MAX, 1)
        self.assertEqual(cfg.get_log_file("dpl_a"), Path("/srv/mirror").resolve() / "dpl_a" / "download-log.txt")

    def test_missing_keys_leave_defaults(self):
        import vdsource.config as cfg
        cfg.apply_settings({"output": ""})
        self.assertEqual(cfg.OUTPUT_ROOT, self._orig["OUTPUT_ROOT"])
        self.assertEqual(cfg.API_BASE, "https://api.vercel.com")


# ── Tests: CLI ────────────────────────────────────────────────────────────────

class TestCommands(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        self.cwd = self.root / "work"
        self.cwd.mkdir()
        self.config_home = self.root / "config"
        self.config_home.mkdir()
        self.out = self.root / "out"

    def tearDown(self):
        self.tmpdir.cleanup()

    def vdsource(self, *args, **kwargs):
        return run_vdsource(*args, cwd=self.cwd, config_home=self.config_home, **kwargs)

    def test_no_command_prints_help(self):
        rc, out, _ = self.vdsource()
        self.assertEqual(rc, 1)
        self.assertIn("download", out)
        self.assertIn("status", out)

    def test_status_requires_deployment(self):
        rc, _, err = self.vdsource("status", "--output", str(self.out))
        self.assertEqual(rc, 1)
        self.assertIn("--deployment", err)

    def test_status_without_previous_download(self):
        rc, out, _ = self.vdsource("status", "--deployment", "abc", "--output", str(self.out))
        self.assertEqual(rc, 0)
        self.assertIn("No download found for abc", out)

    def test_status_reports_previous_download(self):
        source = self.out / "dpl_abc" / "source"
        (source / "lib").mkdir(parents=True)
        (source / "a.txt").write_text("a", encoding="utf-8")
        (source / "lib" / "b.txt").write_text("b", encoding="utf-8")
        (self.out / "dpl_abc" / "download-log.txt").write_text(
            f"❌ Failed to download {source.resolve().as_posix()}/lib/c.txt: boom\n",
            encoding="utf-8",
        )

        rc, out, _ = self.vdsource("status", "--deployment", "abc", "--output", str(self.out), "-v")

        self.assertEqual(rc, 0)
        self.assertIn("dpl_abc", out)
        self.assertIn("Files      : 2", out)
        self.assertIn("Failed     : 1", out)
        self.assertIn("lib/c.txt", out)
        self.assertIn("--retry-failed", out)

    def test_output_from_project_file(self):
        (self.cwd / ".vdsource").write_text(f"output: {self.out.as_posix()}\n", encoding="utf-8")
        (self.out / "dpl_abc" / "source").mkdir(parents=True)
        rc, out, _ = self.vdsource("status", "--deployment", "dpl_abc")
        self.assertEqual(rc, 0)
        self.assertIn("Files      : 0", out)

    def test_invalid_project_file(self):
        (self.cwd / ".vdsource").write_text("- not\n- a mapping\n", encoding="utf-8")
        rc, _, err = self.vdsource("status", "--deployment", "abc")
        self.assertEqual(rc, 1)
        self.assertIn("could not load configuration", err)

    def test_download_requires_token(self):
        rc, _, err = self.vdsource("download", "--deployment", "abc", "--no-input",
                              "--output", str(self.out))
        self.assertEqual(rc, 1)
        self.assertIn("Token is required", err)
        self.assertFalse(self.out.exists())


# ── Tests: download against a fake API ────────────────────────────────────────

class TestDownloadCommand(unittest.TestCase):
    """Runs cmd_download in-process with the HTTP transport swapped for FakeVercel."""

    NAMES = TestApplySettings.NAMES

    def setUp(self):
        import vdsource.config as cfg
        from fake_vercel import FakeVercel

        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        self.out = self.root / "out"
        self._orig = {name: getattr(cfg, name) for name in self.NAMES}
        self._orig_cwd = os.getcwd()
        os.chdir(self.root)

        self.fake = FakeVercel()
        self.fake.deployment_infos[(self.fake.deployment_id, "")] = {
            "url": self.fake.deployment_url, "name": "my-app",
        }
        self.fake.add_file(".env.example", b"KEY=value\n")
        self.fake.add_file("index.js", b"console.log(1)\n")
        self.fake.block(".env.example", "Previewing this file is not supported.")

    def tearDown(self):
        import vdsource.config as cfg
        from vdsource.utils.logging import set_verbose
        os.chdir(self._orig_cwd)
        for name, value in self._orig.items():
            setattr(cfg, name, value)
        set_verbose(False)
        self.tmpdir.cleanup()

    def main(self, *args):
        """Run the CLI; return (exit code, stdout, stderr)."""
        import io
        from vdsource import cli
        from vdsource.core.api_client import ApiClient

        def client(token):
            return ApiClient(token, transport=self.fake.transport())

        env = {"XDG_CONFIG_HOME": str(self.root / "config")}
        stdout, stderr = io.StringIO(), io.StringIO()
        code = 0
        with mock.patch.dict(os.environ, env, clear=True), \
                mock.patch("vdsource.core.api_client.ApiClient", side_effect=client), \
                mock.patch.object(sys, "argv", ["vdsource", *args]), \
                mock.patch.object(sys, "stdout", stdout), \
                mock.patch.object(sys, "stderr", stderr):
            try:
                cli.main()
            except SystemExit as exc:
                code = exc.code
        return code, stdout.getvalue(), stderr.getvalue()

    def test_blocked_file_reported_and_exit_zero(self):
        code, out, err = self.main("download", "tok", "--deployment", "dpl_test",
                                   "--no-input", "--output", str(self.out))

        self.assertEqual(code, 0)
        self.assertIn("Previewing this file is not supported.", err)
        self.assertIn("--retry-failed", out)
        source = self.out / "dpl_test" / "source"
        self.assertEqual((source / "index.js").read_bytes(), b"console.log(1)\n")
        self.assertFalse((source / ".env.example").exists())

    def test_unknown_deployment_exits_one(self):
        code, _, err = self.main("download", "tok", "--deployment", "dpl_missing",
                                 "--no-input", "--output", str(self.out))
        self.assertEqual(code, 1)
        self.assertIn("not found", err)


if __name__ == "__main__":
    unittest.main()
