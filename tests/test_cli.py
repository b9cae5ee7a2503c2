import io
import os
import tempfile
import textwrap
import unittest
from contextlib import redirect_stdout
from unittest.mock import patch

import dlldeploy.cli as cli
from dlldeploy.lib.config import Config
from dlldeploy.lib.inspector import InspectionError
from dlldeploy.lib.logger import Logger


class TestCLI(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = self.tmp.name

        self.cfg = os.path.join(self.root, "dlldeploy.cfg")
        with open(self.cfg, "w", encoding="utf-8") as f:
            f.write(
                textwrap.dedent(
                    """
                    [inspect]
                    objdump = fake-objdump

                    [dev]
                    log_level = debug
                    stack_trace_errors = false
                    """
                ).lstrip()
            )

        Config.load(self.cfg)
        Logger.setup(Logger.DEBUG)
        Logger._logger.handlers.clear()  # Silence std logs

        self.build = os.path.join(self.root, "build")
        self.libs = os.path.join(self.root, "mingw", "bin")
        self.out = os.path.join(self.root, "out")
        for d in (self.build, self.libs, self.out):
            os.makedirs(d)

        self.app = self._touch(self.build, "app.exe")
        self._touch(self.libs, "SDL2.dll")
        self._touch(self.libs, "libogg-0.dll")

        self.graph = {
            "app.exe": {"SDL2.dll", "libogg-0.dll"},
            "SDL2.dll": set(),
            "libogg-0.dll": set(),
        }

    def tearDown(self):
        self.tmp.cleanup()

    def _touch(self, directory: str, name: str) -> str:
        path = os.path.join(directory, name)
        with open(path, "wb") as f:
            f.write(name.encode())
        return path

    def _fake_dependencies(self, path, objdump="objdump"):
        self.objdump_used = objdump
        return set(self.graph[os.path.basename(path)])

    def _run(self, *args: str) -> int:
        parser = cli._build_parser()
        ns = parser.parse_args(cli._attach_raw_values(list(args)))
        with patch("dlldeploy.cli.get_dependencies", side_effect=self._fake_dependencies):
            return ns.handler(ns)

    def test_deploy_into_directory(self):
        rc = self._run("-L", self.libs, self.app, self.out)

        self.assertEqual(rc, cli.EXIT_OK)
        self.assertEqual(sorted(os.listdir(self.out)), ["SDL2.dll", "app.exe", "libogg-0.dll"])
        self.assertEqual(self.objdump_used, "fake-objdump")

    def test_deploy_renamed(self):
        rc = self._run("-L", self.libs, "--objdump", "x86_64-w64-mingw32-objdump", self.app, os.path.join(self.out, "game.exe"))

        self.assertEqual(rc, cli.EXIT_OK)
        self.assertEqual(sorted(os.listdir(self.out)), ["SDL2.dll", "game.exe", "libogg-0.dll"])
        self.assertEqual(self.objdump_used, "x86_64-w64-mingw32-objdump")

    def test_search_dir_from_ldflags(self):
        os.makedirs(os.path.join(self.root, "mingw", "lib"))

        rc = self._run("--ldflags", f"-L{self.root}/mingw/lib -lSDL2", self.app, self.out)

        self.assertEqual(rc, cli.EXIT_OK)
        self.assertIn("SDL2.dll", os.listdir(self.out))

    def test_missing_dependencies(self):
        self.graph["app.exe"].add("libfoo.dll")
        self.graph["SDL2.dll"].add("libbar.dll")

        with self.assertLogs(Logger._logger.name, level="ERROR") as cm:
            rc = self._run("-L", self.libs, self.app, self.out)

        self.assertEqual(rc, cli.EXIT_FAILURE)
        self.assertEqual(os.listdir(self.out), [])

        output = "\n".join(cm.output)
        self.assertIn(self.libs, output)
        self.assertIn("libfoo.dll", output)
        self.assertIn("libbar.dll", output)
        self.assertFalse(any("libfoo.dll" in line and "libbar.dll" in line for line in cm.output))

    def test_inspection_failure(self):
        with (
            self.assertLogs(Logger._logger.name, level="ERROR") as cm,
            patch("dlldeploy.cli.get_dependencies", side_effect=InspectionError("fake-objdump", self.app, returncode=1)),
        ):
            ns = cli._build_parser().parse_args(["-L", self.libs, self.app, self.out])
            rc = ns.handler(ns)

        self.assertEqual(rc, cli.EXIT_INSPECTION)
        self.assertEqual(os.listdir(self.out), [])
        self.assertTrue(any("Inspection failed" in line for line in cm.output))

    def test_inspection_failure_stack_trace(self):
        with patch.dict(Config._data["dev"], {"stack_trace_errors": True}):
            with patch("dlldeploy.cli.get_dependencies", side_effect=InspectionError("fake-objdump", self.app, returncode=1)):
                ns = cli._build_parser().parse_args([self.app, self.out])
                with self.assertRaises(InspectionError):
                    ns.handler(ns)

    def test_dry_run_copies_nothing(self):
        rc = self._run("-n", "-L", self.libs, self.app, self.out)

        self.assertEqual(rc, cli.EXIT_OK)
        self.assertEqual(os.listdir(self.out), [])

    def test_dry_run_reports_missing(self):
        self.graph["app.exe"].add("libfoo.dll")

        rc = self._run("--dry-run", "-L", self.libs, self.app, self.out)

        self.assertEqual(rc, cli.EXIT_FAILURE)

    def test_source_does_not_exist(self):
        rc = self._run(os.path.join(self.build, "nope.exe"), self.out)

        self.assertEqual(rc, cli.EXIT_FAILURE)
        self.assertEqual(os.listdir(self.out), [])

    def test_main(self):
        with (
            patch.dict(os.environ, {"DLLDEPLOY_CONFIG": self.cfg}),
            patch("dlldeploy.cli.get_dependencies", side_effect=self._fake_dependencies),
        ):
            rc = cli.main(["-v", "-L", self.libs, self.app, self.out])

        self.assertEqual(rc, cli.EXIT_OK)
        self.assertEqual(Logger._logger.level, Logger.DEBUG)
        self.assertIn("app.exe", os.listdir(self.out))

    def test_main_single_ldflag(self):
        os.makedirs(os.path.join(self.root, "mingw", "lib"))

        with (
            patch.dict(os.environ, {"DLLDEPLOY_CONFIG": self.cfg}),
            patch("dlldeploy.cli.get_dependencies", side_effect=self._fake_dependencies),
        ):
            rc = cli.main(["--ldflags", f"-L{self.root}/mingw/lib", self.app, self.out])

        self.assertEqual(rc, cli.EXIT_OK)
        self.assertEqual(sorted(os.listdir(self.out)), ["SDL2.dll", "app.exe", "libogg-0.dll"])

    def test_main_ldflags_with_stray_quote(self):
        with (
            patch.dict(os.environ, {"DLLDEPLOY_CONFIG": self.cfg}),
            patch("dlldeploy.cli.get_dependencies", side_effect=self._fake_dependencies),
        ):
            rc = cli.main(["--ldflags=-L/opt/it's/lib", "-L", self.libs, self.app, self.out])

        self.assertEqual(rc, cli.EXIT_OK)
        self.assertIn("SDL2.dll", os.listdir(self.out))

    def test_main_report_is_plain_when_redirected(self):
        self.graph["app.exe"].add("libfoo.dll")
        stderr = io.StringIO()

        with (
            patch.dict(os.environ, {"DLLDEPLOY_CONFIG": self.cfg}),
            patch("sys.stderr", stderr),
            patch("dlldeploy.cli.get_dependencies", side_effect=self._fake_dependencies),
        ):
            rc = cli.main(["-L", self.libs, self.app, self.out])

        self.assertEqual(rc, cli.EXIT_FAILURE)
        lines = stderr.getvalue().splitlines()
        self.assertNotIn("\x1b", stderr.getvalue())
        self.assertIn(f"[-]   {self.libs}", lines)
        self.assertIn("[-]   libfoo.dll", lines)

    def test_attach_raw_values(self):
        argv = ["--ldflags", "-L/opt/pkg/lib", "app.exe", "--", "--ldflags", "out"]

        self.assertEqual(
            cli._attach_raw_values(argv),
            ["--ldflags=-L/opt/pkg/lib", "app.exe", "--", "--ldflags", "out"],
        )
        self.assertEqual(cli._attach_raw_values(["--ldflags=-lfoo", "a", "b"]), ["--ldflags=-lfoo", "a", "b"])
        self.assertEqual(cli._attach_raw_values(["a", "--ldflags"]), ["a", "--ldflags"])

    def test_version(self):
        out = io.StringIO()
        with redirect_stdout(out), self.assertRaises(SystemExit) as cm:
            cli._build_parser().parse_args(["--version"])

        self.assertEqual(cm.exception.code, 0)
        self.assertEqual(out.getvalue().strip(), f"dlldeploy {cli.__version__}")
