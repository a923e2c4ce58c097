from __future__ import annotations

import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from minitar.constants import FOOTER_SIZE

REPO_ROOT = Path(__file__).resolve().parent


def _build_fixture_files(root: Path):
    (root / "docs").mkdir()
    content = b"hello world\n" * 20
    (root / "docs" / "readme.txt").write_bytes(content)
    os.chmod(root / "docs" / "readme.txt", 0o644)
    (root / "binary.bin").write_bytes(os.urandom(2048 + 3))
    (root / "empty.txt").write_bytes(b"")
    return ["docs/readme.txt", "binary.bin", "empty.txt"]


class CLIIntegrationTests(unittest.TestCase):
    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)

    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        return self._run([sys.executable, "-m", "minitar.cli"] + list(args), expect=expect, cwd=cwd)

    def run_corrupt(self, args, *, expect: int | None = 0):
        script = REPO_ROOT / "scripts" / "corrupt.py"
        return self._run([sys.executable, str(script)] + list(args), expect=expect)

    def _run(self, cmd, *, expect: int | None = 0, cwd: Path | None = None):
        env = os.environ.copy()
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(REPO_ROOT) if not existing else f"{REPO_ROOT}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd or self.root,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def test_create_list_extract_roundtrip(self):
        names = _build_fixture_files(self.root)
        originals = {n: (self.root / n).read_bytes() for n in names}
        self.run_cli(["create", "out.tar"] + names)
        proc = self.run_cli(["list", "out.tar"])
        self.assertEqual(proc.stdout.splitlines(), names)

        self.run_cli(["extract", "out.tar", "--outdir", "restored"])
        for n, data in originals.items():
            self.assertEqual((self.root / "restored" / n).read_bytes(), data)

    def test_short_aliases(self):
        names = _build_fixture_files(self.root)
        self.run_cli(["c", "a.tar", names[0]])
        self.run_cli(["a", "a.tar", names[1]])
        self.run_cli(["u", "a.tar", names[0]])
        proc = self.run_cli(["t", "a.tar"])
        self.assertEqual(proc.stdout.splitlines(), [names[0], names[1], names[0]])
        (self.root / names[0]).unlink()
        self.run_cli(["x", "a.tar"])
        self.assertTrue((self.root / names[0]).exists())

    def test_create_empty_archive(self):
        self.run_cli(["create", "empty.tar"])
        self.assertEqual((self.root / "empty.tar").read_bytes(), b"\x00" * FOOTER_SIZE)
        proc = self.run_cli(["list", "empty.tar"])
        self.assertEqual(proc.stdout, "")

    def test_long_listing(self):
        names = _build_fixture_files(self.root)
        self.run_cli(["create", "l.tar", names[0]])
        proc = self.run_cli(["list", "--long", "l.tar"])
        line = proc.stdout.strip()
        self.assertTrue(line.startswith("-rw-r--r-- "), line)
        self.assertIn(" 240 ", line)
        self.assertTrue(line.endswith(names[0]))

    def test_verbose_progress(self):
        names = _build_fixture_files(self.root)
        proc = self.run_cli(["-v", "create", "v.tar"] + names)
        self.assertEqual(proc.stdout.splitlines(), [f" adding: {n}" for n in names])
        proc = self.run_cli(["create", "q.tar"] + names)
        self.assertEqual(proc.stdout, "")

    def test_update_rejects_unknown_member(self):
        names = _build_fixture_files(self.root)
        self.run_cli(["create", "u.tar", names[0]])
        before = (self.root / "u.tar").read_bytes()
        proc = self.run_cli(["update", "u.tar", names[1]], expect=1)
        self.assertIn("Error:", proc.stderr)
        self.assertIn(names[1], proc.stderr)
        self.assertEqual((self.root / "u.tar").read_bytes(), before)

    def test_failures_exit_one(self):
        names = _build_fixture_files(self.root)
        proc = self.run_cli(["append", "missing.tar", names[0]], expect=1)
        self.assertIn("missing.tar", proc.stderr)
        self.run_cli(["list", "missing.tar"], expect=1)
        self.run_cli(["extract", "missing.tar"], expect=1)
        proc = self.run_cli(["create", "x.tar", "no-such-file"], expect=1)
        self.assertIn("no-such-file", proc.stderr)
        # argument errors
        self.run_cli([], expect=1)
        self.run_cli(["bogus", "x.tar"], expect=1)
        self.run_cli(["list"], expect=1)

    def test_verify_detects_corruption(self):
        names = _build_fixture_files(self.root)
        self.run_cli(["create", "v.tar"] + names)
        proc = self.run_cli(["verify", "v.tar"])
        self.assertEqual(proc.stdout.strip(), "OK")

        proc = self.run_corrupt(["header", "v.tar", "--index", "1", "--within", "2"])
        second = 512 + 512  # docs/readme.txt holds 240 bytes, one data block
        self.assertIn(f"archive offset {second + 2}", proc.stdout)
        proc = self.run_cli(["verify", "v.tar"], expect=1)
        # "binary.bin" with its third byte XORed by 0x01
        self.assertEqual(proc.stdout.splitlines(), [f"BAD CHECKSUM at offset {second}: bioary.bin"])

    def test_corrupt_rejects_out_of_range_header(self):
        names = _build_fixture_files(self.root)
        self.run_cli(["create", "r.tar", names[0]])
        before = (self.root / "r.tar").read_bytes()
        proc = self.run_corrupt(["header", "r.tar", "--index", "5"], expect=1)
        self.assertIn("Error:", proc.stderr)
        self.assertEqual((self.root / "r.tar").read_bytes(), before)


if __name__ == "__main__":
    unittest.main()
