from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


def _env(repo_root: Path) -> dict[str, str]:
    env = dict(os.environ)
    existing_pp = env.get("PYTHONPATH", "")
    env["PYTHONPATH"] = f"{repo_root}{os.pathsep}{existing_pp}" if existing_pp else str(repo_root)
    return env


class TestCLISmoke(unittest.TestCase):
    def test_timeline_offline_writes_posts_and_log(self) -> None:
        repo_root = Path(__file__).resolve().parents[1]

        with tempfile.TemporaryDirectory() as td:
            cfg_path = Path(td) / "config.yaml"
            cfg_path.write_text("{}", encoding="utf-8")
            out_dir = Path(td) / "out"

            proc = subprocess.run(
                [
                    sys.executable,
                    "-m",
                    "timeline_scraper",
                    "timeline",
                    "--config",
                    str(cfg_path),
                    "--user-id",
                    "1000",
                    "--count",
                    "250",
                    "--out",
                    str(out_dir),
                    "--offline",
                ],
                cwd=repo_root,
                env=_env(repo_root),
                capture_output=True,
                text=True,
            )

            self.assertEqual(proc.returncode, 0, msg=proc.stderr)
            self.assertIn("posts=250", proc.stdout)
            self.assertIn("stop_reason=target_reached", proc.stdout)

            lines = (out_dir / "posts.jsonl").read_text(encoding="utf-8").splitlines()
            self.assertEqual(len(lines), 250)
            ids = [json.loads(ln)["post_id"] for ln in lines]
            self.assertEqual(len(set(ids)), 250)

            events = [
                json.loads(ln)["event"]
                for ln in (out_dir / "run.log").read_text(encoding="utf-8").splitlines()
            ]
            self.assertIn("timeline_command_started", events)
            self.assertIn("page_entries_skipped", events)
            self.assertIn("timeline_command_completed", events)

    def test_timeline_config_error_is_logged(self) -> None:
        repo_root = Path(__file__).resolve().parents[1]

        with tempfile.TemporaryDirectory() as td:
            out_dir = Path(td) / "out"
            proc = subprocess.run(
                [
                    sys.executable,
                    "-m",
                    "timeline_scraper",
                    "timeline",
                    "--config",
                    str(Path(td) / "missing.yaml"),
                    "--user-id",
                    "1000",
                    "--out",
                    str(out_dir),
                ],
                cwd=repo_root,
                env=_env(repo_root),
                capture_output=True,
                text=True,
            )

            self.assertEqual(proc.returncode, 2, msg=proc.stderr)
            events = [
                json.loads(ln)["event"]
                for ln in (out_dir / "run.log").read_text(encoding="utf-8").splitlines()
            ]
            self.assertIn("timeline_command_started", events)
            self.assertIn("timeline_command_failed", events)

    def test_tweet_offline_not_found(self) -> None:
        repo_root = Path(__file__).resolve().parents[1]

        with tempfile.TemporaryDirectory() as td:
            cfg_path = Path(td) / "config.yaml"
            cfg_path.write_text("{}", encoding="utf-8")

            proc = subprocess.run(
                [
                    sys.executable,
                    "-m",
                    "timeline_scraper",
                    "tweet",
                    "--config",
                    str(cfg_path),
                    "--id",
                    "42",
                    "--offline",
                ],
                cwd=repo_root,
                env=_env(repo_root),
                capture_output=True,
                text=True,
            )

            self.assertEqual(proc.returncode, 4, msg=proc.stderr)
            self.assertIn("not_found", proc.stdout)


if __name__ == "__main__":
    unittest.main()
