"""Tests for CLI commands via subprocess."""

import json
import subprocess
import sys
from pathlib import Path

PYTHON = sys.executable
_FIXTURE_DIR = Path(__file__).parent / "fixtures"


def _run(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [PYTHON, "-m", "autorip.cli", *args],
        capture_output=True,
        text=True,
        timeout=60,
    )


class TestParse:
    def test_parse_file(self, sample_log):
        """Run `autorip parse` and verify one JSON object per event."""
        result = _run("parse", str(sample_log))
        assert result.returncode == 0, f"stderr: {result.stderr}"
        events = [json.loads(line) for line in result.stdout.splitlines()]
        assert [e["kind"] for e in events] == [
            "Message",
            "ProgressTitle",
            "ProgressTitle",
            "ProgressUpdate",
            "Drive",
            "disc",
        ]
        assert events[-1]["disc"]["volume_name"] == "VOLUME_ID"

    def test_parse_disc_only(self, sample_log):
        result = _run("parse", str(sample_log), "--disc-only")
        assert result.returncode == 0, f"stderr: {result.stderr}"
        assert len(result.stdout.splitlines()) == 1

    def test_parse_needs_source(self):
        result = _run("parse")
        assert result.returncode == 1
        assert "Error" in result.stderr

    def test_parse_bad_log(self, tmp_path):
        bad = tmp_path / "bad.log"
        bad.write_text("garbage\n", encoding="utf-8")
        result = _run("parse", str(bad))
        assert result.returncode == 1
        assert "Error" in result.stderr


class TestWithFakeMakemkv:
    def test_drives_then_replay(self, fakemkv, tmp_path):
        """Lines captured by `drives` can be replayed with `parse --log-id`."""
        db = str(tmp_path / "autorip.sqlite")
        result = _run("drives", "--makemkvcon", fakemkv, "--db", db)
        assert result.returncode == 0, f"stderr: {result.stderr}"
        assert "SomeDisc" in result.stdout

        replay = _run("parse", "--log-id", "1", "--db", db)
        assert replay.returncode == 0, f"stderr: {replay.stderr}"
        drives = [json.loads(line) for line in replay.stdout.splitlines()]
        assert sum(1 for d in drives if d["kind"] == "Drive") == 3

    def test_analyze_twice(self, fakemkv, tmp_path):
        db = str(tmp_path / "autorip.sqlite")
        first = _run("analyze", "--makemkvcon", fakemkv, "--db", db)
        assert first.returncode == 0, f"stderr: {first.stderr}"
        assert "new" in first.stderr
        second = _run("analyze", "--makemkvcon", fakemkv, "--db", db)
        assert "seen before" in second.stderr

    def test_plan_json(self, fakemkv, catalog_dir, tmp_path):
        result = _run(
            "plan",
            "--makemkvcon",
            fakemkv,
            "--db",
            str(tmp_path / "autorip.sqlite"),
            "--catalog-dir",
            str(catalog_dir),
            "--json",
        )
        assert result.returncode == 0, f"stderr: {result.stderr}"
        data = json.loads(result.stdout)
        assert data["identity"]["tconst"] == "tt0000002"
        assert [t["index"] for t in data["rip_titles"]] == [0]


class TestSearch:
    def test_search(self, catalog_dir):
        result = _run("search", "Some Disc", "--catalog-dir", str(catalog_dir), "-n", "2")
        assert result.returncode == 0, f"stderr: {result.stderr}"
        lines = result.stdout.splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("tt0000001\tmovie\tSome Disc\t1962")

    def test_plan_from_log_file(self, sample_log, catalog_dir):
        result = _run("plan", str(sample_log), "--catalog-dir", str(catalog_dir))
        assert result.returncode == 0, f"stderr: {result.stderr}"
        assert "(not identified)" in result.stdout
        assert "00000.mpls" in result.stdout


class TestCatalogFetch:
    def test_fetch_then_search(self, upstream, tmp_path):
        """Fetched files are searchable and episodes show their series."""
        base_url, _ = upstream
        catalog = str(tmp_path / "catalog")
        result = _run("catalog", "fetch", "--catalog-dir", catalog, "--source", base_url)
        assert result.returncode == 0, f"stderr: {result.stderr}"
        assert "title.episode.tsv.gz" in result.stderr

        found = _run("search", "Pilot", "--catalog-dir", catalog)
        assert found.returncode == 0, f"stderr: {found.stderr}"
        assert found.stdout.splitlines()[0].split("\t")[-1] == "Harbour Lights"

    def test_fetch_failure(self, upstream, tmp_path):
        base_url, served = upstream
        (served / "title.ratings.tsv.gz").unlink()
        result = _run(
            "catalog", "fetch", "--catalog-dir", str(tmp_path / "catalog"), "--source", base_url
        )
        assert result.returncode == 1
        assert "Error" in result.stderr
