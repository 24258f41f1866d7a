from pathlib import Path

from usagelens.walker import discover_log_files


class TestDiscoverLogFiles:
    def test_missing_projects_dir_yields_nothing(self, tmp_path: "Path") -> "None":
        assert discover_log_files(tmp_path / "absent") == []

    def test_finds_nested_jsonl_files(self, claude_dir: "Path") -> "None":
        nested = claude_dir / "projects" / "-work-app" / "s1" / "sub"
        nested.mkdir(parents=True)
        (nested / "a.jsonl").write_text("{}\n")
        (nested / "notes.txt").write_text("ignored\n")
        (claude_dir / "projects" / "-work-app" / "top.jsonl").write_text("{}\n")

        files = discover_log_files(claude_dir)

        assert [f.path.name for f in files] == ["a.jsonl", "top.jsonl"]
        assert {f.project_name for f in files} == {"-work-app"}

    def test_ignores_files_directly_under_projects(self, claude_dir: "Path") -> "None":
        (claude_dir / "projects" / "stray.jsonl").write_text("{}\n")
        assert discover_log_files(claude_dir) == []

    def test_order_is_sorted(self, claude_dir: "Path") -> "None":
        for project in ("b-proj", "a-proj"):
            directory = claude_dir / "projects" / project
            directory.mkdir()
            (directory / "x.jsonl").write_text("{}\n")

        files = discover_log_files(claude_dir)
        assert [f.project_name for f in files] == ["a-proj", "b-proj"]
