from __future__ import annotations

from pathlib import Path

from codefuse import cli


def test_end_to_end_bundle_export(project: Path, isolated_env: Path) -> None:
    (project / "sub" / "notes.py").write_text("x = 1\n", encoding="utf-8")
    (project / "docs").mkdir()

    exit_code = cli.main(
        [
            "--dir",
            str(project),
            "--ignore-pre",
            "node_modules",
            "--ignore-ext",
            ".py",
        ],
    )

    output = isolated_env / "codefuse-project.txt"
    assert exit_code == 0
    assert output.read_text(encoding="utf-8") == (
        "Project Directory Structure:\n"
        "└── a.go\n"
        "└── docs\n"
        "├── sub\n"
        "│   └── b.go\n"
        "\n"
        "File: \na.go\nContent: \npackage a\n\n"
        "File: \ndocs\nContent: \nempty directory\n\n"
        "File: \nsub/b.go\nContent: \npackage b\n\n"
    )


def test_end_to_end_init_then_generate(project: Path, isolated_env: Path) -> None:
    assert cli.main(["init"]) == 0
    cfg = isolated_env / ".codefuse-config.yaml"
    cfg.write_text(
        cfg.read_text(encoding="utf-8").replace("ignore-pre:", "ignore-pre: [node_modules, sub]"),
        encoding="utf-8",
    )

    assert cli.main(["generate", "--dir", str(project)]) == 0

    content = (isolated_env / "codefuse-project.txt").read_text(encoding="utf-8")
    assert content == "Project Directory Structure:\n└── a.go\n\nFile: \na.go\nContent: \npackage a\n\n"


def test_end_to_end_generate_in_root_skips_config_and_previous_bundle(isolated_env: Path) -> None:
    (isolated_env / "main.go").write_text("package main\n", encoding="utf-8")
    assert cli.main(["init"]) == 0
    cfg = isolated_env / ".codefuse-config.yaml"
    cfg.write_text(
        cfg.read_text(encoding="utf-8").replace("api-key:", "api-key: SECRET-KEY"),
        encoding="utf-8",
    )
    output = isolated_env / "codefuse-project.txt"

    assert cli.main([]) == 0
    first = output.read_text(encoding="utf-8")
    assert cli.main([]) == 0
    second = output.read_text(encoding="utf-8")

    assert first == second
    assert first == "Project Directory Structure:\n└── main.go\n\nFile: \nmain.go\nContent: \npackage main\n\n"
    assert "SECRET-KEY" not in second
