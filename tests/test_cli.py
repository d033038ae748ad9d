"""Tests for the command-line interface and the rich display helpers."""

import io
import json

import pytest
from rich.console import Console

from minesweeper_arena.cli import main, parse_agents
from minesweeper_arena.display import render_board, render_history, render_rankings
from minesweeper_arena.orchestration.events import GameResult


# ── helpers ───────────────────────────────────────────────────────────────────


def _console():
    return Console(file=io.StringIO(), width=120, color_system=None)


def _output(console):
    return console.file.getvalue()


def _run_args(*extra):
    return ["run", "--rows", "3", "--cols", "3", "--mines", "1", "--agents", "random:1,random:2", *extra]


# ── TestDisplay ───────────────────────────────────────────────────────────────


class TestDisplay:
    def test_render_board(self):
        assert render_board("F1\nM0H").plain == "⚑ 1 \n✸ · ■ "

    def test_render_empty_board(self):
        assert render_board(None).plain == "(no moves)"

    def test_render_rankings(self):
        console = _console()
        rankings = [
            GameResult(model_id="claude-sonnet-4.5", outcome="win", score=96, moves=10,
                       duration_ms=4200, safe_revealed=71, total_safe=71, mines_hit=0),
            GameResult(model_id="random", outcome="loss", score=0, moves=3,
                       duration_ms=12, safe_revealed=5, total_safe=71, mines_hit=1),
        ]
        render_rankings(rankings, console=console)
        output = _output(console)
        assert output.index("claude-sonnet-4.5") < output.index("random")
        assert "71/71" in output
        assert "4.2s" in output

    def test_render_history(self):
        console = _console()
        battles = [{
            "id": "battle_1",
            "config": {"rows": 9, "cols": 9, "mineCount": 10},
            "agentIds": ["a", "b"],
            "status": "complete",
            "rankings": [{"modelId": "b", "score": 80}],
        }]
        render_history(battles, total=1, console=console)
        output = _output(console)
        assert "battle_1" in output
        assert "9x9 / 10" in output
        assert "b (80)" in output


# ── TestCLI ───────────────────────────────────────────────────────────────────


class TestCLI:
    def test_parse_agents(self):
        assert parse_agents(" gpt-5-mini, random:3 ,,") == ["gpt-5-mini", "random:3"]

    def test_run_json(self, capsys):
        main(_run_args("--seed", "5", "--json"))
        data = json.loads(capsys.readouterr().out)
        assert data["battleId"].startswith("battle_")
        assert data["boardSeed"] == 5
        assert sorted(r["modelId"] for r in data["rankings"]) == ["random:1", "random:2"]

    def test_run_table(self, capsys):
        main(_run_args("--seed", "5"))
        output = capsys.readouterr().out
        assert "Battle Results" in output
        assert "random:1" in output

    def test_run_then_history(self, capsys, tmp_path):
        data_dir = str(tmp_path / "battles")
        main(_run_args("--seed", "5", "--json", "--storage", "file", "--data-dir", data_dir))
        battle_id = json.loads(capsys.readouterr().out)["battleId"]

        main(["history", "--data-dir", data_dir, "--status", "complete"])
        assert battle_id in capsys.readouterr().out

        main(["history", battle_id, "--data-dir", data_dir])
        replay = json.loads(capsys.readouterr().out)
        assert replay["id"] == battle_id
        assert replay["status"] == "complete"

    def test_history_unknown_battle(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["history", "battle_nope", "--data-dir", str(tmp_path)])
        assert exc_info.value.code == 1

    def test_invalid_board(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "--rows", "2", "--cols", "2", "--mines", "4", "--agents", "random"])
        assert exc_info.value.code == 1

    @pytest.mark.parametrize(
        "argv",
        [
            ["--rows", "1000", "--cols", "1000", "--mines", "10", "--agents", "random"],
            ["--rows", "30", "--cols", "30", "--mines", "201", "--agents", "random"],
            ["--agents", "gpt-2"],
            ["--agents", "random,random"],
            ["--agents", " , "],
        ],
    )
    def test_battle_limits_apply_locally(self, argv, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["run", *argv])
        assert exc_info.value.code == 1
        assert "Invalid battle" in capsys.readouterr().out

    def test_settings_file(self, capsys, tmp_path):
        config_path = tmp_path / "arena.yaml"
        config_path.write_text("max_moves: 1\n")
        main(["--config", str(config_path), *_run_args("--seed", "5", "--json")])
        data = json.loads(capsys.readouterr().out)
        assert all(r["moves"] <= 1 for r in data["rankings"])

    def test_no_command_prints_help(self, capsys):
        main([])
        assert "usage" in capsys.readouterr().out.lower()
