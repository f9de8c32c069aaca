# tests/test_main.py
"""
Tests for the tacflow command-line interface.
"""

import json
import logging

import pytest

from tacflow import __version__
from tacflow.main import EXIT_ERROR, EXIT_INFRA, EXIT_OK, main
from tests.conftest import LOOP_IR, STRAIGHT_LINE_IR, TWO_METHODS_IR


@pytest.fixture
def prog(tmp_path):
    path = tmp_path / "prog.tir"
    path.write_text(TWO_METHODS_IR, encoding="utf-8")
    return path


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestAnalyze:

    def test_text_output(self, prog, capsys):
        assert main(["analyze", str(prog)]) == EXIT_OK
        out = capsys.readouterr().out
        assert "== first (constprop," in out
        assert "== second (constprop," in out
        assert "0: a = 40;" in out
        assert "OUT {a=#40}" in out
        assert "OUT {b=NAC, p=NAC}" in out

    def test_json_output(self, prog, capsys):
        assert main(["analyze", str(prog), "--format", "json"]) == EXIT_OK
        doc = json.loads(capsys.readouterr().out)
        methods = {m["method"]: m for m in doc["methods"]}
        assert set(methods) == {"first", "second"}
        first = methods["first"]
        assert first["analysis"] == "constprop"
        assert first["options"] == {}
        labels = [n["stmt"] for n in first["nodes"]]
        assert labels == ["[entry]", "0: a = 40;", "[exit]"]
        assert first["nodes"][-1]["out"] == {"a": "#40"}
        assert first["nodes"][0]["in"] == {}

    def test_output_file(self, tmp_path, capsys):
        src = write(tmp_path, "s.tir", STRAIGHT_LINE_IR)
        dest = tmp_path / "out" / "facts.json"
        assert main(["analyze", src, "-f", "json", "-o", str(dest)]) == EXIT_OK
        assert capsys.readouterr().out == ""
        doc = json.loads(dest.read_text(encoding="utf-8"))
        assert doc["methods"][0]["nodes"][-1]["out"] == {"x": "#1", "y": "#2", "z": "#3"}

    def test_analysis_options_reported(self, prog, capsys):
        assert main(["analyze", str(prog), "-a", "constprop:trace=true", "-f", "json"]) == EXIT_OK
        doc = json.loads(capsys.readouterr().out)
        assert doc["methods"][0]["options"] == {"trace": True}

    def test_missing_file(self, tmp_path):
        assert main(["analyze", str(tmp_path / "nope.tir")]) == EXIT_INFRA

    def test_parse_error(self, tmp_path):
        src = write(tmp_path, "bad.tir", "(method m (body (assign q 1)))")
        assert main(["analyze", src]) == EXIT_INFRA

    def test_unknown_analysis(self, prog):
        assert main(["analyze", str(prog), "--analysis", "liveness"]) == EXIT_INFRA

    def test_malformed_analysis(self, prog):
        assert main(["analyze", str(prog), "--analysis", "constprop:oops"]) == EXIT_INFRA

    def test_undefined_label(self, tmp_path):
        src = write(tmp_path, "lbl.tir", "(method m (body (goto nowhere)))")
        assert main(["analyze", src]) == EXIT_INFRA

    def test_non_convergence(self, tmp_path):
        src = write(tmp_path, "loop.tir", LOOP_IR)
        assert main(["analyze", src, "--max-iterations", "2"]) == EXIT_ERROR

    def test_directory_input(self, tmp_path):
        assert main(["analyze", str(tmp_path)]) == EXIT_INFRA

    def test_invalid_utf8_input(self, tmp_path):
        path = tmp_path / "latin1.tir"
        path.write_bytes(b"(method m (body \xff))")
        assert main(["analyze", str(path)]) == EXIT_INFRA

    def test_two_top_level_forms(self, tmp_path, caplog):
        src = write(tmp_path, "two.tir", "(method a) (method b)")
        assert main(["analyze", src]) == EXIT_INFRA
        assert "single top-level form" in caplog.text

    def test_failed_analysis_keeps_existing_output(self, tmp_path):
        src = write(tmp_path, "loop.tir", LOOP_IR)
        dest = tmp_path / "facts.txt"
        dest.write_text("previous report\n", encoding="utf-8")
        assert main(["analyze", src, "--max-iterations", "2", "-o", str(dest)]) == EXIT_ERROR
        assert dest.read_text(encoding="utf-8") == "previous report\n"

    def test_failed_analysis_creates_no_output(self, tmp_path):
        src = write(tmp_path, "lbl.tir", "(method m (body (goto nowhere)))")
        dest = tmp_path / "out.json"
        assert main(["analyze", src, "-f", "json", "-o", str(dest)]) == EXIT_INFRA
        assert not dest.exists()


class TestOtherCommands:

    def test_cfg_dot(self, prog, capsys):
        assert main(["cfg", str(prog)]) == EXIT_OK
        out = capsys.readouterr().out
        assert out.count("digraph CFG {") == 2
        assert 'label="second";' in out

    def test_cfg_missing_file(self, tmp_path):
        assert main(["cfg", str(tmp_path / "nope.tir")]) == EXIT_INFRA

    def test_cfg_directory_input(self, tmp_path):
        assert main(["cfg", str(tmp_path)]) == EXIT_INFRA

    def test_cfg_error_creates_no_output(self, tmp_path):
        src = write(tmp_path, "lbl.tir", "(method m (body (goto nowhere)))")
        dest = tmp_path / "g.dot"
        assert main(["cfg", src, "-o", str(dest)]) == EXIT_INFRA
        assert not dest.exists()

    def test_analyses(self, capsys):
        assert main(["analyses"]) == EXIT_OK
        assert "constprop" in capsys.readouterr().out.split()

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            main(["--version"])
        assert info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_command_required(self):
        with pytest.raises(SystemExit) as info:
            main([])
        assert info.value.code == 2


class TestLogging:

    @pytest.mark.parametrize("flags,level", [
        ([], logging.WARNING),
        (["-v"], logging.INFO),
        (["-vv"], logging.DEBUG),
    ])
    def test_verbosity(self, flags, level):
        assert main(flags + ["analyses"]) == EXIT_OK
        assert logging.getLogger("tacflow").level == level

    def test_debug_trace_goes_to_stderr(self, prog, capsys):
        assert main(["-vv", "analyze", str(prog)]) == EXIT_OK
        err = capsys.readouterr().err
        assert "tacflow.solver" in err
        assert "iteration 1:" in err
