"""CLI smoke tests (mock completion provider)."""
import json

import pytest

from conftest import STATEMENT_TEXT
from main import main


class TestCli:
    def test_financial_txt_to_json_and_excel(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        src = tmp_path / "results.txt"
        src.write_text(STATEMENT_TEXT, encoding="utf-8")

        code = main(
            ["--file", str(src), "--type", "financial", "--provider", "mock", "--json", "out.json", "--excel", "out.xlsx"]
        )

        assert code == 0
        data = json.loads((tmp_path / "out.json").read_text(encoding="utf-8"))
        assert data["income_statement"][0]["line_item"] == "Revenue from operations"
        assert (tmp_path / "out.xlsx").stat().st_size > 0

    def test_short_file_exits_with_error(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        src = tmp_path / "tiny.txt"
        src.write_text("too short", encoding="utf-8")

        assert main(["--file", str(src), "--provider", "mock"]) == 2
        assert "too short" in capsys.readouterr().err

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            main(["--file", str(tmp_path / "nope.pdf"), "--provider", "mock"])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
