from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Tuple

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ai_utils import truncate


class PromptLoader:
    """Loads system prompts and renders the jinja2 user-prompt templates."""

    FINANCIAL_SYSTEM = "financial_system.md"
    FINANCIAL_USER = "financial_user.md.j2"
    EARNINGS_SYSTEM = "earnings_system.md"
    EARNINGS_USER = "earnings_user.md.j2"

    def __init__(self, prompt_dir: Path | None = None):
        self.prompt_dir = Path(prompt_dir) if prompt_dir else Path(__file__).parent.parent / "prompt"
        self._cache: Dict[str, str] = {}
        self._env = Environment(
            loader=FileSystemLoader(self.prompt_dir.as_posix()),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def _resolve(self, filename: str) -> Path:
        return self.prompt_dir / filename

    def load_prompt(self, filename: str) -> str:
        if filename in self._cache:
            return self._cache[filename]
        prompt_path = self._resolve(filename)
        if not prompt_path.exists():
            raise FileNotFoundError(f"Prompt file not found: {prompt_path}")
        text = prompt_path.read_text(encoding="utf-8").strip()
        self._cache[filename] = text
        return text

    def render(self, filename: str, **context: Any) -> str:
        return self._env.get_template(filename).render(**context).strip()

    def create_financial_prompt(self, text: str, table_summary: str, max_chars: int) -> Tuple[str, str]:
        user = self.render(
            self.FINANCIAL_USER,
            document_text=truncate(text, max_chars),
            table_summary=table_summary,
        )
        return self.load_prompt(self.FINANCIAL_SYSTEM), user

    def create_earnings_prompt(self, text: str, max_chars: int) -> Tuple[str, str]:
        user = self.render(self.EARNINGS_USER, document_text=truncate(text, max_chars))
        return self.load_prompt(self.EARNINGS_SYSTEM), user
