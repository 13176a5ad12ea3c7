"""
Prompt Loader - markdown prompt templates with {placeholder} variables.
"""

from pathlib import Path
from typing import Optional, Dict, Any

from loguru import logger


class PromptLoader:
    """
    Reads `<name>.md` templates from the prompts directory and fills them
    with str.format. Templates are cached after the first read.

    Example:
        prompt = PromptLoader().format("profile_summary", qa_text=..., ...)
    """

    _instance: Optional["PromptLoader"] = None

    def __new__(cls, prompts_dir: Optional[Path] = None) -> "PromptLoader":
        # One shared loader for the default directory
        if prompts_dir is not None:
            return super().__new__(cls)
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, prompts_dir: Optional[Path] = None):
        if getattr(self, "_initialized", False):
            return

        self.prompts_dir = Path(prompts_dir) if prompts_dir else Path(__file__).parent
        self._cache: Dict[str, str] = {}
        self._initialized = True

    def get(self, prompt_name: str) -> str:
        """
        Raw template text.

        Raises:
            FileNotFoundError: No `<prompt_name>.md` in the prompts directory
        """
        if prompt_name not in self._cache:
            path = self.prompts_dir / f"{prompt_name}.md"
            if not path.exists():
                raise FileNotFoundError(f"Prompt file not found: {path} (available: {self.list_prompts()})")
            self._cache[prompt_name] = path.read_text(encoding="utf-8")
            logger.debug(f"Loaded prompt template '{prompt_name}'")

        return self._cache[prompt_name]

    def format(self, prompt_name: str, **variables: Any) -> str:
        """
        Rendered template.

        Raises:
            ValueError: A placeholder has no matching variable
        """
        template = self.get(prompt_name)
        try:
            return template.format(**variables)
        except KeyError as e:
            raise ValueError(f"Missing required variable {e} for prompt '{prompt_name}'") from e

    def list_prompts(self) -> list[str]:
        return sorted(f.stem for f in self.prompts_dir.glob("*.md"))
