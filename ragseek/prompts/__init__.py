"""Prompt templates bundled with ragseek."""
from pathlib import Path
from typing import List

PROMPTS_DIR = Path(__file__).parent


def get_prompt(prompt_name: str) -> str:
    """
    Load a prompt template from the prompts directory.

    Args:
        prompt_name: The name of the prompt file (without .md extension)

    Returns:
        The prompt text
    """
    prompt_path = PROMPTS_DIR / f"{prompt_name}.md"
    if not prompt_path.exists():
        raise ValueError(f"Prompt '{prompt_name}' does not exist at {prompt_path}")

    with open(prompt_path, "r", encoding="utf-8") as f:
        return f.read().strip()


def list_prompts() -> List[str]:
    """List the names of all bundled prompts."""
    return sorted(f.stem for f in PROMPTS_DIR.glob("*.md"))
