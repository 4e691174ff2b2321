from pathlib import Path

from docflow.analysis.exceptions import ProviderError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(name: str, prompt_dir: Path | None = None) -> str:
    """Load a prompt template such as ``classification_prompt.txt``.

    Args:
        name: Template file name inside the prompt directory.
        prompt_dir: Directory to read from. Defaults to the bundled prompts.

    Returns:
        The raw template string with ``str.format`` placeholders.

    Raises:
        ProviderError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProviderError(f"Failed to load prompt template {name}: {exc}") from exc
