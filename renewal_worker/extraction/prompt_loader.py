from pathlib import Path

from renewal_worker.extraction.exceptions import ExtractionError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"

PREMIUM_DUE_LIST = "premium_due_list"
RECEIPT = "receipt"


def load_instruction(name: str, prompt_dir: Path | None = None) -> str:
    """Load a bundled extraction instruction by name.

    Args:
        name: File stem under the prompt directory, e.g. ``"receipt"``.
        prompt_dir: Directory to read from. Defaults to the bundled prompts.

    Raises:
        ExtractionError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / f"{name}.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ExtractionError(f"Failed to load extraction instruction: {exc}") from exc
