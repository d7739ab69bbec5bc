import json
from pathlib import Path
from typing import Any

from docreview.gateway.exceptions import GatewayError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(name: str, prompt_dir: Path | None = None) -> str:
    """Load a prompt template by name, e.g. ``"extraction"`` -> ``extraction_prompt.txt``.

    Raises:
        GatewayError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / f"{name}_prompt.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise GatewayError(f"Failed to load prompt template '{name}': {exc}") from exc


def load_json_schema(name: str, prompt_dir: Path | None = None) -> dict[str, Any]:
    """Load a response schema by name, e.g. ``"populate"`` -> ``populate_schema.json``.

    Raises:
        GatewayError: if the file cannot be read or is not a JSON object.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / f"{name}_schema.json"
    try:
        schema = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise GatewayError(f"Failed to load JSON schema '{name}': {exc}") from exc
    if not isinstance(schema, dict):
        raise GatewayError(f"JSON schema '{name}' must be an object")
    return schema
