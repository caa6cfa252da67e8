import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.rules.models import Rules

DEFAULT_RULES_PATH = "rules.yaml"


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    # Strip a markdown code fence if the rules live inside a ```yaml block
    lines = content.splitlines()
    yaml_lines = []
    in_block = False
    found_block = False

    for line in lines:
        s_line = line.strip()
        if s_line.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and s_line.startswith("```"):
            in_block = False
            break

        if in_block:
            yaml_lines.append(line)

    if found_block:
        clean_content = "\n".join(yaml_lines)
    else:
        clean_content = content

    try:
        data = yaml.safe_load(clean_content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e


def rules_path_from_env() -> Path:
    return Path(os.environ.get("FONTDESK_RULES_PATH", DEFAULT_RULES_PATH))


def apply_env_overrides(rules: Rules) -> Rules:
    """Environment wins over the file for deployment-specific values."""
    base_url = os.environ.get("FONTDESK_API_URL")
    if not base_url:
        return rules
    api = rules.api.model_copy(update={"base_url": base_url})
    return rules.model_copy(update={"api": api})
