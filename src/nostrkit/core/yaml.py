"""YAML configuration loading.

Used by [Client.from_yaml()][nostrkit.client.client.Client.from_yaml] to
read a [ClientConfig][nostrkit.client.configs.ClientConfig] from disk.
Only ``yaml.safe_load`` is used, so YAML tags cannot instantiate Python
objects.

Examples:
    ```python
    from nostrkit.core.yaml import load_yaml

    config = load_yaml("client.yaml")
    config["relays"]  # ['wss://relay.damus.io', 'wss://nos.lol']
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load a YAML mapping from *config_path*.

    Args:
        config_path: Path to the YAML file.

    Returns:
        The parsed mapping, or an empty dict for an empty file. Structure is
        not validated here; pass the result to a pydantic model.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the file is not valid YAML or its top level
            is not a mapping.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with path.open(encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {config_path} must contain a mapping, got {type(data).__name__}"
        )
    return data
