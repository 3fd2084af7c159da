"""
Configuration file support for the exprlab CLI.

A config file names the input files and how to read them, so a lab's
export conventions are written down once instead of repeated on every
command line. Supports YAML and JSON with CLI argument override.

Example (YAML):

    expression: data/GSE5859Subset_expression.txt
    covariates: data/GSE5859Subset_samples.csv
    id_column: filename
    format:
      delimiter: "\\t"
      skip_rows: 0
      n_rows: 1000
    descriptions:
      group: "case/control status"
"""

from __future__ import annotations

import json
from argparse import ArgumentTypeError, Namespace
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from exprlab.cli._validators import _delimiter

__all__ = ['InputConfig', 'load_config', 'validate_config', 'merge_config_with_args']

TOP_LEVEL_KEYS = {'expression', 'covariates', 'id_column', 'format', 'descriptions', 'metadata'}
FORMAT_KEYS = {'preset', 'delimiter', 'skip_rows', 'n_rows'}

# Short forms of the shared input options
SHORT_OPTIONS = {'-e': 'expression', '-f': 'format', '-c': 'config'}


@dataclass
class InputConfig:
    """
    Schema of an input configuration file.

    Mirrors the shared CLI input arguments.
    """
    expression: Optional[Path] = None
    covariates: Optional[Path] = None
    id_column: Optional[str] = None
    preset: Optional[str] = None
    delimiter: Optional[str] = None
    skip_rows: Optional[int] = None
    n_rows: Optional[int] = None
    descriptions: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> InputConfig:
        """Build from a validated config mapping (see validate_config)."""
        fmt = config.get('format') or {}
        return cls(
            expression=Path(config['expression']) if config.get('expression') else None,
            covariates=Path(config['covariates']) if config.get('covariates') else None,
            id_column=config.get('id_column'),
            preset=fmt.get('preset'),
            delimiter=_delimiter(fmt['delimiter']) if fmt.get('delimiter') is not None else None,
            skip_rows=fmt.get('skip_rows'),
            n_rows=fmt.get('n_rows'),
            descriptions=dict(config.get('descriptions') or {}),
            metadata=dict(config.get('metadata') or {}),
        )


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values (empty for an empty file)

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid

    Examples:
        >>> config = load_config(Path("inputs.yaml"))
        >>> config['format']['skip_rows']
        0
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    if suffix not in ('.yaml', '.yml', '.json'):
        raise ValueError(
            f"Unsupported config format: {suffix}. "
            f"Use .yaml, .yml, or .json"
        )

    try:
        with open(config_path, 'r') as f:
            if suffix == '.json':
                config = json.load(f)
            else:
                config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}") from e

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config


def validate_config(config: Dict[str, Any]) -> None:
    """
    Check keys and value types of a loaded config.

    Raises:
        ValueError: Unknown keys or wrongly typed values
    """
    unknown = set(config) - TOP_LEVEL_KEYS
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}. Allowed: {sorted(TOP_LEVEL_KEYS)}")

    fmt = config.get('format')
    if fmt is not None:
        if not isinstance(fmt, dict):
            raise ValueError("'format' must be a mapping")
        unknown = set(fmt) - FORMAT_KEYS
        if unknown:
            raise ValueError(f"Unknown format keys: {sorted(unknown)}. Allowed: {sorted(FORMAT_KEYS)}")
        for key in ('skip_rows', 'n_rows'):
            value = fmt.get(key)
            if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value < 0):
                raise ValueError(f"format.{key} must be a non-negative integer, got {value!r}")
        delimiter = fmt.get('delimiter')
        if delimiter is not None:
            if not isinstance(delimiter, str):
                raise ValueError(f"format.delimiter must be a string, got {delimiter!r}")
            try:
                _delimiter(delimiter)
            except ArgumentTypeError as e:
                raise ValueError(f"format.delimiter: {e}") from e

    for key in ('descriptions', 'metadata'):
        value = config.get(key)
        if value is not None and not isinstance(value, dict):
            raise ValueError(f"'{key}' must be a mapping")


def _explicit_args(cli_args: Optional[List[str]]) -> set[str]:
    """Destination names of the options present on the command line."""
    explicit = set()
    for arg in cli_args or []:
        if arg.startswith('--'):
            name = arg[2:].split('=', 1)[0]
            explicit.add(name.replace('-', '_'))
        elif arg[:2] in SHORT_OPTIONS:
            explicit.add(SHORT_OPTIONS[arg[:2]])
    return explicit


def _merge_value(cli_value: Any, config_value: Any, arg_name: str, was_explicitly_set: bool) -> Any:
    """
    Merge a single config value with CLI argument.

    Rules:
    - CLI args ALWAYS override config if explicitly set
    - If CLI arg not set, use config value
    - If neither set, keep CLI default
    """
    if was_explicitly_set:
        return cli_value

    if config_value is not None:
        return config_value

    return cli_value


def merge_config_with_args(
    config: Dict[str, Any],
    args: Namespace,
    cli_args: Optional[List[str]] = None,
) -> Namespace:
    """
    Merge config file values with CLI arguments.

    Priority (highest to lowest):
    1. Explicitly provided CLI arguments
    2. Config file values
    3. CLI argument defaults

    Parameters:
        config: Configuration dictionary from load_config()
        args: Parsed CLI arguments (argparse.Namespace)
        cli_args: Raw CLI arguments list (for detecting explicit values).
                  If None, assumes all args are defaults

    Returns:
        New Namespace with merged values; ``descriptions`` and
        ``metadata`` are added from the config

    Examples:
        >>> config = load_config(Path("inputs.yaml"))
        >>> args = parser.parse_args(["pca", "--n-rows", "500"])
        >>> merged = merge_config_with_args(config, args, ["pca", "--n-rows", "500"])
        >>> # n_rows from CLI, expression path and delimiter from config
    """
    validate_config(config)
    explicit = _explicit_args(cli_args)
    schema = InputConfig.from_dict(config)
    merged = Namespace(**vars(args))

    mappings = {
        'expression': schema.expression,
        'covariates': schema.covariates,
        'id_column': schema.id_column,
        'format': schema.preset,
        'delimiter': schema.delimiter,
        'skip_rows': schema.skip_rows,
        'n_rows': schema.n_rows,
    }
    for arg_name, config_value in mappings.items():
        setattr(merged, arg_name, _merge_value(
            getattr(merged, arg_name, None),
            config_value,
            arg_name,
            arg_name in explicit,
        ))

    merged.descriptions = schema.descriptions
    merged.metadata = schema.metadata
    return merged
