from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from jsonschema import Draft202012Validator

from .errors import ConfigurationError
from .matrix import Matrix

NUMBER_PATTERN = r"^-?[0-9]+(\.[0-9]+)?$"

TIER_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["threshold", "type", "value"],
    "properties": {
        "threshold": {"type": "string", "pattern": NUMBER_PATTERN},
        "type": {"enum": ["fixed_amount", "percentage"]},
        "value": {"type": "string", "pattern": NUMBER_PATTERN},
        "min": {"type": "string", "pattern": NUMBER_PATTERN},
        "max": {"type": "string", "pattern": NUMBER_PATTERN},
    },
    "additionalProperties": False,
}

CONFIGURATION_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["rate_label"],
    "properties": {
        "rate_label": {"type": ["string", "null"]},
        "services": {"type": "array", "items": {"type": "string"}},
        "excluded_categories": {"type": "array", "items": {"type": "string"}},
        "price_matrix": {
            "oneOf": [
                {"type": "null"},
                {
                    "type": "object",
                    "required": ["values"],
                    "properties": {
                        "currency_code": {"type": ["string", "null"], "pattern": "^[A-Z]{3}$"},
                        "values": {"type": "array", "minItems": 1, "items": TIER_SCHEMA},
                    },
                    "additionalProperties": False,
                },
            ]
        },
    },
}


def _truthy(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    default_currency: str = "USD"
    strict_currency: bool = True
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            default_currency=env.get("PRICE_MATRIX_CURRENCY", "USD").strip().upper(),
            strict_currency=_truthy(env.get("PRICE_MATRIX_STRICT_CURRENCY", "true")),
            log_level=env.get("PRICE_MATRIX_LOG_LEVEL", "WARNING").strip().upper(),
        )


def validate_configuration(payload: Any) -> None:
    validator = Draft202012Validator(CONFIGURATION_SCHEMA)
    errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        problems = [f"{'.'.join(map(str, e.path)) or '<root>'}:{e.message}" for e in errors]
        raise ConfigurationError("invalid shipping method configuration", problems)


def load_configuration(path: str | Path) -> dict[str, Any]:
    """Load a stored shipping method configuration.

    The ``price_matrix`` entry is returned as a :class:`Matrix` (or ``None``).
    """
    p = Path(path)
    try:
        payload = json.loads(p.read_text())
    except FileNotFoundError as exc:
        raise ConfigurationError(f"configuration not found: {p}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"configuration is not valid JSON: {exc}") from exc

    validate_configuration(payload)

    config = dict(payload)
    if config.get("price_matrix") is not None:
        try:
            config["price_matrix"] = Matrix.from_dict(config["price_matrix"])
        except ValueError as exc:
            raise ConfigurationError("stored price matrix is inconsistent", [str(exc)]) from exc
    return config


def save_configuration(config: dict[str, Any], path: str | Path) -> None:
    payload = dict(config)
    matrix = payload.get("price_matrix")
    if isinstance(matrix, Matrix):
        payload["price_matrix"] = matrix.to_dict()
    validate_configuration(payload)

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(payload, indent=2))
