import json
import os
import re
from types import MappingProxyType
from typing import NamedTuple, Optional

DEFAULT_IGNORED_HEADERS = ("accept-encoding",)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class ConfigError(Exception):
    """Raised when the rule file cannot be turned into a rule list"""


class Rule(NamedTuple):
    """One configured match-and-respond behavior"""
    status: int
    method: str
    url_filter: str
    headers_filter: Optional[MappingProxyType]
    response: str
    encoding: str
    ignored_headers: tuple
    headers: MappingProxyType


def _parse_status(value):
    if isinstance(value, bool):
        return 200
    if isinstance(value, (int, float)):
        try:
            status = int(value)
        except (ValueError, OverflowError):
            return 200
    else:
        m = _LEADING_INT.match(str(value)) if value is not None else None
        if not m:
            return 200
        status = int(m.group(1))
    return status if status > 0 else 200


def _plain_numbers(value):
    """Integral floats as ints, so 1e3 serializes as 1000 like JSON.stringify"""
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    if isinstance(value, dict):
        return {k: _plain_numbers(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain_numbers(v) for v in value]
    return value


def _text(value):
    if isinstance(value, str):
        return value
    # Numbers still count, e.g. urlFilter 123 matches "/123"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(_plain_numbers(value))
    return ""


def _mapping(value):
    if not isinstance(value, dict):
        return None
    return MappingProxyType(dict(value))


def normalize_rule(raw) -> Rule:
    """Fill defaults on a raw config entry, producing a canonical Rule"""
    if not isinstance(raw, dict):
        raw = {}

    response = raw.get("response")
    if response is None:
        response = ""
    elif not isinstance(response, str):
        # Compact like JSON.stringify so the body is stable text from now on
        response = json.dumps(_plain_numbers(response), separators=(",", ":"), ensure_ascii=False)

    ignored = raw.get("ignoredHeaders")
    if isinstance(ignored, (list, tuple)):
        ignored = tuple(h for h in ignored if isinstance(h, str))
    else:
        ignored = DEFAULT_IGNORED_HEADERS

    return Rule(
        status=_parse_status(raw.get("status")),
        method=_text(raw.get("method")),
        url_filter=_text(raw.get("urlFilter")),
        headers_filter=_mapping(raw.get("headersFilter")),
        response=response,
        encoding=_text(raw.get("encoding")),
        ignored_headers=ignored,
        headers=_mapping(raw.get("headers")) or MappingProxyType({}),
    )


DEFAULT_RULE = normalize_rule({
    "status": 200,
    "response": "No rule was matched.",
    "urlFilter": "",
})


def load_rules(config_file=None):
    """Load and normalize the rule list from a JSON file"""
    if config_file is None:
        return ()

    if not os.path.exists(config_file):
        raise ConfigError(f"Configuration file is missing: '{config_file}'")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to load mock rules from '{config_file}': {e}") from e

    if not isinstance(config, list):
        raise ConfigError(f"Configuration in '{config_file}' must be a JSON array of rules")

    return tuple(normalize_rule(entry) for entry in config)
