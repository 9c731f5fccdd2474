import json
import os
from typing import Any


_TRUTHY_VALUES = {"1", "true", "yes", "on"}


def stable_json_dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def nonempty_str(value: Any) -> str | None:
    if isinstance(value, str):
        token = value.strip()
        if token != "":
            return token
    return None


def env_str(var_name: str) -> str | None:
    return nonempty_str(os.getenv(var_name))


def env_truthy(var_name: str) -> bool:
    raw = os.getenv(var_name)
    if not isinstance(raw, str):
        return False
    return raw.strip().lower() in _TRUTHY_VALUES
