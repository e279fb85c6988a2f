"""
Vault command parsing.

Turns loosely-typed command payloads (e.g. decoded JSON) into `VaultCommand`
records with validated arguments. Parsing never touches vault state.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Literal, Tuple


CommandTag = Literal[
    "deposit",
    "mint",
    "withdraw",
    "redeem",
    "reinvest",
    "emergency_withdraw",
    "recover_erc20",
]

# tag -> ((arg name, kind), ...) where kind is "amount" or "account"
COMMAND_ARGS: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "deposit": (("assets", "amount"), ("receiver", "account")),
    "mint": (("shares", "amount"), ("receiver", "account")),
    "withdraw": (("assets", "amount"), ("receiver", "account"), ("owner", "account")),
    "redeem": (("shares", "amount"), ("receiver", "account"), ("owner", "account")),
    "reinvest": (),
    "emergency_withdraw": (),
    "recover_erc20": (("token", "account"), ("amount", "amount")),
}


def _require_str(value: Any, *, name: str, non_empty: bool = True, max_len: int = 4096) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    if non_empty and not value:
        raise ValueError(f"{name} must be non-empty")
    if max_len > 0 and len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str, non_negative: bool = False) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int")
    if non_negative and value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


@dataclass(frozen=True)
class VaultCommand:
    tag: CommandTag
    args: Mapping[str, Any]


def parse_command(payload: Any) -> VaultCommand:
    """
    Parse `{"tag": ..., "args": {...}}` into a `VaultCommand`.

    Raises:
        ValueError: If the tag is unknown or an argument is missing / malformed
    """
    if not isinstance(payload, Mapping):
        raise ValueError("command must be an object")
    tag = _require_str(payload.get("tag"), name="tag")
    arg_spec = COMMAND_ARGS.get(tag)
    if arg_spec is None:
        raise ValueError(f"unknown action: {tag}")

    raw_args = payload.get("args", {})
    if not isinstance(raw_args, Mapping):
        raise ValueError("args must be an object")
    unknown = sorted(set(raw_args) - {name for name, _ in arg_spec})
    if unknown:
        raise ValueError(f"unexpected args for {tag}: {unknown}")

    args: Dict[str, Any] = {}
    for name, kind in arg_spec:
        if name not in raw_args:
            raise ValueError(f"missing param {name}")
        if kind == "amount":
            args[name] = _require_int(raw_args[name], name=name, non_negative=True)
        else:
            args[name] = _require_str(raw_args[name], name=name)
    return VaultCommand(tag=tag, args=args)  # type: ignore[arg-type]
