"""
Vault execution adapter.

Imperative-shell wrapper around the reinvestment engine:
- Parses a command payload (or takes a ready `VaultCommand`).
- Dispatches it to the engine on behalf of `caller`.
- Reports the outcome as a `VaultStepResult` instead of raising.

Failed commands leave the engine untouched (every engine operation is atomic).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

from ..core.errors import VaultError
from ..core.reinvest import ReinvestmentEngine
from .operations import VaultCommand, parse_command


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VaultStepResult:
    ok: bool
    effects: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    code: Optional[str] = None
    exception: Optional[BaseException] = None


Handler = Callable[[ReinvestmentEngine, Mapping[str, Any], str], Dict[str, Any]]


def _deposit(engine: ReinvestmentEngine, args: Mapping[str, Any], caller: str) -> Dict[str, Any]:
    shares = engine.vault.deposit(args["assets"], args["receiver"], caller=caller)
    return {"assets": args["assets"], "shares": shares}


def _mint(engine: ReinvestmentEngine, args: Mapping[str, Any], caller: str) -> Dict[str, Any]:
    assets = engine.vault.mint(args["shares"], args["receiver"], caller=caller)
    return {"assets": assets, "shares": args["shares"]}


def _withdraw(engine: ReinvestmentEngine, args: Mapping[str, Any], caller: str) -> Dict[str, Any]:
    shares = engine.vault.withdraw(args["assets"], args["receiver"], args["owner"], caller=caller)
    return {"assets": args["assets"], "shares": shares}


def _redeem(engine: ReinvestmentEngine, args: Mapping[str, Any], caller: str) -> Dict[str, Any]:
    assets = engine.vault.redeem(args["shares"], args["receiver"], args["owner"], caller=caller)
    return {"assets": assets, "shares": args["shares"]}


def _reinvest(engine: ReinvestmentEngine, args: Mapping[str, Any], caller: str) -> Dict[str, Any]:
    receipt = engine.reinvest(caller=caller)
    return {
        "reward": receipt.reward,
        "liquidity": receipt.liquidity,
        "total_deposits": receipt.total_deposits,
    }


def _emergency_withdraw(engine: ReinvestmentEngine, args: Mapping[str, Any], caller: str) -> Dict[str, Any]:
    amount = engine.emergency_withdraw(caller=caller)
    return {"amount": amount, "total_deposits": engine.total_deposits}


def _recover_erc20(engine: ReinvestmentEngine, args: Mapping[str, Any], caller: str) -> Dict[str, Any]:
    engine.recover_erc20(args["token"], args["amount"], caller=caller)
    return {"token": args["token"], "amount": args["amount"]}


_DISPATCH: Dict[str, Handler] = {
    "deposit": _deposit,
    "mint": _mint,
    "withdraw": _withdraw,
    "redeem": _redeem,
    "reinvest": _reinvest,
    "emergency_withdraw": _emergency_withdraw,
    "recover_erc20": _recover_erc20,
}


def step(
    engine: ReinvestmentEngine,
    cmd: Union[VaultCommand, Mapping[str, Any]],
    *,
    caller: str,
) -> VaultStepResult:
    """Execute one command. Returns ``ok=False`` with an error code on rejection."""
    try:
        command = cmd if isinstance(cmd, VaultCommand) else parse_command(cmd)
    except ValueError as exc:
        return VaultStepResult(ok=False, error=str(exc), code="invalid_command", exception=exc)

    handler = _DISPATCH.get(command.tag)
    if handler is None:
        return VaultStepResult(ok=False, error=f"unknown action: {command.tag}", code="invalid_command")

    try:
        effects = handler(engine, command.args, caller)
    except VaultError as exc:
        logger.info("Command %s rejected for %s: %s", command.tag, caller, exc)
        return VaultStepResult(ok=False, error=str(exc), code=exc.code, exception=exc)
    except (TypeError, ValueError) as exc:
        logger.info("Command %s rejected for %s: %s", command.tag, caller, exc)
        return VaultStepResult(ok=False, error=str(exc), code="invalid_param", exception=exc)

    last = engine.events.last()
    if last is not None:
        effects["event"] = type(last).__name__
    return VaultStepResult(ok=True, effects=effects)


def step_or_raise(
    engine: ReinvestmentEngine,
    cmd: Union[VaultCommand, Mapping[str, Any]],
    *,
    caller: str,
) -> VaultStepResult:
    """Like ``step()`` but re-raises the underlying exception on rejection."""
    result = step(engine, cmd, caller=caller)
    if result.ok:
        return result
    if result.exception is not None:
        raise result.exception
    raise ValueError(result.error or "command rejected")
