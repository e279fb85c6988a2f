"""
Command integration layer for the compounding vault
"""

from .operations import COMMAND_ARGS, VaultCommand, parse_command
from .vault_engine import VaultStepResult, step, step_or_raise

__all__ = [
    "COMMAND_ARGS",
    "VaultCommand",
    "parse_command",
    "VaultStepResult",
    "step",
    "step_or_raise",
]
