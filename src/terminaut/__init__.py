"""
Terminaut - browse directories and open terminal windows there.

The gateway (``CoreGateway``) is fulfilled by the external ``term-core-cli``
process when it can be found, otherwise by an in-process fallback.
"""

__version__ = "0.3.0"

from terminaut.core_client import ProcessGateway
from terminaut.errors import (
    AutomationFailed,
    BinaryNotFound,
    CommandFailed,
    CommandTimeout,
    CoreError,
    DecodeFailed,
)
from terminaut.fallback import FallbackGateway
from terminaut.gateway import CoreGateway
from terminaut.launcher import TerminalKind, TerminalLauncher

__all__ = [
    "__version__",
    "AutomationFailed",
    "BinaryNotFound",
    "CommandFailed",
    "CommandTimeout",
    "CoreError",
    "CoreGateway",
    "DecodeFailed",
    "FallbackGateway",
    "ProcessGateway",
    "TerminalKind",
    "TerminalLauncher",
]
