"""
Composition point: picks the gateway and launcher once at startup.

This is the only place the environment is consulted for the core binary
override; everything below receives explicit values.
"""

from __future__ import annotations

import os
from typing import Mapping

from loguru import logger

from terminaut.config_loader import CORE_BIN_ENV, core_timeout, launcher_timeout
from terminaut.core_client import ProcessGateway
from terminaut.errors import BinaryNotFound, CoreError
from terminaut.fallback import FallbackGateway
from terminaut.gateway import CoreGateway
from terminaut.launcher import DEFAULT_INTERPRETER, TerminalLauncher


def create_gateway(
    config: dict,
    environ: Mapping[str, str] | None = None,
    force_fallback: bool = False,
    explicit_binary: str | None = None,
) -> CoreGateway:
    """
    Select the gateway implementation.

    Args:
        config: Merged configuration (see config_loader.DEFAULT_CONFIG)
        environ: Environment to read TERMINAUT_CORE_BIN from (default os.environ)
        force_fallback: Skip discovery and use the in-process gateway
        explicit_binary: Core path given by the caller (beats config and env)

    Returns:
        ProcessGateway when a usable core is found, else FallbackGateway
    """
    if force_fallback:
        logger.info(
            "Using in-process gateway (requested)",
            operation="create_gateway",
            status="fallback",
        )
        return FallbackGateway()

    environ = os.environ if environ is None else environ
    core_config = config.get("core", {})
    explicit = explicit_binary or core_config.get("binary") or None
    override = environ.get(CORE_BIN_ENV) or None

    try:
        gateway = ProcessGateway(explicit, override, timeout=core_timeout(config))
    except BinaryNotFound as e:
        logger.warning(
            "Core binary not found - falling back to in-process gateway",
            operation="create_gateway",
            status="fallback",
            searched=e.searched,
        )
        return FallbackGateway()

    minimum = core_config.get("min_version")
    if minimum:
        try:
            compatible = gateway.is_compatible(minimum)
        except CoreError as e:
            logger.warning(
                "Core version check failed - falling back to in-process gateway",
                operation="create_gateway",
                status="fallback",
                error=str(e),
            )
            return FallbackGateway()
        if not compatible:
            logger.warning(
                "Core binary older than required - falling back to in-process gateway",
                operation="create_gateway",
                status="fallback",
                minimum=minimum,
                binary=str(gateway.executable),
            )
            return FallbackGateway()

    logger.debug(
        "Using core gateway",
        operation="create_gateway",
        status="success",
        binary=str(gateway.executable),
    )
    return gateway


def create_launcher(config: dict) -> TerminalLauncher:
    launcher_config = config.get("launcher", {})
    return TerminalLauncher(
        interpreter=launcher_config.get("interpreter") or DEFAULT_INTERPRETER,
        timeout=launcher_timeout(config),
    )
