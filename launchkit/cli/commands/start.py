"""
Start command implementation.

Bootstraps the integrated server, prints its endpoint and credential, then
supervises it until it exits or the user interrupts.
"""

import logging

from launchkit.bootstrap import BootstrapCoordinator, BootstrapState
from launchkit.cli.utils import load_cli_config
from launchkit.core.events import KILL_EVENT, EventBus

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the start command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (the server's exit code once it stops on its own)
    """
    config, layout = load_cli_config(args)

    bus = EventBus()
    coordinator = BootstrapCoordinator(config, layout, BootstrapState())
    coordinator.attach(bus)

    jvm_args = args.jvm_args if args.jvm_args is not None else config.server.jvm_args
    result = coordinator.bootstrap(jvm_args)
    print(result.as_message(), flush=True)

    managed = coordinator.state.process
    try:
        returncode = managed.wait()
    except KeyboardInterrupt:
        logger.info("Stopping integrated server...")
        bus.publish(KILL_EVENT)
        return 130
    finally:
        coordinator.detach()

    logger.info(f"Integrated server exited with code {returncode}")
    coordinator.kill()
    return returncode
