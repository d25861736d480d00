"""
Network Controller - Main Entry Point

Resets every impairment to its default (online) state, cycles the
configured impairment according to its frequency profiles, restores the
online state once the profiles are done and keeps the module alive until
it is asked to terminate.

Usage:
    sudo python3 -m netcontroller --config network_controller.yaml
    NETWORK_RUN_PROFILE=Offline NETWORK_ID=edge-net \\
        FREQUENCIES='[{offline_frequency: 30, online_frequency: 60, runs_count: 5}]' \\
        sudo -E python3 -m netcontroller
"""

import argparse
import asyncio
import logging
import sys
from typing import Awaitable, Callable, Dict, Optional

from .baseline import BaselineResetter
from .capabilities import ImpairmentCapability, build_capabilities, select_capability
from .config import Settings
from .errors import ConfigurationError
from .interfaces import get_docker_interface_name
from .models import ImpairmentVariant
from .reporting import StatusReporter, create_reporter
from .scheduler import CycleScheduler, ScheduleSummary
from .shutdown import ShutdownHandler
from .verifier import StatusTransitionVerifier

logger = logging.getLogger("NetworkController")


def setup_logging(log_level: str = "INFO"):
    """
    Setup logging configuration

    Args:
        log_level: Logging level
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


async def run_pipeline(
    settings: Settings,
    capabilities: Dict[ImpairmentVariant, ImpairmentCapability],
    reporter: StatusReporter,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
) -> Optional[ScheduleSummary]:
    """
    Baseline reset, scheduling of the selected variant, baseline reset again

    Args:
        settings: Loaded settings
        capabilities: All capabilities of the host, by variant
        reporter: Status sink
        sleep: Awaitable sleep used by the scheduler

    Returns:
        ScheduleSummary, or None when running online

    Raises:
        TestInitializationError: If the network cannot be confirmed online
            before the first or after the last cycle
        UnsupportedConfigurationError: If the selected variant has no capability
    """
    verifier = StatusTransitionVerifier(reporter)
    resetter = BaselineResetter(reporter, verifier)
    await resetter.reset(capabilities.values())

    capability = select_capability(settings.variant, capabilities)
    if capability is None:
        logger.info("No restrictions to be set, running as online")
        return None

    scheduler = CycleScheduler(
        verifier,
        reporter,
        run_profile=str(settings.run_profile),
        network_id=settings.network_id,
        sleep=sleep
    )
    summary = await scheduler.run(capability, settings.frequencies, settings.start_after)

    # Not reached on cancellation
    logger.info("All frequency profiles finished, restoring the network")
    await resetter.reset(capabilities.values())
    return summary


async def run(
    settings: Settings,
    shutdown: ShutdownHandler,
    reporter: Optional[StatusReporter] = None,
    resolve_interface: Callable[[str], Optional[str]] = get_docker_interface_name,
    capability_builder=build_capabilities
) -> int:
    """
    Run the network controller until shutdown is requested

    Unexpected errors are logged; the process still waits for the
    termination request and signals completion afterwards.

    Returns:
        Exit code (0 = pipeline finished or was cancelled)
    """
    logger.info(f"Starting with {settings.variant.value} Settings: {settings.run_profile.setting}")
    reporter = reporter or create_reporter(
        settings.test_result_coordinator_url, settings.module_id, settings.tracking_id
    )
    exit_code = 0

    try:
        interface = await asyncio.to_thread(resolve_interface, settings.network_id)
        if interface:
            capabilities = capability_builder(interface, settings.run_profile.setting, settings.variant)
            pipeline = shutdown.register(
                asyncio.create_task(run_pipeline(settings, capabilities, reporter))
            )
            await pipeline
        else:
            logger.error(f"No network interface found for docker network {settings.network_id}")
            exit_code = 1
    except asyncio.CancelledError:
        if not shutdown.is_cancelled:
            raise
        logger.info("Network controller cancelled")
    except Exception as e:
        logger.error(f"Unexpected exception thrown from run: {e}", exc_info=True)
        exit_code = 1
    finally:
        await reporter.close()

    await shutdown.wait_cancelled()
    shutdown.complete()
    return exit_code


async def run_until_terminated(settings: Settings) -> int:
    """Install signal handlers, run and honour the shutdown grace period"""
    shutdown = ShutdownHandler(settings.shutdown_grace)
    shutdown.install()
    try:
        main_task = asyncio.create_task(run(settings, shutdown))
        await shutdown.wait_cancelled()
        if not await shutdown.wait_for_completion():
            main_task.cancel()
            return 1
        return await main_task
    finally:
        shutdown.uninstall()


def main(argv=None):
    """Command line entry point"""
    parser = argparse.ArgumentParser(
        description="Network controller: cycles network impairments for resilience tests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--config", default=None,
                        help="YAML settings file (default: $NETWORK_CONTROLLER_CONFIG)")
    parser.add_argument("--log-level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Override the configured log level")
    args = parser.parse_args(argv)

    try:
        settings = Settings.load(args.config)
    except ConfigurationError as e:
        setup_logging("INFO")
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    setup_logging(args.log_level or settings.log_level)

    try:
        exit_code = asyncio.run(run_until_terminated(settings))
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
