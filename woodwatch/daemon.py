"""
Main daemon entry point for Woodwatch.
"""

import argparse
import signal
import sys
import threading
from typing import Any

from woodwatch.config import load_config
from woodwatch.logging_config import get_logger, setup_logging
from woodwatch.monitor import LivenessMonitor, MonitorError

logger = get_logger(__name__)

QUIT_SIGNALS = (signal.SIGHUP, signal.SIGINT, signal.SIGTERM, signal.SIGQUIT)


class WoodwatchDaemon:
    """Runs a liveness monitor until a quit signal arrives."""

    def __init__(self, config_path: str, listen_address: str = "0.0.0.0", verbose: bool = False) -> None:
        """
        Initialize the daemon.

        Args:
            config_path: Path to configuration file
            listen_address: Interface address to receive echo requests on
            verbose: Dispatch and log every state change

        Raises:
            FileNotFoundError: If the configuration file is missing
            ValueError: If the configuration or a peer is invalid
        """
        self.config = load_config(config_path)
        self.monitor = LivenessMonitor(
            self.config,
            listen_address=listen_address,
            verbose=verbose,
        )

    def install_signal_handlers(self) -> None:
        """Stop the monitor on SIGHUP, SIGINT, SIGTERM and SIGQUIT."""
        def signal_handler(sig: int, _frame: Any) -> None:
            logger.info("Received %s, shutting down", signal.Signals(sig).name)
            self.stop()

        for sig in QUIT_SIGNALS:
            signal.signal(sig, signal_handler)

    def start(self) -> None:
        """Run the monitor in the foreground until stopped."""
        logger.info("Starting Woodwatch daemon with %s peer(s)", len(self.monitor.peers))
        self.monitor.listen()
        logger.info("Woodwatch daemon stopped")

    def stop(self) -> None:
        """Stop the monitor, also before it is listening. Returns without waiting."""
        threading.Thread(target=self.monitor.stop, name="woodwatch-stop").start()


def main() -> None:
    """Entry point for the daemon."""
    parser = argparse.ArgumentParser(description="Woodwatch peer liveness daemon")
    parser.add_argument(
        '--config',
        required=True,
        help='Path to a YAML or JSON configuration file'
    )
    parser.add_argument(
        '--listen',
        default='0.0.0.0',
        help='Interface address to listen to for IPv4 ICMP messages (default: 0.0.0.0)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Log packet routing and dispatch every state change'
    )
    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Log level (default: INFO)'
    )
    parser.add_argument(
        '--log-file',
        help='Optional log file path (logs to console if not specified)'
    )
    args = parser.parse_args()

    setup_logging(level=args.log_level, log_file=args.log_file)

    try:
        daemon = WoodwatchDaemon(args.config, listen_address=args.listen, verbose=args.verbose)
    except (OSError, ValueError, MonitorError) as e:
        logger.critical("Error loading config %s: %s", args.config, e)
        sys.exit(1)

    daemon.install_signal_handlers()

    try:
        daemon.start()
    except PermissionError:
        logger.critical("Capturing ICMP packets requires root or CAP_NET_RAW")
        sys.exit(1)
    except Exception:
        logger.critical("Fatal error", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
