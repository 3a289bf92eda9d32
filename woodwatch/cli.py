"""
Woodwatch CLI - Command line interface for the Woodwatch daemon.

Provides commands for:
- Configuration validation
- Peer inspection (list, match an address)
- Running the daemon in the foreground
- Sending a test event to a peer's webhook
"""

import argparse
import sys
from pathlib import Path

from woodwatch.config import Config, load_config
from woodwatch.core import Event
from woodwatch.daemon import WoodwatchDaemon
from woodwatch.logging_config import get_logger, setup_logging
from woodwatch.monitor import utc_now
from woodwatch.peer import PeerRegistry, load_peers
from woodwatch.registry import create_notifier

logger = get_logger(__name__)


def _load(config_path: Path) -> tuple[Config, PeerRegistry]:
    config = load_config(config_path)
    return config, load_peers(config)


def cmd_config_validate(args: argparse.Namespace) -> int:
    """Validate configuration file and the peers it describes."""
    config_path = Path(args.config)

    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}", file=sys.stderr)
        return 1

    try:
        config, peers = _load(config_path)
    except Exception as e:
        print(f"✗ Configuration invalid: {e}", file=sys.stderr)
        return 1

    print(f"✓ Configuration valid: {config_path}")
    print(f"  - {len(peers)} peer(s) configured")
    print(f"  - Monitor cycle: {config.monitor_cycle}")
    print(f"  - Peer timeout: {config.peer_timeout}")
    print(f"  - Notifier: {config.notifier.type}")
    return 0


def cmd_peer_list(args: argparse.Namespace) -> int:
    """List configured peers with their resolved settings."""
    try:
        _, peers = _load(Path(args.config))
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    print(f"Configured peers ({len(peers)}):\n")
    for i, peer in enumerate(peers, 1):
        print(f"{i}. {peer.name}")
        print(f"   Network:        {peer.network}")
        print(f"   Up threshold:   {peer.up_threshold}")
        print(f"   Down threshold: {peer.down_threshold}")
        print(f"   Webhook:        {peer.webhook or '(none)'}")
        print()
    return 0


def cmd_peer_match(args: argparse.Namespace) -> int:
    """Show which peer packets from an address are routed to."""
    try:
        _, peers = _load(Path(args.config))
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    peer = peers.find_peer_for(args.address)
    if peer is None:
        print(f"No configured peer matches {args.address}")
        return 1

    print(f"{args.address} → {peer.name} ({peer.network})")
    return 0


def cmd_daemon_start(args: argparse.Namespace) -> int:
    """Run the Woodwatch daemon in the foreground."""
    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}", file=sys.stderr)
        return 1

    try:
        print(f"Starting Woodwatch daemon with config: {config_path}")
        daemon = WoodwatchDaemon(str(config_path), listen_address=args.listen, verbose=args.verbose)
        daemon.install_signal_handlers()
        daemon.start()
        return 0
    except PermissionError:
        print("Error: capturing ICMP packets requires root or CAP_NET_RAW", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error running daemon: {e}", file=sys.stderr)
        return 1


def cmd_notify(args: argparse.Namespace) -> int:
    """Send a synthetic event for a peer to its webhook."""
    try:
        config, peers = _load(Path(args.config))
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    peer = peers.get(args.peer)
    if peer is None:
        print(f"Error: Peer '{args.peer}' not found", file=sys.stderr)
        print("\nAvailable peers:", file=sys.stderr)
        for p in peers:
            print(f"  - {p.name}", file=sys.stderr)
        return 1

    if not peer.webhook:
        print(f"Error: Peer '{peer.name}' has no webhook configured", file=sys.stderr)
        return 1

    event = Event.for_transition(
        peer_name=peer.name,
        prev_state=str(peer.state),
        new_state=args.state,
        last_seen=None,
        timestamp=utc_now(),
    )
    print(f"Sending test event: {event.title}")

    try:
        notifier = create_notifier(config.notifier.type, config.notifier.config)
        success = notifier.notify(event, peer.webhook)
    except Exception as e:
        print(f"  ✗ {config.notifier.type}: {e}")
        logger.exception("Error sending test event")
        return 1

    status = "✓" if success else "✗"
    print(f"  {status} {config.notifier.type} → {peer.webhook}")
    return 0 if success else 1


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="woodwatch",
        description="Woodwatch - peer liveness monitoring by ICMP echo requests"
    )
    parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: WARNING, INFO for daemon start)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Config commands
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="subcommand")
    config_subparsers.add_parser("validate", help="Validate configuration file")

    # Peer commands
    peer_parser = subparsers.add_parser("peer", help="Peer inspection")
    peer_subparsers = peer_parser.add_subparsers(dest="subcommand")
    peer_subparsers.add_parser("list", help="List all configured peers")
    match_parser = peer_subparsers.add_parser("match", help="Show which peer an address routes to")
    match_parser.add_argument("address", help="Source IP address")

    # Daemon commands
    daemon_parser = subparsers.add_parser("daemon", help="Daemon management")
    daemon_subparsers = daemon_parser.add_subparsers(dest="subcommand")
    start_parser = daemon_subparsers.add_parser("start", help="Start daemon (foreground)")
    start_parser.add_argument(
        "--listen",
        default="0.0.0.0",
        help="Interface address to listen to for IPv4 ICMP messages (default: 0.0.0.0)"
    )
    start_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log packet routing and dispatch every state change"
    )

    # Notify command
    notify_parser = subparsers.add_parser("notify", help="Send a test event to a peer's webhook")
    notify_parser.add_argument("peer", help="Peer name")
    notify_parser.add_argument(
        "-s", "--state",
        default="Up",
        help="New state reported in the test event (default: Up)"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    level = args.log_level
    if args.command == "daemon" and level == "WARNING":
        level = "INFO"
    setup_logging(level=level)

    if args.command == "config" and args.subcommand == "validate":
        return cmd_config_validate(args)

    if args.command == "peer":
        if args.subcommand == "list":
            return cmd_peer_list(args)
        if args.subcommand == "match":
            return cmd_peer_match(args)

    if args.command == "daemon" and args.subcommand == "start":
        return cmd_daemon_start(args)

    if args.command == "notify":
        return cmd_notify(args)

    parser.print_help()
    return 0


if __name__ == '__main__':
    sys.exit(main())
