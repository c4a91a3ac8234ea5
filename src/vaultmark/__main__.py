# Vaultmark - Main Entry Point
#
# Starts the local API server. Host and port default to the configured
# values (VAULTMARK_HOST / VAULTMARK_PORT).

import argparse
import sys

from . import __version__
from .core import EventSeverity, EventType, get_audit_logger, get_settings


def main(argv=None):
    """Main entry point for the vaultmark command."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Vaultmark - encrypted password vault and bookmark import/export",
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help=f"API host (default: {settings.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"API port (default: {settings.port})",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Vaultmark v{__version__}",
    )
    args = parser.parse_args(argv)

    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="Vaultmark starting",
        details={"version": __version__, "host": args.host, "port": args.port},
    )

    print(f"Starting Vaultmark API on {args.host}:{args.port} (Ctrl+C to stop)")

    from .api.main import start_api_server

    try:
        start_api_server(host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\nShutting down...")
        get_audit_logger().log_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.INFO,
            message="Vaultmark stopped (user interrupt)",
        )
    except Exception as e:
        print(f"\nError: {e}")
        get_audit_logger().log_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.CRITICAL,
            message=f"Vaultmark crashed: {e}",
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
