"""
Command-line interface for NetTrace.
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .models import DEFAULT_RECORD_TYPES, DNSRecordType

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="nettrace",
        description="Network diagnostics: ping, traceroute, DNS, WHOIS and TLS certificate checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Ping a host five times
  nettrace ping example.com -c 5

  # Trace the path to a host
  nettrace traceroute example.com --max-hops 20

  # Look up MX and TXT records as CSV
  nettrace --format csv dns example.com -t MX -t TXT

  # WHOIS lookup saved to a file
  nettrace --output whois.json whois example.com

  # Check a certificate on a non-standard port
  nettrace ssl example.com --port 8443 --format text
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    # Output options
    parser.add_argument(
        "--format",
        choices=["json", "csv", "text"],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument("--output", "-o", metavar="FILE", help="Write output to file instead of stdout")

    # Network options
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Per-operation timeout in seconds (default: 5.0)",
    )
    parser.add_argument(
        "--retry",
        type=int,
        default=3,
        help="Attempts per network operation (default: 3)",
    )
    parser.add_argument(
        "--retry-delay",
        type=float,
        default=1.0,
        help="Base delay between attempts in seconds (default: 1.0)",
    )
    parser.add_argument(
        "--max-concurrency",
        type=int,
        default=10,
        help="Maximum concurrent operations (default: 10)",
    )
    parser.add_argument(
        "--dns-server",
        action="append",
        metavar="ADDR",
        help="DNS server to query (repeatable; default: system resolver)",
    )

    # Logging options
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parser.add_argument("--log-file", metavar="FILE", help="Write logs to file")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    ping = subparsers.add_parser("ping", help="Send ICMP echo requests")
    ping.add_argument("host", help="Hostname or IP address")
    ping.add_argument("--count", "-c", type=int, default=4, help="Number of echo requests (default: 4)")
    ping.add_argument(
        "--interval", "-i", type=float, default=1.0, help="Seconds between requests (default: 1.0)"
    )
    ping.add_argument("--packet-size", "-s", type=int, default=64, help="Payload size in bytes (default: 64)")
    ping.add_argument("--ttl", type=int, default=64, help="IP time-to-live (default: 64)")
    ping.add_argument("--ipv6", "-6", action="store_true", help="Use IPv6")

    trace = subparsers.add_parser("traceroute", help="Trace the route to a host")
    trace.add_argument("host", help="Hostname or IP address")
    trace.add_argument("--max-hops", "-m", type=int, default=30, help="Maximum hops (default: 30)")
    trace.add_argument("--queries", "-q", type=int, default=3, help="Probes per hop (default: 3)")
    trace.add_argument("--packet-size", "-s", type=int, default=60, help="Payload size in bytes (default: 60)")
    trace.add_argument("--ipv6", "-6", action="store_true", help="Use IPv6")

    dns = subparsers.add_parser("dns", help="Look up DNS records")
    dns.add_argument("domain", help="Domain name (or IP address for PTR)")
    dns.add_argument(
        "--type",
        "-t",
        dest="record_types",
        action="append",
        metavar="TYPE",
        help=f"Record type, repeatable ({', '.join(t.value for t in DNSRecordType)}; "
        f"default: {' '.join(t.value for t in DEFAULT_RECORD_TYPES)})",
    )

    whois = subparsers.add_parser("whois", help="WHOIS lookup of a domain or IP address")
    whois.add_argument("query", help="Domain name or IP address")

    ssl = subparsers.add_parser("ssl", help="Check a server's TLS certificate")
    ssl.add_argument("host", help="Hostname or IP address")
    ssl.add_argument("--port", "-p", type=int, default=443, help="Port (default: 443)")

    return parser


def validate_args(args: argparse.Namespace) -> Optional[str]:
    """
    Validate parsed arguments.

    Returns:
        Error message or None if valid
    """
    if args.timeout <= 0:
        return "Timeout must be greater than 0"
    if args.retry < 0:
        return "Retry attempts must not be negative"
    if args.retry_delay < 0:
        return "Retry delay must not be negative"
    if args.max_concurrency < 1:
        return "Max concurrency must be at least 1"

    if args.command == "ping" and args.count < 1:
        return "Count must be at least 1"
    if args.command == "traceroute" and not 1 <= args.max_hops <= 255:
        return "Max hops must be between 1 and 255"
    if args.command == "ssl" and not 1 <= args.port <= 65535:
        return "Port must be between 1 and 65535"
    if args.command == "dns" and args.record_types:
        valid = {t.value for t in DNSRecordType}
        for record_type in args.record_types:
            if record_type.upper() not in valid:
                return f"Unsupported record type: {record_type}"

    return None


def build_parameters(args: argparse.Namespace):
    """Parameters object for the selected subcommand."""
    from .parameters import (
        DNSParameters,
        PingParameters,
        SSLParameters,
        TracerouteParameters,
        WHOISParameters,
    )

    if args.command == "ping":
        return PingParameters(
            host=args.host,
            count=args.count,
            interval=args.interval,
            timeout=args.timeout,
            packet_size=args.packet_size,
            ttl=args.ttl,
            ipv6=args.ipv6,
        )
    if args.command == "traceroute":
        return TracerouteParameters(
            host=args.host,
            max_hops=args.max_hops,
            timeout=args.timeout,
            queries=args.queries,
            packet_size=args.packet_size,
            ipv6=args.ipv6,
        )
    if args.command == "dns":
        if args.record_types:
            return DNSParameters(
                domain=args.domain,
                record_types=[DNSRecordType.parse(t) for t in args.record_types],
            )
        return DNSParameters(domain=args.domain)
    if args.command == "whois":
        return WHOISParameters(query=args.query)
    return SSLParameters(host=args.host, port=args.port)


async def run_command(args: argparse.Namespace, client=None) -> int:
    """
    Run the selected diagnostic and emit its result.

    Returns:
        Exit code
    """
    from .client import NetworkClient
    from .config import NetworkConfig
    from .errors import NetTraceError
    from .output import write_output, write_stdout
    from .tools import create_default_registry

    try:
        if client is None:
            config = NetworkConfig(
                timeout=args.timeout,
                dns_servers=list(args.dns_server or []),
                max_concurrency=args.max_concurrency,
                retry_attempts=args.retry,
                retry_delay=args.retry_delay,
            )
            client = NetworkClient(config)
        registry = create_default_registry(client)
        tool = registry.get(args.command)
        result = await tool.execute(build_parameters(args))
        data = result.export(args.format)
    except NetTraceError as e:
        print(f"Error [{e.code.value}]: {e}", file=sys.stderr)
        return 1

    if args.output:
        write_output(args.output, data)
        print(f"Results written to {args.output}", file=sys.stderr)
    else:
        write_stdout(data)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Validate arguments
    error = validate_args(args)
    if error:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    # Set up logging
    import logging

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        filename=args.log_file if args.log_file else None,
    )

    try:
        import asyncio

        return asyncio.run(run_command(args))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logging.exception("Fatal error")
        return 1


if __name__ == "__main__":
    sys.exit(main())
