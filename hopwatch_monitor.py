# FILE: hopwatch_monitor.py
# PURPOSE: Starts the monitor and serves the live dashboard. Run this file.
# ==============================================================================
import argparse
import logging
import sys

import uvicorn

from hopwatch.config import (
    MonitorConfig, DEFAULT_TARGETS, DEFAULT_INTERVAL_S, DEFAULT_BUFFER_SECONDS,
    DEFAULT_HTTP_HOST, DEFAULT_HTTP_PORT,
)
from hopwatch.errors import ConfigError, NoTargetsError
from hopwatch.monitor import Monitor
from web.api import create_app


def build_argparser():
    ap = argparse.ArgumentParser(description="Ping targets and the first routers on the way, with a live graph.")
    ap.add_argument("hosts", nargs="*", help=f"Hosts or IPs to monitor (default: {', '.join(DEFAULT_TARGETS)})")
    ap.add_argument("-n", "--interval", type=float, default=DEFAULT_INTERVAL_S,
                    help="Sampling interval in seconds, rounded up to a multiple of 0.2")
    ap.add_argument("-b", "--buffer", type=float, default=DEFAULT_BUFFER_SECONDS,
                    help="Seconds of history shown in the graph")
    ap.add_argument("--deadline", type=float, default=None,
                    help="Per-probe timeout in seconds (default: the interval)")
    family = ap.add_mutually_exclusive_group()
    family.add_argument("-4", dest="ip_version", action="store_const", const=4, help="Resolve targets to IPv4")
    family.add_argument("-6", dest="ip_version", action="store_const", const=6, help="Resolve targets to IPv6")
    ap.add_argument("--log-dir", default=None, help="Directory for ping<N>.csv (default: next to this program)")
    ap.add_argument("--no-log", dest="log_enabled", action="store_false", help="Do not write a CSV log")
    ap.add_argument("--host", default=DEFAULT_HTTP_HOST, help="Dashboard bind address")
    ap.add_argument("--port", type=int, default=DEFAULT_HTTP_PORT, help="Dashboard port")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def config_from_args(args) -> MonitorConfig:
    return MonitorConfig(
        targets=args.hosts or list(DEFAULT_TARGETS),
        interval_s=args.interval,
        buffer_seconds=args.buffer,
        probe_deadline_s=args.deadline,
        ip_version=args.ip_version,
        log_dir=args.log_dir,
        log_enabled=args.log_enabled,
        http_host=args.host,
        http_port=args.port,
    )


def main(argv=None) -> int:
    args = build_argparser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(name)s] %(levelname)s: %(message)s",
    )

    try:
        monitor = Monitor(config_from_args(args))
    except (ConfigError, NoTargetsError) as e:
        print(f"Error: {e}")
        return 1

    print("\n--- hopwatch ---")
    for target in monitor.registry.targets():
        print(f"  monitoring {target.display}")
    print(f"==> Open your browser to: http://{monitor.config.http_host}:{monitor.config.http_port} <==")
    print("---------------------------------")

    monitor.start()
    try:
        uvicorn.run(create_app(monitor), host=monitor.config.http_host, port=monitor.config.http_port)
    except KeyboardInterrupt:
        pass
    finally:
        monitor.stop()
        if monitor.logger.path:
            print(f"Samples written to {monitor.logger.path}")
        print("Monitoring stopped.")
    return 0


if __name__ == '__main__':
    sys.exit(main())
