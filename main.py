#!/usr/bin/env python3
"""
7G Smart City - Multi-Band Slice Simulator

Main entry point for the application.
Runs the default city scenario with the live dashboard and the
Prometheus metrics endpoint.

Usage:
    python main.py                        # Dashboard, run until window closed
    python main.py --headless -d 30       # No UI, run for 30 seconds
    python main.py --transform aes        # AES-GCM instead of the stream mask
    python main.py --help                 # Show all options

Options:
    --headless         Run without the PyQt6 dashboard
    --duration         Seconds to run (0 = until closed / Ctrl+C)
    --transform        Confidentiality transform: stream | aes
    --metrics-port     Prometheus port (0 disables the exporter)
    --windowed         Controller reacts to per-tick deltas instead of totals
"""

import argparse
import logging
import signal
import sys
import threading

from sevengcity.city import CityConfig, SmartCity
from sevengcity.config import METRICS_PORT
from sevengcity.control.controller import ControllerConfig
from sevengcity.crypto.transforms import TRANSFORMS
from sevengcity.metrics.exporter import MetricsExporter


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="7G Smart City - multi-band slice simulator with adaptive bandwidth control",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                          # Run with dashboard
  python main.py --headless -d 20         # 20 second headless run
  curl http://localhost:9400/metrics      # Scrape metrics while running
        """
    )
    parser.add_argument('-d', '--duration', type=float, default=0.0,
                        help='Seconds to run (0 = until window closed or Ctrl+C)')
    parser.add_argument('--transform', choices=sorted(TRANSFORMS), default='stream',
                        help='Confidentiality transform (default: stream)')
    parser.add_argument('--headless', action='store_true',
                        help='Run without the dashboard window')
    parser.add_argument('--metrics-port', type=int, default=METRICS_PORT,
                        help=f'Prometheus exporter port, 0 disables (default: {METRICS_PORT})')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for loss/jitter/payload draws')
    parser.add_argument('--windowed', action='store_true',
                        help='Windowed controller signal instead of cumulative')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: INFO)')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Build the city, run it, print final metrics."""
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    config = CityConfig(
        transform=args.transform,
        seed=args.seed,
        controller=ControllerConfig(windowed=args.windowed),
    )
    city = SmartCity(config)
    exporter = MetricsExporter(city.metrics, port=args.metrics_port) if args.metrics_port else None

    print(f"🔐 Crypto Provider: {city.transform.name()}")
    city.start()
    if exporter is not None:
        exporter.start()
        print(f"📊 Prometheus: http://localhost:{exporter.bound_port}/metrics")
    print("=== 7G Smart City Simulator Started ===")

    stop = threading.Event()
    try:
        if args.headless:
            signal.signal(signal.SIGINT, lambda sig, frame: stop.set())
            stop.wait(args.duration if args.duration > 0 else None)
        else:
            from PyQt6.QtCore import QTimer
            from PyQt6.QtWidgets import QApplication
            from sevengcity.ui.dashboard import CityDashboard

            app = QApplication(sys.argv)
            app.setStyle('Fusion')
            window = CityDashboard(city.metrics, city.transform.name())
            window.show()

            def signal_handler(sig, frame):
                print("\nSignal received, closing...")
                window.close()

            signal.signal(signal.SIGINT, signal_handler)
            if args.duration > 0:
                QTimer.singleShot(int(args.duration * 1000), window.close)
            app.exec()
    finally:
        city.close()
        if exporter is not None:
            exporter.close()
        print("\n=== Final Metrics ===")
        print(city.metrics.summary())
        print("=== 7G Smart City Simulator Finished ===")
    return 0


if __name__ == "__main__":
    sys.exit(main())
