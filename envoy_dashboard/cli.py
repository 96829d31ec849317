# envoy_dashboard/cli.py
import argparse

def build_parser():
    parser = argparse.ArgumentParser(
        prog="envoy-dashboard",
        description="Envoy solar + weather snapshot"
    )

    parser.add_argument(
        "--config",
        default="envoy_dashboard.conf",
        help="Path to configuration file"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging"
    )

    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress log output (snapshot is still printed)"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit JSON instead of human-readable text"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("snapshot", help="Fetch weather and solar data and print one snapshot")
    sub.add_parser("solar", help="Print only the reconciled solar metrics")
    sub.add_parser("weather", help="Print only the current weather conditions")

    return parser
