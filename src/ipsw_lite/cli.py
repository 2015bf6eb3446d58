"""
Command line entry point.

This is the only place where errors are turned into messages and exit statuses.
"""

import argparse
import logging
import sys
from typing import List, Optional

from ipsw_lite.ipsw_lite import IpswLite
from ipsw_lite.ipsw_lite_config import CONFIG_TOML_SCHEMA, IpswLiteConfig
from ipsw_lite.ipsw_lite_exceptions import IpswLiteException
from ipsw_lite.ipsw_lite_logger import IpswLiteLogger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ipsw-lite",
        description="Build a Restore Lite IPSW holding only the files one device needs, "
        "without downloading the full IPSW.",
        epilog="Config file format:\n" + CONFIG_TOML_SCHEMA,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-i", "--identifier", help="the identifier (e.g. iPhone4,1) you want to download")
    parser.add_argument("-u", "--url", help="the URL of the IPSW")
    parser.add_argument("-d", "--device", help="device to look the IPSW up for (with --build-id)")
    parser.add_argument("-b", "--build-id", help="build to look the IPSW up for (with --device)")
    parser.add_argument("-c", "--config", help="TOML file with an [ipsw_lite] table")
    parser.add_argument("--staging-dir", help="directory files are staged in (default: tmp)")
    parser.add_argument("--output-dir", help="directory the IPSW is written to (default: .)")
    parser.add_argument("--workers", type=int, help="number of concurrent downloads (default: 1)")
    parser.add_argument("--timeout", type=float, help="per-request timeout in seconds (default: 30)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log range requests")
    return parser


def config_from_args(args: argparse.Namespace) -> IpswLiteConfig:
    overrides = {
        "identifier": args.identifier,
        "url": args.url,
        "device": args.device,
        "build_id": args.build_id,
        "staging_dir": args.staging_dir,
        "output_dir": args.output_dir,
        "workers": args.workers,
        "timeout": args.timeout,
    }
    if args.config:
        return IpswLiteConfig.from_toml(args.config, overrides)
    return IpswLiteConfig.from_dict(
        {key: value for key, value in overrides.items() if value is not None}
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    logger = IpswLiteLogger()

    try:
        config = config_from_args(args)
        output_path = IpswLite(config, logger).run()
    except IpswLiteException as e:
        logger.log(e.message, logging.ERROR)
        print(f"ipsw-lite: {e.message}", file=sys.stderr)
        return 1

    print(f"Done! Wrote {output_path}. Happy restoring :-)")
    return 0
