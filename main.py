# -- coding: utf-8 --

import argparse
import logging
import sys
import time

import transport
from core.config import ConfigError, load_config, validate_config
from core.label import build_label_record
from core.station import build_station_from_loaded_config
from printer.tspl import build_program


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Label station: scale weight capture and TSPL label printing",
    )
    p.add_argument(
        "--config-dir", default="config", help="Directory containing main_*.yaml"
    )
    p.add_argument("--verbose", action="store_true", help="Debug log")
    p.add_argument(
        "--log-level", default="", help="Override log level (debug/info/warning/error)"
    )
    sub = p.add_subparsers(dest="command")
    sub.add_parser("run", help="Connect configured devices and serve (default)")
    sub.add_parser("ports", help="List endpoints for the configured transports")
    enc = sub.add_parser("encode", help="Print the TSPL program for the default label")
    enc.add_argument("--size", default="", help="Label size, e.g. 100x80")
    enc.add_argument("--copies", type=int, default=0, help="Copies (default: config)")
    enc.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="FIELD=VALUE",
        help="Override one label field (repeatable)",
    )
    args = p.parse_args(argv)
    if not args.command:
        args.command = "run"
    return args


def setup_logging(verbose: bool, log_level: str = ""):
    if verbose:
        level = logging.DEBUG
    else:
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "warn": logging.WARNING,
            "error": logging.ERROR,
            "critical": logging.CRITICAL,
        }
        level = level_map.get(str(log_level or "").strip().lower(), logging.INFO)
    # Use UTC for all %(asctime)s timestamps in logs.
    logging.Formatter.converter = time.gmtime
    logging.basicConfig(
        level=level, format="%(asctime)sZ [%(levelname)s] %(message)s", force=True
    )
    if not verbose:
        logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_level)
    try:
        cfg = load_config(args.config_dir)
        validate_config(cfg)
    except ConfigError as e:
        logging.error("Config load failed: %s", e)
        raise SystemExit(1)
    # Config-driven log level (unless overridden by CLI).
    if not args.verbose and not args.log_level:
        setup_logging(args.verbose, cfg.runtime.log_level)

    if args.command == "ports":
        return _cmd_ports(cfg)
    if args.command == "encode":
        return _cmd_encode(cfg, args)
    return _cmd_run(cfg)


def _cmd_ports(cfg) -> int:
    kinds = sorted({cfg.scale.transport, cfg.printer.transport})
    for kind in kinds:
        try:
            endpoints = transport.enumerate_endpoints(kind)
        except (transport.TransportError, ValueError) as e:
            logging.error("Cannot list %s endpoints: %s", kind, e)
            return 1
        print(f"[{kind}]")
        for ep in endpoints:
            print(f"  {ep}")
        if not endpoints:
            print("  (none)")
    return 0


def _cmd_encode(cfg, args) -> int:
    data = dict(cfg.label_defaults)
    for item in args.set:
        key, sep, value = item.partition("=")
        if not sep:
            logging.error("--set expects FIELD=VALUE, got %r", item)
            return 1
        data[key.strip()] = value
    try:
        record = build_label_record(data, qr_template=cfg.label.qr_url_template)
        program = build_program(
            record,
            args.size or cfg.printer.label_size,
            copies=args.copies or cfg.printer.copies,
            brand=cfg.printer.brand,
        )
    except (KeyError, ValueError) as e:
        logging.error("Cannot encode label: %s", e)
        return 1
    sys.stdout.write(program)
    return 0


def _cmd_run(cfg) -> int:
    logging.info(
        "Starting: scale=%s printer=%s hmi=%s runtime=%s",
        f"{cfg.scale.transport}:{cfg.scale.endpoint or 'auto'}@{cfg.scale.baud_rate}"
        if cfg.scale.enabled
        else "off",
        f"{cfg.printer.transport}:{cfg.printer.endpoint or 'auto'}@{cfg.printer.baud_rate}"
        if cfg.printer.enabled
        else "off",
        f"{cfg.hmi.host}:{cfg.hmi.port}" if cfg.hmi.enabled else "off",
        f"{cfg.runtime.max_runtime_s}s" if cfg.runtime.max_runtime_s else "unlimited",
    )
    logging.info(
        "Config files: main=%s label=%s",
        cfg.paths.get("main"),
        cfg.paths.get("label"),
    )

    station = build_station_from_loaded_config(cfg)
    try:
        station.start()
        station.run(
            runtime_limit_s=cfg.runtime.max_runtime_s
            if cfg.runtime.max_runtime_s > 0
            else None
        )
        logging.info("Done")
    except KeyboardInterrupt:
        logging.info("Station STOPPED by user (Ctrl+C)")
        station.stop()
    except Exception:
        logging.exception("Error")
        raise
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
