"""
Command line interface.

Usage:
    section-frames frame model.json wall-1 door-7
    section-frames elevate model.json --categories Doors Windows --save out.json
    section-frames parallel model.json wall-1 door-7 --save out.json
    section-frames init-config
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from section_frames.alignment.engine import make_parallel
from section_frames.batch import auto_elevation
from section_frames.frames.inference import infer_frame
from section_frames.io.model_loader import ModelLoadError, load_model, save_model
from section_frames.logging_config import setup_logging
from section_frames.model.store import InMemoryModelStore
from section_frames.project_config import (
    CONFIG_FILENAME,
    ProjectConfig,
    create_sample_config,
    load_config,
)
from section_frames.selection import CATEGORY_PRESETS, SelectionFilter

logger = logging.getLogger(__name__)


def _common_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", "-c",
        default=None,
        help=f"Path to a {CONFIG_FILENAME} configuration file.",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging.",
    )
    common.add_argument(
        "--log-json",
        default=None,
        dest="log_json",
        help="Also write JSON-lines logs to this file.",
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    common = _common_parser()
    parser = argparse.ArgumentParser(
        prog="section-frames",
        description="Section views and alignment for building model entities.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_frame = sub.add_parser("frame", parents=[common], help="Print inferred entity frames as JSON.")
    p_frame.add_argument("model", help="Model JSON file.")
    p_frame.add_argument("refs", nargs="+", help="Entity references.")

    p_elevate = sub.add_parser("elevate", parents=[common],
                               help="Create an elevation view and sheet per entity.")
    p_elevate.add_argument("model", help="Model JSON file.")
    p_elevate.add_argument("refs", nargs="*", help="Entity references (default: all entities).")
    p_elevate.add_argument(
        "--categories",
        nargs="+",
        default=None,
        help=f"Category presets or tags. Presets: {', '.join(CATEGORY_PRESETS)}.",
    )
    p_elevate.add_argument("--template", default=None, help="Name of a view template to apply.")
    p_elevate.add_argument("--save", default=None, help="Write the updated model here.")
    p_elevate.add_argument("--report", default=None, help="Write a JSON batch report here.")

    p_parallel = sub.add_parser("parallel", parents=[common],
                                help="Rotate TARGET parallel to REFERENCE.")
    p_parallel.add_argument("model", help="Model JSON file.")
    p_parallel.add_argument("reference", help="Reference entity.")
    p_parallel.add_argument("target", help="Entity to rotate.")
    p_parallel.add_argument("--save", default=None, help="Write the updated model here.")

    p_init = sub.add_parser("init-config", parents=[common], help="Write a sample configuration.")
    p_init.add_argument("path", nargs="?", default=CONFIG_FILENAME, help="Output path.")

    return parser


def _save_if_requested(store: InMemoryModelStore, path: Optional[str]) -> None:
    if path:
        save_model(store, path)


def cmd_frame(args: argparse.Namespace, store: InMemoryModelStore, config: ProjectConfig) -> int:
    frames = {ref: infer_frame(ref, store, config.frames).to_dict() for ref in args.refs}
    print(json.dumps(frames, indent=2))
    return 0 if all(f['valid'] for f in frames.values()) else 1


def cmd_elevate(args: argparse.Namespace, store: InMemoryModelStore, config: ProjectConfig) -> int:
    template_ref = None
    if args.template:
        template = store.find_view_by_name(args.template)
        if template is None or not template.is_template:
            logger.error("No view template named %r", args.template)
            return 1
        template_ref = template.ref

    refs = args.refs or [e.ref for e in store.entities()]
    selection_filter = SelectionFilter.from_labels(args.categories) if args.categories else None

    result = auto_elevation(refs, store, config, view_template=template_ref,
                            selection_filter=selection_filter)
    print(result.summary())

    report_path = args.report or config.output.report_path
    if report_path:
        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(result.to_dict(), f, indent=2)
        logger.info("Report written to %s", report_path)

    _save_if_requested(store, args.save or config.output.save_model_path)
    return 0 if result.error is None and result.failed == 0 else 1


def cmd_parallel(args: argparse.Namespace, store: InMemoryModelStore, config: ProjectConfig) -> int:
    outcome = make_parallel(args.reference, args.target, store, config.alignment)
    print(json.dumps(outcome.to_dict(), indent=2))
    if not outcome.success:
        return 1
    _save_if_requested(store, args.save or config.output.save_model_path)
    return 0


_COMMANDS = {
    'frame': cmd_frame,
    'elevate': cmd_elevate,
    'parallel': cmd_parallel,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_file=args.log_json,
    )

    if args.command == 'init-config':
        create_sample_config(args.path)
        print(f"Sample configuration written to {args.path}")
        return 0

    config = load_config(model_path=args.model, explicit_config=args.config)
    try:
        store = load_model(args.model)
    except ModelLoadError as exc:
        logger.critical("Model load failed: %s", exc)
        return 1

    try:
        return _COMMANDS[args.command](args, store, config)
    except OSError as exc:
        logger.critical("Output failed: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
