#!/usr/bin/env python3
"""
Apply an AI patch to exported blueprints

Usage:
    python apply_patch.py patch.json --blueprint exports/BP_Player.json --export-dir patched/
    python apply_patch.py patch.json --store blueprints/ --dry-run

Blueprints come from editor context exports (--blueprint) and/or a
BlueprintStore directory (--store). On success, modified blueprints are saved
as new store versions and/or exported next to --export-dir.
"""
import argparse
import logging
import sys
from pathlib import Path

from adapters.unreal import BlueprintExporter, BlueprintImporter
from core.assets import BlueprintStore, BlueprintStoreError
from core.config import load_settings
from core.graph import GraphModel
from runtime.patching.notifications import EditorNotificationSink
from runtime.patching.patch_engine import PatchEngine

logger = logging.getLogger("apply_patch")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Apply a SurrealPilot patch to blueprint exports")
    parser.add_argument("patch", help="Patch JSON file ('-' for stdin)")
    parser.add_argument("--blueprint", action="append", default=[], help="Blueprint context export (repeatable)")
    parser.add_argument("--store", help="BlueprintStore directory to load from and save to")
    parser.add_argument("--export-dir", help="Directory for patched context exports")
    parser.add_argument("--dry-run", action="store_true", help="Only check whether the patch applies")
    parser.add_argument("--config", help="Settings file (default: ~/.surrealpilot/config.json)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config)
    logging.basicConfig(level=settings.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    if args.patch == "-":
        patch_text = sys.stdin.read()
    else:
        try:
            patch_text = Path(args.patch).read_text(encoding="utf-8")
        except OSError as e:
            print(f"[ERROR] Cannot read patch: {e}")
            return 1

    model = GraphModel()
    store = BlueprintStore(args.store) if args.store else None
    importer = BlueprintImporter()

    try:
        if store:
            store.load_into(model)
        for export_path in args.blueprint:
            importer.load_into(model, export_path)
    except (OSError, ValueError, BlueprintStoreError) as e:
        print(f"[ERROR] Cannot load blueprints: {e}")
        return 1

    print(f"Loaded {len(model.blueprints())} blueprint(s)")

    # Stored blueprints may already carry the dirty flag; compare modification counts instead
    counts_before = {id(bp): bp.modification_count for bp in model.blueprints()}

    sink = EditorNotificationSink()
    engine = PatchEngine(model, sink, settings=settings)

    if args.dry_run:
        if engine.can_apply_patch(patch_text):
            print("[OK] Patch can be applied")
            return 0
        print(f"[FAILED] {engine.last_error_code.value if engine.last_error_code else 'Error'}: {engine.get_last_error()}")
        return 1

    outcome = engine.apply(patch_text)
    for note in sink.drain():
        print(f"[{note.severity.value}] {note.message}")

    if not outcome.success:
        print(f"[FAILED] {outcome.error_code.value}: {outcome.error_message}")
        return 1

    exporter = BlueprintExporter()
    for blueprint in model.blueprints():
        if blueprint.modification_count == counts_before.get(id(blueprint)):
            continue
        if store:
            version = store.save(blueprint)
            print(f"  Saved {blueprint.name} (v{version})")
        if args.export_dir:
            target = Path(args.export_dir) / f"{blueprint.name}.json"
            if exporter.export_file(blueprint, str(target)):
                print(f"  Exported {blueprint.name} -> {target}")

    print(f"[OK] Applied {outcome.operations_applied} operation(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
