# scripts/run.py
from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Any

from alchemist.dataloader.config_loader import ConfigLoader
from alchemist.dataloader.records_loader import EntityLoader
from alchemist.errors import AlchemistError, DataError
from alchemist.export.package_export import PackageExporter
from alchemist.schemas.models import EntityKind
from alchemist.schemas.priorities import PrioritizationWeights
from alchemist.validator import validate_dataset


def _setup_logging() -> None:
    """
    @brief
    Initializes global logging configuration.
    """
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="alchemist-run",
        description="Validate a client/worker/task snapshot and optionally export the package",
    )

    # (1) Config path argument
    parser.add_argument(
        "--config",
        type=str,
        default="config/config.yaml",
        help="Path to config YAML (default: config/config.yaml)",
    )

    # (2) Snapshot path argument
    parser.add_argument(
        "--input",
        type=str,
        required=True,
        help="Path to a JSON snapshot with 'clients', 'workers', 'tasks' and optional 'rules'",
    )

    # (3) Output directory argument
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for artifacts (default: output_dir from config)",
    )

    # (4) Export switch and prioritization preset
    parser.add_argument(
        "--export",
        action="store_true",
        help="Write the configuration package when validation has no errors",
    )
    parser.add_argument(
        "--preset",
        type=str,
        default=None,
        help="Prioritization preset for the exported weights (e.g. 'Fair Distribution')",
    )

    return parser.parse_args()


def _read_snapshot(path: Path) -> dict[str, Any]:
    """
    @brief
    Read the JSON snapshot and check its top-level shape.

    @raises
        DataError
            Raised if the file is missing, is not JSON, or is not a mapping.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise DataError(
            message=f"Snapshot not found: {path}",
            source="scripts.run",
            suggested_action="Check the --input path.",
        ) from e
    except (OSError, json.JSONDecodeError) as e:
        raise DataError(
            message=f"Unable to read snapshot {path}: {e}",
            source="scripts.run",
            suggested_action="Provide a UTF-8 JSON file.",
        ) from e

    if not isinstance(data, dict):
        raise DataError(
            message="Snapshot root must be a JSON object.",
            source="scripts.run",
            suggested_action="Use keys 'clients', 'workers', 'tasks', 'rules'.",
        )
    return data


def run_pipeline(
    config_path: Path,
    input_path: Path,
    output_dir: Path | None,
    *,
    export: bool = False,
    preset: str | None = None,
) -> dict[str, Any]:
    """
    @brief
    Load a snapshot, run the full validation pass and optionally export.

    @details
    Each sheet goes through its entity loader first, which expands the
    compact cell encodings ("2-4", "1,2,3", "A,B"). Rows that fail to parse
    are passed on as raw records so the validation pass still reports
    them as located findings.

    @returns
        Dictionary with the validation report and the exported file paths.

    @raises
        AlchemistError
            On configuration, input, or export failures.
    """
    # (1) Configuration and snapshot
    cfg = ConfigLoader().load_or_default(config_path)
    out_dir = output_dir or Path(cfg.output_dir or "data/output")
    snapshot = _read_snapshot(input_path)

    sheets = {
        EntityKind.CLIENT: snapshot.get("clients") or [],
        EntityKind.WORKER: snapshot.get("workers") or [],
        EntityKind.TASK: snapshot.get("tasks") or [],
    }
    rules = snapshot.get("rules") or []

    # (2) Parse each sheet; failed rows stay raw
    loaded = {kind: EntityLoader(kind).load(rows).rows for kind, rows in sheets.items()}

    # (3) Full validation pass
    report = validate_dataset(
        loaded[EntityKind.CLIENT],
        loaded[EntityKind.WORKER],
        loaded[EntityKind.TASK],
        rules,
        cfg,
        out_dir=out_dir,
    )
    summary = report["summary"]
    logging.info(
        "Findings: %d total (%d error, %d warning, %d info)",
        summary["total"],
        summary["by_severity"]["error"],
        summary["by_severity"]["warning"],
        summary["by_severity"]["info"],
    )

    # (4) Optional export, gated on the same pass
    files: dict[str, Path] = {}
    if export:
        weights = PrioritizationWeights.from_preset(preset) if preset else None
        result = PackageExporter(out_dir, cfg.export).export(
            loaded[EntityKind.CLIENT],
            loaded[EntityKind.WORKER],
            loaded[EntityKind.TASK],
            rules,
            weights=weights,
        )
        files = result.files

    return {"report": report, "files": files}


def main() -> int:
    """
    @brief
    CLI entry point.

    @details
    Exit codes:
      0 - dataset exportable (and exported when requested)
      1 - controlled failure (blocking findings, bad input, refused export)
      2 - unexpected crash
    """
    _setup_logging()
    args = _parse_args()

    try:
        result = run_pipeline(
            Path(args.config),
            Path(args.input),
            Path(args.output) if args.output else None,
            export=args.export,
            preset=args.preset,
        )
        for name, path in result["files"].items():
            logging.info("Exported %s: %s", name, path.as_posix())
        return 0 if result["report"]["exportable"] else 1

    except AlchemistError as e:
        logging.error(str(e))
        return 1
    except ValueError as e:
        logging.error("Invalid argument: %s", e)
        return 1
    except Exception:
        logging.error("Unexpected error occurred:")
        traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
