"""Export the leaf classifier to the TorchScript artifact the API loads at startup."""
from __future__ import annotations

import argparse
from pathlib import Path

from heveaguard.config import get_settings
from heveaguard.services.vision import export_torchscript
from heveaguard.utils import logger


def parse_args() -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Trace the leaf classifier and save it as TorchScript")
    parser.add_argument("--checkpoint", default=None, help="Optional state_dict checkpoint to load before tracing")
    parser.add_argument("--output", default=str(settings.model_path), help="Where to write the TorchScript artifact")
    parser.add_argument(
        "--labels",
        default=",".join(settings.labels),
        help="Comma-separated class names in model output order",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    log = logger.get_logger(__name__)
    labels = [label.strip() for label in args.labels.split(",") if label.strip()]
    checkpoint = Path(args.checkpoint) if args.checkpoint else None
    output = export_torchscript(Path(args.output), class_names=labels, checkpoint=checkpoint)
    log.info("Exported TorchScript model", output=str(output), labels=labels)


if __name__ == "__main__":
    main()
