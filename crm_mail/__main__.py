"""Entry point for the mail processor package.

Usage::

    python -m crm_mail setup   # create missing IMAP folders
    python -m crm_mail run     # process unseen mail once
    python -m crm_mail watch   # process unseen mail every poll interval
"""

from __future__ import annotations

import sys

MODES = ("setup", "run", "watch")


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] not in MODES:
        print("Usage: python -m crm_mail <setup|run|watch>", file=sys.stderr)
        return 1

    from .config import ProcessorConfig
    from .logging import setup_logging
    from .processor import create_processor

    config = ProcessorConfig()  # type: ignore[call-arg]
    setup_logging(json=config.log_json, level=config.log_level, quiet=config.quiet)
    processor = create_processor(config)

    mode = argv[0]
    if mode == "setup":
        return 0 if processor.setup() else 1
    if mode == "run":
        return 0 if processor.run() is not None else 1

    try:
        processor.watch(config.poll_interval_seconds)
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
