"""Run the submission review pipeline for one submission and print the result.

Settings come from the environment or the project's ``.env`` file (see
``submission_review/app/config.py``).

Usage:

    python run_submission_review.py <submission_id> [--force]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from submission_review.app.config import AppSettings
from submission_review.app.main import setup_logging
from submission_review.app.wiring import build_review_service
from submission_review.shared.errors import SubmissionNotFoundError


PROJECT_ROOT = Path(__file__).resolve().parent
ENV_PATH = PROJECT_ROOT / ".env"

if ENV_PATH.exists():
    load_dotenv(dotenv_path=ENV_PATH, override=False)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Review a student submission with the text generator.")
    parser.add_argument("submission_id", help="ID of the submission to review")
    parser.add_argument(
        "--force",
        action="store_true",
        help="re-run even when a completed review already exists",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = AppSettings.from_env()
    setup_logging(settings.log_level)
    logger = logging.getLogger("submission_review_cli")

    service = build_review_service(settings)
    if not service.is_available():
        logger.error("Text generator is not configured for provider=%s", settings.llm_provider)
        return 2

    exit_code = 0
    try:
        review_id = service.run_review(args.submission_id, force=args.force)
        logger.info("Review finished: review_id=%s", review_id)
    except SubmissionNotFoundError as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001 - failure is already stored on the review
        logger.exception("Review failed: submission_id=%s", args.submission_id)
        exit_code = 1

    dto = service.get_review_dto(args.submission_id)
    print(json.dumps(dto, ensure_ascii=False, indent=2))
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
