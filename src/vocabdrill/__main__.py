"""Command-line entry point for data preparation and maintenance."""
import argparse
import logging
import sys
from typing import List, Optional

from vocabdrill.app import VocabDrill
from vocabdrill.config import ensure_directories, settings
from vocabdrill.errors import VocabDrillError
from vocabdrill.logging_config import setup_logging
from vocabdrill.models.models import ProgressStatus
from vocabdrill.services.auth_service import IdentityResolver
from vocabdrill.services.import_service import ImportService
from vocabdrill.services.level_service import LevelService, group_levels
from vocabdrill.services.progress_service import ProgressService

logger = logging.getLogger("vocabdrill")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vocabdrill", description="Vocabulary drill maintenance")
    commands = parser.add_subparsers(dest="command", required=True)

    import_cmd = commands.add_parser("import", help="Import a tab-delimited vocabulary file")
    import_cmd.add_argument("file", nargs="?", default=str(settings.importer.vocabulary_file))
    import_cmd.add_argument(
        "--reimport", action="store_true", help="Delete the category's questions first"
    )

    commands.add_parser("fix-answers", help="Re-derive canonical answers of stored questions")
    commands.add_parser("fix-units", help="Create units referenced by questions")

    reset_cmd = commands.add_parser("reset-progress", help="Delete stored progress")
    scope = reset_cmd.add_mutually_exclusive_group(required=True)
    scope.add_argument("--all", action="store_true", help="Every user, every level")
    scope.add_argument("--user", help="User id (requires --level)")
    reset_cmd.add_argument("--level")

    seed_cmd = commands.add_parser("seed-progress", help="Mark the first questions of a level")
    seed_cmd.add_argument("--user", required=True)
    seed_cmd.add_argument("--level", required=True)
    seed_cmd.add_argument("--passed", type=int, default=5)
    seed_cmd.add_argument("--failed", type=int, default=0)

    levels_cmd = commands.add_parser("levels", help="Print level summaries for a user")
    levels_cmd.add_argument("--user", required=True)

    token_cmd = commands.add_parser("issue-token", help="Issue a bearer token for a user")
    token_cmd.add_argument("external_id")
    token_cmd.add_argument("--username")

    return parser


def run(args: argparse.Namespace, app: VocabDrill) -> int:
    db = app.session()
    try:
        if args.command == "import":
            report = ImportService(db).import_file(args.file, reimport=args.reimport)
            print(f"Inserted {report.inserted} of {report.total} questions ({report.errors} errors)")
            return 1 if report.errors else 0

        if args.command == "fix-answers":
            report = ImportService(db).fix_correct_answers()
            print(f"Updated: {report.updated}  Skipped: {report.skipped}  Errors: {report.errors}")
            for fix in report.samples:
                print(f'  "{fix.old}" -> "{fix.new}" (ID: {fix.question_id})')
            return 1 if report.errors else 0

        if args.command == "fix-units":
            created = ImportService(db).fix_missing_units()
            print(f"Created {len(created)} units")
            return 0

        if args.command == "reset-progress":
            if args.all:
                deleted = ProgressService(db).reset_all()
            else:
                if not args.level:
                    print("--level is required with --user", file=sys.stderr)
                    return 2
                deleted = ProgressService(db).reset(args.user, args.level)
            print(f"Deleted {deleted} progress records")
            return 0

        if args.command == "seed-progress":
            try:
                rows = ProgressService(db).seed(args.user, args.level, args.passed, args.failed)
            except ValueError as e:
                print(e, file=sys.stderr)
                return 2
            passed = sum(1 for row in rows if row.status == ProgressStatus.PASSED.value)
            print(f"Seeded {len(rows)} progress records for {args.user}")
            print(f"  Passed: {passed}  Failed: {len(rows) - passed}")
            return 0

        if args.command == "levels":
            summaries = LevelService(db).get_levels_progress(args.user)
            for group, levels in group_levels(summaries).items():
                print(f"[{group}]")
                for summary in levels:
                    print(
                        f"{summary.level}\t{summary.passed}/{summary.total} passed\t"
                        f"{summary.failed} failed\t{summary.remaining} remaining\t{summary.percentage}%"
                    )
            return 0

        if args.command == "issue-token":
            print(IdentityResolver(db).issue_token(args.external_id, args.username))
            return 0

        return 2
    finally:
        db.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Run a maintenance command."""
    args = build_parser().parse_args(argv)

    ensure_directories()
    setup_logging("Starting vocabdrill ...")

    app = VocabDrill()
    try:
        app.start()
        return run(args, app)
    except (VocabDrillError, OSError) as e:
        logger.error(f"Command {args.command} failed: {e}")
        return 1
    finally:
        app.stop()


if __name__ == "__main__":
    sys.exit(main())
