"""Command line entry point for the media gate."""
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from media_gate.config.rules import get_rule_label
from media_gate.config.settings import get_settings
from media_gate.errors import MediaGateError, ProjectConfigError
from media_gate.orchestration.submission_gate import AddFiles, SubmissionGate
from media_gate.services.api_client import VerificationClient
from media_gate.storage.projects import project_from_dict
from media_gate.storage.submissions import JsonlSubmissionStore
from media_gate.types import MediaFile, PendingFile, Project, RuleStatus, SubmitterIdentity
from media_gate.utils.export import export_submissions
from media_gate.utils.logging_config import setup_logging

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


class Colors:
    """ANSI color codes for terminal output."""
    RESET = '\033[0m'
    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    CYAN = '\033[36m'
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_CYAN = '\033[96m'
    BRIGHT_WHITE = '\033[97m'
    BOLD = '\033[1m'
    DIM = '\033[2m'


def supports_color() -> bool:
    """Check if terminal supports colors."""
    if os.getenv('NO_COLOR'):
        return False
    return hasattr(sys.stdout, 'isatty') and sys.stdout.isatty()


# Disable colors if not supported
if not supports_color():
    for attr in dir(Colors):
        if not attr.startswith('_'):
            setattr(Colors, attr, '')


def print_success(text: str):
    print(Colors.GREEN + Colors.BOLD + "✓ " + Colors.RESET + Colors.GREEN + text + Colors.RESET)


def print_error(text: str):
    print(Colors.RED + Colors.BOLD + "✗ " + Colors.RESET + Colors.RED + text + Colors.RESET)


def print_warning(text: str):
    print(Colors.YELLOW + Colors.BOLD + "⚠ " + Colors.RESET + Colors.YELLOW + text + Colors.RESET)


def print_info(text: str):
    print(Colors.CYAN + "ℹ " + Colors.RESET + Colors.BRIGHT_CYAN + text + Colors.RESET)


def print_section(text: str):
    print()
    print(Colors.BRIGHT_BLUE + Colors.BOLD + "▶ " + text + Colors.RESET)
    print(Colors.DIM + "─" * 70 + Colors.RESET)


def load_project(path: Path) -> Project:
    """Load a project definition, or a bare config, from a JSON file."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, dict) and "config" not in data:
        data = {"id": path.stem, "name": path.stem, "config": data}
    return project_from_dict(data)


def collect_files(paths: List[str]) -> List[MediaFile]:
    files = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(MediaFile.from_path(p) for p in sorted(path.iterdir()) if p.is_file())
        elif path.is_file():
            files.append(MediaFile.from_path(path))
        else:
            print_warning(f"File not found: {raw}")
    return files


def print_pending(pending: PendingFile):
    verdict = pending.verdict
    status = (Colors.GREEN + "HARD PASS" if verdict.hard_pass else Colors.RED + "NEEDS WORK") + Colors.RESET
    kind = verdict.normalized_metadata.kind.value
    print(Colors.BRIGHT_WHITE + Colors.BOLD + pending.raw_file.name + Colors.RESET + f"  [{kind}]  " + status)
    for rule_key, rule_verdict in verdict.per_rule.items():
        if rule_verdict.status == RuleStatus.PASS:
            marker = Colors.GREEN + "  pass     " + Colors.RESET
        elif rule_verdict.status == RuleStatus.SOFT_FAIL:
            marker = Colors.YELLOW + "  soft fail" + Colors.RESET
        else:
            marker = Colors.RED + "  fail     " + Colors.RESET
        detail = f" - {rule_verdict.message}" if rule_verdict.message else ""
        print(f"{marker} {get_rule_label(rule_key)}{detail}")


def resolve_project(args) -> Project:
    """Local JSON file first; otherwise fetch the project from the server by id."""
    path = Path(args.project)
    if path.is_file():
        return load_project(path)
    if args.submit_to:
        return VerificationClient(args.submit_to).get_project(args.project)
    raise ProjectConfigError(args.project, ["project file not found and no --submit-to server given"])


def run_check(args) -> int:
    try:
        project = resolve_project(args)
    except MediaGateError as e:
        print_error(str(e))
        return 2

    files = collect_files(args.files)
    if not files:
        print_error("No files to check")
        return 2

    gate = SubmissionGate(project, max_workers=get_settings().max_workers)
    outcome = gate.handle(AddFiles(files))

    print_section(f"Project: {project.name}")
    print_info(
        f"Min {project.config.required_files}, max {project.config.max_files} file(s). "
        f"Allowed: {', '.join(project.config.allowed_file_types) or 'any'}"
    )
    if outcome.message:
        print_warning(outcome.message)
    if outcome.duplicates:
        print_warning(f"{len(outcome.duplicates)} duplicate selection(s) ignored")

    print_section("Validation")
    for pending in gate.pending:
        print_pending(pending)

    passing = len(gate.hard_passing())
    print()
    print_info(f"Hard-passing files: {passing} / {project.config.required_files}")

    if not args.submit_to:
        return 0 if passing >= project.config.required_files else 1

    identity = SubmitterIdentity(user_name=args.name or "", user_email=args.email or "", user_id=args.user_id or "")
    report = gate.check_eligibility(identity)
    if not report.allowed:
        for reason in report.reasons:
            print_error(reason)
        return 1

    client = VerificationClient(args.submit_to)
    try:
        response = gate.submit(identity, client)
    except MediaGateError as e:
        print_error(f"Submission failed: {e}")
        return 1

    print_success(f"Submitted successfully (id {response.get('submissionId')})")
    if not response.get("emailSent"):
        print_info("No notification mail was sent")
    return 0


def run_export(args) -> int:
    store = JsonlSubmissionStore(Path(args.submissions))
    submissions = store.list(project_id=args.project_id, user_id=args.user_id)

    output = export_submissions(
        submissions,
        output_path=Path(args.output) if args.output else None,
        fmt=args.format,
        row_type=args.rows,
        project_id=args.project_id,
        flatten_objects=not args.keep_objects,
    )
    print_success(f"Exported {len(submissions)} submission(s) to {output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Media Gate - metadata requirement checks for photo/video submissions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m media_gate.main check project.json photos/
  python -m media_gate.main check project.json a.jpg b.jpg --submit-to http://localhost:8000 \\
      --name "Ada" --email ada@example.com --user-id 1234
  python -m media_gate.main export submissions.jsonl --rows files --format csv
        """
    )
    parser.add_argument(
        '--log-level',
        type=str,
        default=os.getenv('LOG_LEVEL', 'WARNING'),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: WARNING)'
    )
    parser.add_argument('--log-file', type=str, default=None, help='Optional log file path')

    sub = parser.add_subparsers(dest='command', required=True)

    check = sub.add_parser('check', help='Check files against a project locally')
    check.add_argument('project', help='Project JSON file, or a project id when --submit-to is given')
    check.add_argument('files', nargs='+', help='Files or directories to check')
    check.add_argument('--submit-to', default=None, help='Verification server base URL')
    check.add_argument('--name', default=None, help='Submitter name')
    check.add_argument('--email', default=None, help='Submitter email')
    check.add_argument('--user-id', default=None, help='Submitter numeric user ID')
    check.set_defaults(func=run_check)

    export = sub.add_parser('export', help='Export stored submissions')
    export.add_argument('submissions', help='Submissions JSON Lines file')
    export.add_argument('--format', choices=['csv', 'json'], default='csv')
    export.add_argument('--rows', choices=['submissions', 'files'], default='submissions')
    export.add_argument('--project-id', default=None, help='Only export this project')
    export.add_argument('--user-id', default=None, help='Only export this user')
    export.add_argument('--output', default=None, help='Output path (default: ./outputs/...)')
    export.add_argument('--keep-objects', action='store_true',
                        help='Keep nested objects in JSON output instead of JSON strings')
    export.set_defaults(func=run_export)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file) if args.log_file else None
    setup_logging(log_level=args.log_level, log_file=log_file)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print()
        print_error("Interrupted by user")
        return 130


if __name__ == '__main__':
    sys.exit(main())
