#!/usr/bin/env python3
"""CLI for the Agentic Test Reporter."""

import argparse
import json
import logging
import sys

import core
from agentic_reporter.config import load_config, options_from_config
from agentic_reporter.events import EventError


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(levelname)s: %(message)s',
        stream=sys.stderr,
    )


def cmd_replay(args):
    """Replay a recorded event log through the reporter."""
    config = load_config(args.config)
    overrides = {}
    if args.max_failures is not None:
        overrides['max_failures'] = args.max_failures
    if args.no_details:
        overrides['enable_detailed_report'] = False
    options = options_from_config(config, **overrides)

    output_dir = args.output_dir or config.get('output_dir')
    try:
        state = core.replay_events(args.events, options=options, output_dir=output_dir)
    except FileNotFoundError:
        print(f"Error: event file not found: {args.events}", file=sys.stderr)
        return 2
    except EventError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if state is None:
        print("Error: event log contains no begin event", file=sys.stderr)
        return 2
    return 1 if state.failure_count > 0 else 0


def cmd_list_reports(args):
    """List failure reports left in the output directory."""
    result = core.list_failure_reports(args.output_dir)

    if args.format == 'json':
        print(json.dumps(result, indent=2))
        return 0

    reports = result['reports']
    print(f"Failure reports in {result['output_dir']} ({len(reports)}):")
    for r in reports:
        print(f"  - {r['name']}  ({r['size_bytes']} bytes, {r['modified']})")
    if result['has_summary']:
        print("\nRun summary: ai-start-here.md")
    return 0


def cmd_show_report(args):
    """Print one failure report."""
    result = core.read_failure_report(args.name, args.output_dir)
    if "error" in result:
        print(f"Error: {result['error']}", file=sys.stderr)
        return 1

    if args.format == 'json':
        print(json.dumps(result, indent=2))
    else:
        print(result['content'])
    return 0


def cmd_summary(args):
    """Print the Markdown summary of the last run."""
    result = core.read_run_summary(args.output_dir)
    if "error" in result:
        print(f"Error: {result['error']}", file=sys.stderr)
        return 1
    print(result['content'])
    return 0


def cmd_clean(args):
    """Delete failure reports and the run summary."""
    result = core.clean_failure_reports(args.output_dir, dry_run=args.dry_run)

    if args.format == 'json':
        print(json.dumps(result, indent=2))
    else:
        verb = "Would delete" if args.dry_run else "Deleted"
        print(f"{verb} {len(result['deleted'])} files in {result['output_dir']}")
        for name in result['deleted']:
            print(f"  - {name}")
        for f in result['failed']:
            print(f"  ! {f['name']}: {f['error']}")
    return 1 if result['failed'] else 0


def main():
    parser = argparse.ArgumentParser(description='Agentic Test Reporter')
    parser.add_argument('-v', '--verbose', action='store_true')
    parser.add_argument('--output-dir', '-o', help='Directory holding failure reports')

    sub = parser.add_subparsers(dest='command')

    # replay
    p = sub.add_parser('replay', help='Replay a recorded JSON Lines event log')
    p.add_argument('events', help='Path to the event log')
    p.add_argument('--config', '-c', help='YAML reporter config file')
    p.add_argument('--max-failures', help='Failures before the run is cut short (or "unbounded")')
    p.add_argument('--no-details', action='store_true', help='Do not write per-failure detail files')

    # list-reports
    p = sub.add_parser('list-reports', help='List failure reports')
    p.add_argument('--format', '-f', choices=['text', 'json'], default='text')

    # show-report
    p = sub.add_parser('show-report', help='Show one failure report')
    p.add_argument('name', help='Report file name (e.g. "login_should_work-details.xml")')
    p.add_argument('--format', '-f', choices=['text', 'json'], default='text')

    # summary
    sub.add_parser('summary', help='Show the summary of the last run')

    # clean
    p = sub.add_parser('clean', help='Delete failure reports and the run summary')
    p.add_argument('--dry-run', action='store_true', help='Show what would be deleted without deleting')
    p.add_argument('--format', '-f', choices=['text', 'json'], default='text')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)

    cmds = {
        'replay': cmd_replay,
        'list-reports': cmd_list_reports,
        'show-report': cmd_show_report,
        'summary': cmd_summary,
        'clean': cmd_clean,
    }
    return cmds[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
