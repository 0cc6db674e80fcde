#!/usr/bin/env python3
"""
ABOUTME: Applies a saved live-edit change log to the page's markup source files
ABOUTME: Reads JSONL exported by an editing session and writes updated files
"""

import argparse
import sys
from pathlib import Path
from typing import Iterable, List, Tuple

from html_edit.applier import PageEditApplier
from html_edit.change_log import ChangeLog
from html_edit.config import EditorSettings
from html_edit.sources import HttpSourceFetcher, LocalSourceFetcher
from html_utils import format_text_preview


def write_updated_files(files: Iterable[Tuple[str, str]], output_dir) -> List[Path]:
    """Write (path, text) pairs under output_dir, keeping relative paths."""
    output_dir = Path(output_dir)
    written = []
    for rel_path, text in files:
        target = output_dir / rel_path.lstrip('/')
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding='utf-8')
        written.append(target)
    return written


def main(argv=None) -> int:
    settings = EditorSettings.from_env()

    parser = argparse.ArgumentParser(
        description="Apply captured live-page text edits to source files"
    )
    parser.add_argument('jsonl_file', help='Change log export (JSONL format)')
    source = parser.add_mutually_exclusive_group()
    source.add_argument('--source-dir', help='Directory holding the site source files')
    source.add_argument('--base-url', default=settings.base_url,
                        help='Fetch source files over HTTP relative to this URL')
    parser.add_argument('-o', '--output', help='Output directory (default: <source-dir>/_edited)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Match only, do not write files')
    parser.add_argument('-v', '--verbose', action='store_true', default=settings.verbose,
                        help='Verbose output')

    args = parser.parse_args(argv)

    try:
        meta, change_log = ChangeLog.load_jsonl(args.jsonl_file)

        if args.source_dir:
            fetcher = LocalSourceFetcher(args.source_dir)
            default_output = Path(args.source_dir) / '_edited'
        elif args.base_url:
            fetcher = HttpSourceFetcher(args.base_url)
            default_output = Path('_edited')
        else:
            raise ValueError("Either --source-dir or --base-url (or PAGE_EDIT_BASE_URL) is required")
        output_dir = Path(args.output) if args.output else default_output

        print(f"Change log: {args.jsonl_file}")
        print(f"Output to: {output_dir}")
        print(f"Change records: {len(change_log)}")
        if args.verbose:
            print("-" * 50)

        applier = PageEditApplier(
            fetcher,
            page_path=meta.get('page_path'),
            verbose=args.verbose,
        )
        file_results = applier.apply(change_log)
        results = applier.results

        # Statistics
        updated_count = sum(1 for r in results if r.success and not r.warning)
        applied_count = sum(1 for r in results if r.success and r.warning)
        fail_count = sum(1 for r in results if not r.success)

        skipped = [fr for fr in file_results if fr.skipped]
        if skipped:
            print("\nSkipped files:")
            for fr in skipped:
                print(f"  - {fr.source_file}: {fr.error}")

        if fail_count > 0:
            print("\nUnmatched changes:")
            for r in results:
                if not r.success:
                    preview = format_text_preview(r.record.old_text)
                    print(f"  - [{r.record.source_file}] {r.record.tag} '{preview}': {r.error_message}")

        print("-" * 50)
        print(f"Completed: {updated_count} updated, {applied_count} already applied, {fail_count} unmatched")

        if args.dry_run:
            print(f"[DRY RUN] Would write {len(applier.file_cache)} files to: {output_dir}")
        else:
            for path in write_updated_files(applier.file_cache.items(), output_dir):
                print(f"Saved to: {path}")

        fail_file = applier.save_failed_items(args.jsonl_file, meta)
        if fail_file:
            print(f"\n{'=' * 50}")
            print(f"Unmatched changes saved to: {fail_file}")
            print(f"  → Fix the source or records and retry with this file")
            print(f"{'=' * 50}")

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
