#!/usr/bin/env python3
"""
moddupe CLI: build a module catalogue and find duplicates of local files in it.
Removal of local duplicates is opt-in and always goes to the system trash.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import sys
import os
import time
from pathlib import Path
from typing import List, Optional, NoReturn
import logging

from dotenv import load_dotenv

from moddupe.core.models import (
    FilterCriteria, MatchGroup, MatchMode, MatchParams, ModuleRecord, SampleRecord)
from moddupe.core.catalogue import CatalogueStore, CatalogueUnavailableError
from moddupe.core.reporter import DuplicateReporter
from moddupe.commands import BuildCommand, MatchCommand
from moddupe.services.file_service import FileService
from moddupe.services.catalogue_service import CatalogueService
from moddupe.aliases import (
    MATCH_MODE_ALIASES, MATCH_MODE_CHOICES, MATCH_MODE_HELP_TEXT,
    LENGTH_UNIT_ALIASES, LENGTH_UNIT_CHOICES, LENGTH_HELP_TEXT,
    FILTER_PATHS_HELP_TEXT, EPILOG_TEXT
)

LOG_FORMAT = "%(levelname)-8s | %(name)-25s | %(message)s"


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False

        # Fix encoding for Windows consoles to prevent UnicodeEncodeError
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding='utf-8')
            sys.stderr.reconfigure(encoding='utf-8')

    @staticmethod
    def parse_args(args=None) -> argparse.Namespace:
        """Parse command-line arguments."""
        parser = argparse.ArgumentParser(
            prog="moddupe",
            description="moddupe: find tracker modules that already exist in a reference catalogue",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )

        # Catalogue
        parser.add_argument(
            "--database", "-d",
            default=None,
            type=str,
            help="Catalogue database file. Default: $MODDUPE_DB or database.db"
        )
        parser.add_argument(
            "--build-database", "-b",
            default=None,
            type=str,
            metavar="DIR",
            help="Build (or update) the catalogue from a local directory"
        )
        parser.add_argument(
            "--download",
            action="store_true",
            help="Download a fresh catalogue snapshot (replaces the local file)"
        )
        parser.add_argument(
            "--catalogue-url",
            default=None,
            type=str,
            help="Snapshot URL used when the catalogue is missing. Default: $MODDUPE_CATALOGUE_URL"
        )
        parser.add_argument(
            "--list-duplicates",
            action="store_true",
            help="List modules that are duplicated inside the catalogue"
        )
        parser.add_argument(
            "--list-catalogue",
            action="store_true",
            help="List every module in the catalogue"
        )

        # Matching
        parser.add_argument(
            "--match-dir", "-m",
            default=None,
            type=str,
            help="Directory to match against the catalogue. Default: current directory"
        )
        parser.add_argument(
            "--recursive", "-r",
            action=argparse.BooleanOptionalAction,
            default=True,
            help="Descend into subdirectories (default: on)"
        )
        parser.add_argument(
            "--mode",
            choices=MATCH_MODE_CHOICES,
            default="pattern",
            type=str,
            help=MATCH_MODE_HELP_TEXT
        )
        parser.add_argument(
            "--samples", "-s",
            action="store_true",
            help="Match sample data instead of pattern data"
        )
        parser.add_argument(
            "--search-length",
            default=None,
            type=int,
            metavar="N",
            help=LENGTH_HELP_TEXT
        )
        parser.add_argument(
            "--length-unit",
            choices=LENGTH_UNIT_CHOICES,
            default="bytes",
            type=str,
            help="Unit of --search-length: bytes or frames. Default: bytes"
        )
        parser.add_argument(
            "--workers", "-w",
            default=1,
            type=int,
            help="Worker processes used for fingerprinting. Default: 1"
        )

        # Filters
        parser.add_argument("--include-ext", default="", type=str, metavar="EXTS",
                            help="Only report groups with a catalogue entry of these extensions (e.g. mod,xm)")
        parser.add_argument("--exclude-ext", default="", type=str, metavar="EXTS",
                            help="Drop catalogue entries with these extensions")
        parser.add_argument("--include-paths", default="", type=str, metavar="PATHS",
                            help=FILTER_PATHS_HELP_TEXT)
        parser.add_argument("--exclude-paths", "--filter-paths", "-f", default="", type=str, metavar="PATHS",
                            dest="exclude_paths", help=FILTER_PATHS_HELP_TEXT)
        parser.add_argument("--sample-name", default=None, type=str, metavar="REGEX",
                            help="Only report groups where a catalogue entry has a matching sample/instrument name")
        parser.add_argument("--search-filename", default=None, type=str, metavar="REGEX",
                            help="Only report groups where a catalogue filename matches")

        # Output options
        parser.add_argument(
            "--print-sample-names",
            action="store_true",
            help="Print sample and instrument names of catalogue entries"
        )
        parser.add_argument(
            "--dump-patterns",
            action="store_true",
            help="Print the pattern data of matched local files (debugging)"
        )
        parser.add_argument(
            "--url-prefix",
            default="",
            type=str,
            help="Prefix printed before catalogue paths, e.g. https://ftp.modland.com"
        )

        # Actions
        parser.add_argument(
            "--trash-matches",
            action="store_true",
            help="Move local files that were reported as duplicates to the trash"
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Skip confirmation prompt when used with --trash-matches (for automation/scripts)"
        )
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output"
        )
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Show statistics and progress"
        )

        return parser.parse_args(args)

    def validate_args(self, args: argparse.Namespace) -> None:
        """Validate command-line arguments before anything is scanned."""
        if args.force and not args.trash_matches:
            self.error_exit("--force can only be used with --trash-matches")

        if args.trash_matches and not args.force:
            if not sys.stdin.isatty() or not sys.stdout.isatty():
                self.error_exit(
                    "Cannot request interactive confirmation in non-interactive session.\n"
                    "Use --force flag to proceed without confirmation when piping output or running in scripts."
                )

        if args.workers < 1:
            self.error_exit("--workers must be at least 1")

        if args.search_length is not None and args.search_length < 0:
            self.error_exit("--search-length cannot be negative")

        pattern_mode = not args.samples and MATCH_MODE_ALIASES[args.mode] == MatchMode.PATTERN
        if args.search_length is not None and args.match_dir is not None and pattern_mode:
            self.error_exit("--search-length with --match-dir requires sample mode (--samples)")

        if args.build_database:
            build_path = Path(args.build_database)
            if not build_path.is_dir():
                self.error_exit(f"Directory not found: {args.build_database}")

        if args.match_dir is not None:
            match_path = Path(args.match_dir)
            if not match_path.exists():
                self.error_exit(f"Directory not found: {args.match_dir}")
            if not match_path.is_dir():
                self.error_exit(f"Path is not a directory: {args.match_dir}")

    def create_criteria(self, args: argparse.Namespace) -> FilterCriteria:
        """Compile filters up front so a bad regex stops the run before scanning."""
        try:
            return FilterCriteria.from_human_readable(
                include_ext=args.include_ext,
                exclude_ext=args.exclude_ext,
                include_paths=args.include_paths,
                exclude_paths=args.exclude_paths,
                sample_name=args.sample_name,
                search_filename=args.search_filename,
                sample_length=args.search_length,
                length_unit=LENGTH_UNIT_ALIASES[args.length_unit],
            )
        except ValueError as e:
            self.error_exit(f"Invalid filter: {e}")

    def create_params(self, args: argparse.Namespace, criteria: FilterCriteria) -> MatchParams:
        mode = MatchMode.SAMPLE if args.samples else MATCH_MODE_ALIASES[args.mode]
        try:
            return MatchParams(
                root_dir=args.match_dir or ".",
                recursive=args.recursive,
                mode=mode,
                workers=args.workers,
                print_sample_names=args.print_sample_names,
                dump_patterns=args.dump_patterns,
                url_prefix=args.url_prefix,
                criteria=criteria,
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")

    def progress_callback(self, stage: str, current: int, total: Optional[int]) -> None:
        """CLI progress callback - shows progress in console."""
        if not self.verbose:
            return

        if total and total > 0:
            percent = (current / total) * 100
            sys.stderr.write(f"\r  [{stage}] {current}/{total} ({percent:.1f}%)")
        else:
            sys.stderr.write(f"\r  [{stage}] {current} files processed...")
        sys.stderr.flush()

    @staticmethod
    def stopped_flag() -> bool:
        """Check if operation should stop (placeholder for signal handling)."""
        return False

    # ---------- actions ----------

    def run_build(self, root_dir: str, db_path: str, args: argparse.Namespace) -> None:
        if not self.quiet:
            print(f"Building catalogue {db_path} from {root_dir}")

        try:
            with CatalogueStore(db_path) as store:
                written, stats = BuildCommand(workers=args.workers).execute(
                    root_dir,
                    store,
                    recursive=args.recursive,
                    progress_callback=self.progress_callback if self.verbose else None,
                    stopped_flag=self.stopped_flag,
                )
        except RuntimeError as e:
            self.error_exit(f"Build failed: {e}")

        if self.verbose:
            sys.stderr.write("\n")
            print(stats.print_summary())
        if not self.quiet:
            print(f"Catalogue updated: {written} modules written, {stats.decode_failures} files skipped")

    def run_download(self, db_path: str, url: Optional[str]) -> None:
        if not url:
            self.error_exit("No catalogue URL configured (use --catalogue-url or MODDUPE_CATALOGUE_URL)")
        try:
            CatalogueService.fetch(url, db_path)
        except CatalogueUnavailableError as e:
            self.error_exit(str(e))
        if not self.quiet:
            print(f"Catalogue downloaded to {db_path}")

    def open_catalogue(self, db_path: str, url: Optional[str]) -> CatalogueStore:
        try:
            return CatalogueService.open(db_path, url)
        except CatalogueUnavailableError as e:
            self.error_exit(str(e))

    def output_catalogue(self, reporter: DuplicateReporter) -> None:
        for entry in reporter.store.entries():
            print(reporter.render_entry_listing(entry))

    def output_catalogue_duplicates(self, reporter: DuplicateReporter) -> None:
        groups = reporter.catalogue_duplicates()
        for idx, group in enumerate(groups):
            print(reporter.render_catalogue_group(group, idx))
        if not self.quiet:
            print(f"Total duplicate groups: {len(groups)}")

    def output_length_search(self, reporter: DuplicateReporter) -> None:
        groups = reporter.search_lengths()
        for idx, group in enumerate(groups, 1):
            print(reporter.render_catalogue_group(group, idx, title="Sample"))
        if not self.quiet:
            total = sum(g.entry_count for g in groups)
            print(f"Total matches: {total}")

    def run_match(self, params: MatchParams, store: CatalogueStore) -> List[MatchGroup]:
        command = MatchCommand()
        reporter = command.reporter(params, store)

        if not self.quiet:
            print(f"Matching directory: {params.root_dir} (mode: {params.mode.display_name})")

        groups = []
        try:
            for group in command.iter_matches(
                    params,
                    store,
                    progress_callback=self.progress_callback if self.verbose else None,
                    stopped_flag=self.stopped_flag):
                groups.append(group)
                print(reporter.render(group))
        except RuntimeError as e:
            self.error_exit(f"Matching failed: {e}")

        if self.verbose:
            sys.stderr.write("\n")
            print(command.stats.print_summary())
        if not self.quiet and not groups:
            print("No matches found!")
        return groups

    @staticmethod
    def matched_local_paths(groups: List[MatchGroup]) -> List[str]:
        """Local files behind the reported groups, each listed once."""
        paths = []
        for group in groups:
            local = group.local
            if isinstance(local, SampleRecord):
                path = local.module_path
            elif isinstance(local, ModuleRecord):
                path = local.path
            else:
                continue
            if path not in paths:
                paths.append(path)
        return paths

    def execute_trash(self, groups: List[MatchGroup], force: bool = False) -> None:
        """Move matched local files to the trash. Always lists them before acting."""
        paths = self.matched_local_paths(groups)
        if not paths:
            if not self.quiet:
                print("No local files to move to trash.")
            return

        print()
        for path in paths:
            print(f"   [DEL]  {path}")
        print()

        if force:
            print("⚠️  WARNING: --force flag skips confirmation. Proceeding with deletion...")
        else:
            if not sys.stdin.isatty() or not sys.stdout.isatty():
                self.error_exit(
                    "Lost interactive terminal during operation. "
                    "Use --force to proceed in non-interactive environments."
                )
            response = input(f"Are you sure you want to move {len(paths)} files to trash? [y/N]: ")
            if response.strip().lower() not in ("y", "yes"):
                print("Deletion cancelled by user.")
                return

        deleted_count = 0
        failed_files = []
        for path in paths:
            try:
                FileService.move_to_trash(path)
                deleted_count += 1
            except (FileNotFoundError, RuntimeError) as e:
                failed_files.append((path, str(e)))
                self.warning(f"Failed to delete {path}: {e}")

        if failed_files:
            print(f"\n⚠️  Partial success: {deleted_count}/{len(paths)} files moved to trash.")
        else:
            print(f"✅ Successfully moved {deleted_count} files to trash.")

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"⚠️  {message}", file=sys.stderr)

    @staticmethod
    def error_exit(message: str, code: int = 1) -> NoReturn:
        """Print error and exit."""
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Main entry point: one catalogue action, or a match run by default."""
        load_dotenv()
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet
        logging.getLogger().setLevel(logging.INFO if self.verbose else logging.ERROR)

        self.validate_args(args)
        criteria = self.create_criteria(args)
        params = self.create_params(args, criteria)

        db_path = args.database or CatalogueService.default_database()
        url = args.catalogue_url or CatalogueService.default_url()

        if args.build_database:
            self.run_build(args.build_database, db_path, args)
        if args.download:
            self.run_download(db_path, url)

        explicit_match = args.match_dir is not None
        catalogue_action = args.list_catalogue or args.list_duplicates or args.search_length is not None
        if (args.build_database or args.download) and not (explicit_match or catalogue_action):
            return

        store = self.open_catalogue(db_path, url)
        reporter = MatchCommand().reporter(params, store)
        try:
            if args.list_catalogue:
                self.output_catalogue(reporter)
            elif args.list_duplicates:
                self.output_catalogue_duplicates(reporter)
            elif args.search_length is not None and not explicit_match:
                self.output_length_search(reporter)
            else:
                groups = self.run_match(params, store)
                if args.trash_matches:
                    self.execute_trash(groups, force=args.force)
        finally:
            store.close()

        elapsed = time.time() - self.start_time
        if self.verbose:
            print(f"\n✅ Completed in {elapsed:.2f} seconds")


def main() -> None:
    """Application entry point."""
    logging.basicConfig(level=logging.ERROR, format=LOG_FORMAT)
    app = CLIApplication()
    try:
        app.run()
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user (Ctrl+C)")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"❌ Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
