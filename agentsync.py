#!/usr/bin/env python3
"""
Agent Sync - Keep AI coding assistant configuration in sync across tools.

Generates tool-native rules, ignore files, MCP server definitions,
slash-commands and sub-agents from the canonical ``.agentsync/`` tree, and
imports an existing tool's files back into it.
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from agent_sync.config import FEATURES, TOOL_IDS, SyncConfig
from agent_sync.exceptions import (
    FileOperationError,
    InvalidTargetError,
    NotFoundError,
    SyncError,
    ValidationError,
)
from agent_sync.formatting import colored_status, format_sync_summary, format_target_matrix, setup_logging
from agent_sync.manager import SyncManager
from fs_backend import BackendError


def _split_values(values: Optional[List[str]]) -> Optional[List[str]]:
    """Flatten repeated and comma-separated option values."""
    if not values:
        return None
    return [v.strip() for value in values for v in value.split(',') if v.strip()]


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        description='Agent Sync - Keep AI coding assistant configuration in sync across tools',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  # Create .agentsync/ and agentsync.json
  %(prog)s init

  # Generate every feature for every tool
  %(prog)s generate

  # Generate rules and MCP servers for Claude Code and Cursor
  %(prog)s generate -t claude,cursor -f rules,mcp

  # Remove tool files that no longer have a canonical source
  %(prog)s generate --delete

  # Preview user-scope files under the home directory
  %(prog)s generate --global --dry-run

  # Import an existing Cursor setup into .agentsync/
  %(prog)s import -t cursor

  # Show which tool supports which feature
  %(prog)s targets

Tools: {', '.join(TOOL_IDS)}
Features: {', '.join(FEATURES)}
        """
    )

    parser.add_argument('--config', metavar='FILE',
                        help=f'Path to the config file (default: ./{SyncConfig.CONFIG_FILE})')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Show debug output')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Generate command
    generate_parser = subparsers.add_parser('generate', help='Generate tool files from .agentsync/')
    generate_parser.add_argument('--targets', '-t', action='append', metavar='TOOLS',
                                 help='Tools to generate for, comma-separated or repeated (default: config or *)')
    generate_parser.add_argument('--features', '-f', action='append', metavar='FEATURES',
                                 help='Features to generate, comma-separated or repeated (default: config or *)')
    generate_parser.add_argument('--base-dir', action='append', dest='base_dirs', metavar='DIR',
                                 help='Output directory relative to the project root (repeatable)')
    generate_parser.add_argument('--delete', action='store_true', default=None,
                                 help='Delete tool files without a canonical source after writing')
    generate_parser.add_argument('--global', action='store_true', dest='global_mode', default=None,
                                 help='Generate user-scope files in the home directory')
    generate_parser.add_argument('--dry-run', action='store_true',
                                 help='Show what would be written or deleted without changing files')

    # Import command
    import_parser = subparsers.add_parser('import', help="Import one tool's files into .agentsync/")
    import_parser.add_argument('--targets', '-t', action='append', metavar='TOOL', required=True,
                               help='The single tool to import from')
    import_parser.add_argument('--features', '-f', action='append', metavar='FEATURES',
                               help='Features to import (default: all the tool supports)')
    import_parser.add_argument('--base-dir', dest='base_dir', metavar='DIR',
                               help='Directory holding the tool files (default: project root)')
    import_parser.add_argument('--global', action='store_true', dest='global_mode',
                               help='Import user-scope files from the home directory')

    # Init command
    subparsers.add_parser('init', help='Create the .agentsync/ skeleton and agentsync.json')

    # Targets command
    subparsers.add_parser('targets', help='List supported tools and features')

    return parser


def _create_manager(args) -> SyncManager:
    config = SyncConfig(Path.cwd(), Path(args.config) if args.config else None)
    home_dir = os.environ.get('AGENTSYNC_HOME')
    return SyncManager(config=config, home_dir=home_dir)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        manager = _create_manager(args)
        setup_logging(verbose=args.verbose or manager.config.verbose)

        if args.command == 'init':
            created = manager.init_project()
            if not created:
                print(colored_status('INFO', f"{manager.base_path} is already initialized"))
            for path in created:
                print(colored_status('SUCCESS', f"Created {path.relative_to(manager.base_path)}"))
            print(colored_status('TIP', "Edit .agentsync/rules/overview.md, then run 'agentsync generate'"))

        elif args.command == 'targets':
            hal = manager.hal
            print("Supported tools and features:\n")
            print(format_target_matrix(hal.supported_matrix(), FEATURES))
            print("\nIn global mode (--global):\n")
            print(format_target_matrix(hal.supported_matrix(global_mode=True), FEATURES))
            print("\nTools:\n")
            config = manager.config
            for tool in config.get_available_targets():
                print(f"   {tool:<9} {config.get_target_name(tool):<15} {config.TARGET_CONFIGS[tool]['docs_url']}")

        elif args.command == 'generate':
            result = manager.generate(
                targets=_split_values(args.targets),
                features=_split_values(args.features),
                base_dirs=args.base_dirs,
                delete=args.delete,
                global_mode=args.global_mode,
                dry_run=args.dry_run,
            )
            print(format_sync_summary(result, action='Generated', dry_run=args.dry_run))
            if not result.ok:
                print(colored_status('ERROR', f"{len(result.errors)} error(s) during generation"), file=sys.stderr)
                return 1

        elif args.command == 'import':
            targets = _split_values(args.targets)
            if len(targets) != 1:
                print(colored_status('ERROR', "Import requires exactly one target (-t TOOL)"), file=sys.stderr)
                return 1

            result = manager.import_from_tool(
                targets[0],
                features=_split_values(args.features),
                base_dir=args.base_dir,
                global_mode=args.global_mode,
            )
            print(format_sync_summary(result, action='Imported'))
            if not result.ok:
                print(colored_status('ERROR', f"{len(result.errors)} error(s) during import"), file=sys.stderr)
                return 1

        return 0

    except KeyboardInterrupt:
        print("\n[ERROR] Operation cancelled by user", file=sys.stderr)
        return 1
    except (NotFoundError, InvalidTargetError, ValidationError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    except (FileNotFoundError, NotADirectoryError, PermissionError) as e:
        print(f"[ERROR] File system error: {e}", file=sys.stderr)
        return 1
    except (FileOperationError, BackendError) as e:
        print(f"[ERROR] File operation failed: {e}", file=sys.stderr)
        return 1
    except SyncError as e:
        print(f"[ERROR] Agent Sync error: {e}", file=sys.stderr)
        return 1
    except RuntimeError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"[ERROR] Unexpected error: {e}", file=sys.stderr)
        if os.getenv('DEBUG'):
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
