"""
Main manager for Agent Sync operations.

Fans generate passes out over (base directory, feature, tool) on a thread
pool, runs imports from one tool and scaffolds new projects.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from fs_backend import LocalBackend

from .canonical import CanonicalRule
from .config import (
    CANONICAL_COMMANDS_DIR,
    CANONICAL_DIR,
    CANONICAL_RULES_DIR,
    CANONICAL_SUBAGENTS_DIR,
    FEATURES,
    TOOL_IDS,
    SyncConfig,
    _as_list,
)
from .exceptions import InvalidTargetError, NotFoundError, ValidationError
from .hal import get_hal
from .processor import FeatureProcessor

logger = logging.getLogger(__name__)

INIT_ROOT_RULE_BODY = """# Project Overview

Describe the project, its layout and the conventions every assistant should
follow here. This rule is written to each tool's root rule file."""


class SyncResult:
    """Outcome of a generate or import run."""

    def __init__(self):
        self.counts: Dict[str, int] = {}
        self.errors: List[str] = []

    def add(self, feature: str, count: int):
        self.counts[feature] = self.counts.get(feature, 0) + count

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def ok(self) -> bool:
        return not self.errors

    def __repr__(self):
        return f"SyncResult(counts={self.counts}, errors={len(self.errors)})"


class SyncManager:
    """Main manager class for Agent Sync operations."""

    def __init__(self, base_path: Optional[Union[str, Path]] = None, config: Optional[SyncConfig] = None,
                 home_dir: Optional[Union[str, Path]] = None):
        """Initialize the manager.

        Args:
            base_path: Project root holding ``.agentsync/`` (defaults to the cwd)
            config: Preloaded configuration; loaded from base_path when omitted
            home_dir: Base directory for global mode (defaults to the user's home)
        """
        self.config = config or SyncConfig(Path(base_path) if base_path else Path.cwd())
        self.home_dir = Path(home_dir) if home_dir else Path.home()
        self.hal = get_hal()

    @property
    def base_path(self) -> Path:
        return self.config.base_path

    @property
    def canonical_dir(self) -> Path:
        return self.config.canonical_dir

    # Argument expansion

    def expand_targets(self, targets=None) -> List[str]:
        """Expand ``*`` and validate tool ids.

        Raises:
            InvalidTargetError: If a tool id is unknown
        """
        targets = _as_list(targets) if targets is not None else self.config.targets
        if not targets or '*' in targets:
            return list(TOOL_IDS)

        for target in targets:
            if target not in TOOL_IDS:
                raise InvalidTargetError(f"Invalid target '{target}'. Available: {', '.join(TOOL_IDS)}")
        return list(dict.fromkeys(targets))

    def expand_features(self, features=None) -> List[str]:
        """Expand ``*`` and validate feature names.

        Raises:
            ValidationError: If a feature name is unknown
        """
        features = _as_list(features) if features is not None else self.config.features
        if not features or '*' in features:
            return list(FEATURES)

        for feature in features:
            if feature not in FEATURES:
                raise ValidationError(f"Unknown feature '{feature}'. Available: {', '.join(FEATURES)}")
        return list(dict.fromkeys(features))

    def _output_dirs(self, base_dirs, global_mode: bool) -> List[Path]:
        if global_mode:
            return [self.home_dir.resolve()]
        if base_dirs is None:
            return self.config.base_dirs
        return [(self.base_path / d).resolve() for d in _as_list([str(d) for d in base_dirs])]

    def _create_processor(self, feature: str, tool: str, base_dir: Path, global_mode: bool,
                          dry_run: bool) -> FeatureProcessor:
        processor_class = self.hal.get_processor_class(feature)
        return processor_class(self.hal.get_adapter(feature, tool), base_dir, source_dir=self.base_path,
                               global_mode=global_mode, dry_run=dry_run)

    # Generate

    def generate(self, targets=None, features=None, base_dirs=None, delete: Optional[bool] = None,
                 global_mode: Optional[bool] = None, dry_run: bool = False) -> SyncResult:
        """Generate tool files from ``.agentsync/``.

        Args:
            targets: Tool ids or ``*`` (defaults to the configured targets)
            features: Feature names or ``*`` (defaults to the configured features)
            base_dirs: Output directories relative to the project root
            delete: Remove orphaned tool files after writing
            global_mode: Write user-scope files under the home directory
            dry_run: Log what would change without touching files

        Returns:
            SyncResult with per-feature counts and every recorded error

        Raises:
            NotFoundError: If the project has no ``.agentsync/`` directory
            InvalidTargetError: If a target is unknown
            ValidationError: If a feature is unknown
        """
        tools = self.expand_targets(targets)
        feature_list = self.expand_features(features)
        delete = self.config.delete if delete is None else delete
        global_mode = self.config.global_mode if global_mode is None else global_mode

        if not self.canonical_dir.is_dir():
            raise NotFoundError(f"No {CANONICAL_DIR}/ directory in {self.base_path}. Run 'agentsync init' first.")

        # Passes writing the same root file (Codex and OpenCode share AGENTS.md)
        # run in one chain, in registry order; orphans are removed once every
        # pass of the chain has written, never touching what a sibling wrote
        chains: Dict[Tuple, List[Tuple[Path, str, str]]] = {}
        for base_dir in self._output_dirs(base_dirs, global_mode):
            for feature in feature_list:
                for tool in tools:
                    if not self.hal.has_adapter(feature, tool, global_mode):
                        logger.debug(f"{tool} does not support {feature}"
                                     f"{' in global mode' if global_mode else ''}, skipping")
                        continue
                    root_path = self.hal.get_adapter(feature, tool).get_locations(global_mode).root_path
                    key = (base_dir, feature, root_path) if root_path else (base_dir, feature, tool)
                    chains.setdefault(key, []).append((base_dir, feature, tool))

        result = SyncResult()
        for feature in feature_list:
            result.counts.setdefault(feature, 0)

        def run_chain(chain: List[Tuple[Path, str, str]]) -> List[Tuple[str, int, List[str]]]:
            outcomes = []
            passes = []
            for base_dir, feature, tool in chain:
                try:
                    processor = self._create_processor(feature, tool, base_dir, global_mode, dry_run)
                    passes.append((feature, tool, processor, processor.write_pass()))
                except Exception as e:
                    message = f"{feature} for {tool} in {base_dir} failed: {e}"
                    logger.error(message)
                    outcomes.append((feature, 0, [message]))

            written = {f.relative_path for _, _, processor, _ in passes for f in processor.generated}
            for feature, tool, processor, count in passes:
                if delete:
                    try:
                        processor.remove_orphans(keep=written)
                    except Exception as e:
                        message = f"Orphan removal of {feature} for {tool} in {processor.base_dir} failed: {e}"
                        logger.error(message)
                        processor.errors.append(message)
                outcomes.append((feature, count, processor.errors))
            return outcomes

        max_workers = min(self.config.jobs, len(chains)) if chains else 1
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(run_chain, chain) for chain in chains.values()]

            for future in as_completed(futures):
                for feature, count, errors in future.result():
                    result.add(feature, count)
                    result.errors.extend(errors)

        return result

    # Import

    def import_from_tool(self, target, features=None, base_dir=None, global_mode: bool = False) -> SyncResult:
        """Import one tool's files into ``.agentsync/``.

        Args:
            target: Exactly one tool id
            features: Feature names or ``*`` (defaults to every feature)
            base_dir: Directory holding the tool files (defaults to the project root)
            global_mode: Read user-scope files from the home directory

        Raises:
            InvalidTargetError: Unless exactly one known tool is given
        """
        targets = _as_list(target)
        if len(targets) != 1 or targets[0] == '*':
            raise InvalidTargetError("Import requires exactly one target tool")
        tool = targets[0]
        if tool not in TOOL_IDS:
            raise InvalidTargetError(f"Invalid target '{tool}'. Available: {', '.join(TOOL_IDS)}")

        feature_list = self.expand_features(features if features is not None else ['*'])
        if global_mode:
            source = self.home_dir.resolve()
        else:
            source = (self.base_path / base_dir).resolve() if base_dir else self.base_path

        result = SyncResult()
        for feature in feature_list:
            if not self.hal.has_adapter(feature, tool, global_mode):
                logger.debug(f"{tool} does not support {feature}, skipping")
                continue

            processor = self._create_processor(feature, tool, source, global_mode, dry_run=False)
            try:
                count = processor.import_files()
            except Exception as e:
                message = f"Import of {feature} from {tool} failed: {e}"
                logger.error(message)
                result.errors.append(message)
                continue
            result.add(feature, count)
            result.errors.extend(processor.errors)

        return result

    # Init

    def init_project(self) -> List[Path]:
        """Create the ``.agentsync/`` skeleton and ``agentsync.json``.

        Existing files are left untouched.

        Returns:
            Paths that were created
        """
        backend = LocalBackend(str(self.base_path))
        created = []

        for relative_dir in (CANONICAL_RULES_DIR, CANONICAL_COMMANDS_DIR, CANONICAL_SUBAGENTS_DIR):
            if not backend.exists(relative_dir):
                backend.mkdir(relative_dir)
                created.append(self.base_path / relative_dir)

        samples = [
            CanonicalRule(CANONICAL_RULES_DIR, 'overview.md', base_dir=self.base_path,
                          frontmatter={'root': True, 'targets': ['*'],
                                       'description': 'Project overview and conventions',
                                       'globs': ['**/*']},
                          body=INIT_ROOT_RULE_BODY),
        ]
        for sample in samples:
            if backend.exists(sample.relative_path):
                logger.debug(f"Keeping existing {sample.relative_path}")
                continue
            text = sample.to_text()
            backend.write_text(sample.relative_path, text if text.endswith("\n") else text + "\n")
            created.append(sample.path)

        if not self.config.config_path.exists():
            self.config.save_config()
            created.append(self.config.config_path)

        for path in created:
            logger.debug(f"Created {path}")
        return created
